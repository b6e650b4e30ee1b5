"""Command-line interface for replaying pool logs and benchmarking null blocks."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from pool_replay.bench.driver import SubmissionMode, run_benchmark
from pool_replay.bench.gas import GasProfiler
from pool_replay.bench.synthesizer import synthesize
from pool_replay.config import (
    DEFAULT_SETTINGS,
    GAS_PROFILE_SETTINGS,
    build_plan,
    resolve_node_settings,
)
from pool_replay.core.errors import ConfigurationError, ReplayError
from pool_replay.core.events import (
    MintEvent,
    SwapEvent,
    load_pool_metadata,
    load_recorded_log,
    write_fixtures,
)
from pool_replay.core.interfaces import NodeControl, PoolHandle
from pool_replay.replay.engine import ReplayEngine, prepare_pool
from pool_replay.sim.node import InMemoryNode
from pool_replay.sim.pool import InMemoryPool
from pool_replay.sim.recorder import generate_recorded_log

logger = logging.getLogger(__name__)


def _build_backend(args: argparse.Namespace, fee: int, genesis_timestamp: int) -> tuple[PoolHandle, NodeControl]:
    if args.backend == "memory":
        pool = InMemoryPool(fee=fee)
        return pool, InMemoryNode(pool, genesis_timestamp=genesis_timestamp)

    # Imported lazily so the in-memory backend works without a node
    from pool_replay.evm.rpc import RpcNode, RpcPool

    settings = resolve_node_settings(url=args.rpc_url)
    pool_address, callee_address, sender = settings.require_contracts()
    node = RpcNode.from_url(settings.url, callee_address, sender)
    pool = RpcPool(node.w3, pool_address, callee_address, sender)
    return pool, node


def _load_fixtures(args: argparse.Namespace):
    fixtures = Path(args.fixtures)
    for name in ("logs.json", "poolData.json"):
        if not (fixtures / name).exists():
            raise ConfigurationError(f"fixture file not found: {fixtures / name}")
    return load_recorded_log(fixtures / "logs.json"), load_pool_metadata(fixtures / "poolData.json")


def generate_command(args: argparse.Namespace) -> int:
    """Write a generated recorded log and its pool metadata."""
    log, metadata = generate_recorded_log(args.events, seed=args.seed, fee=args.fee)
    logs_path, pool_path = write_fixtures(log, metadata, args.output)
    print(f"Wrote {len(log)} events to {logs_path}")
    print(f"Wrote pool metadata to {pool_path}")
    return 0


def replay_command(args: argparse.Namespace) -> int:
    """Replay a recorded log and report how it verified."""
    log, metadata = _load_fixtures(args)
    pool, _ = _build_backend(args, metadata.fee, DEFAULT_SETTINGS.start_timestamp - 1)

    prepare_pool(pool, metadata)
    report = ReplayEngine(pool, args.tolerance).replay(log)

    print(f"Verified events:  {report.verified_events}")
    print(f"Recovered swaps:  {len(report.recovered_indices)}")
    for index in report.recovered_indices:
        print(f"  - globalIndex {index}")
    print(f"Final sqrtPriceX96: {report.final_price}")
    return 0


def bench_command(args: argparse.Namespace) -> int:
    """Replay a recorded log, then mine null blocks and report throughput."""
    plan = build_plan(
        null_swaps_per_block=args.null_swaps,
        blocks_to_mine=args.blocks,
        call_gas_limit=args.gas_limit,
        start_timestamp=args.start_timestamp,
        block_interval_seconds=args.interval,
        submission_mode=SubmissionMode(args.mode) if args.mode else None,
        verify_price=args.verify or None,
        gas_price=args.gas_price,
    )
    log, metadata = _load_fixtures(args)
    pool, node = _build_backend(args, metadata.fee, plan.start_timestamp - 1)

    prepare_pool(pool, metadata)
    report = ReplayEngine(pool, args.tolerance).replay(log)
    observed_price = pool.current_price()
    print(f"Replayed {report.verified_events} events, sqrtPriceX96={observed_price}")

    batch = synthesize(
        report.reference_swap.payload,
        observed_price,
        None,
        plan.null_swaps_per_block,
        pool.address,
        pool.recipient,
    )

    node.set_logging_enabled(False)
    print(
        f"\nMining {plan.blocks_to_mine} blocks of {plan.null_swaps_per_block} null swaps "
        f"({plan.submission_mode.value})..."
    )
    result = run_benchmark(plan, batch, pool, node, args.tolerance)

    print(f"\nTotal transactions: {result.total_transactions}")
    print(f"Wall clock:         {result.wall_clock_seconds:.3f}s")
    print(f"Throughput:         {result.average_throughput:.2f} tx/s")
    print(f"Latency:            {result.average_latency_ms:.4f} ms/tx")
    stats = result.summary()
    if stats:
        print(
            "Block time:         "
            f"mean {stats['mean']:.3f}s  p50 {stats['p50']:.3f}s  "
            f"p95 {stats['p95']:.3f}s  max {stats['max']:.3f}s"
        )
    if result.max_price_drift_ppm is not None:
        print(f"Max price drift:    {result.max_price_drift_ppm} ppm")
        if result.price_drift_violations:
            print(f"Drifted blocks:     {list(result.price_drift_violations)}")
    if result.reverted_blocks:
        print(f"Reverted blocks:    {list(result.reverted_blocks)}")
    return 0


def gas_command(args: argparse.Namespace) -> int:
    """Seed the pool with the first recorded mint and profile position gas."""
    log, metadata = _load_fixtures(args)
    pool, _ = _build_backend(args, metadata.fee, DEFAULT_SETTINGS.start_timestamp - 1)

    first = log.events[0]
    if not isinstance(first, MintEvent):
        raise ConfigurationError("first recorded event must be a Mint", global_index=first.global_index)
    swap = next(event for event in log.events if isinstance(event, SwapEvent))

    prepare_pool(pool, metadata)
    ReplayEngine(pool, args.tolerance).replay_event(first)

    report = GasProfiler(pool).profile(
        args.tick_lower, args.tick_upper, args.amount, swap
    )
    print(f"Position [{report.tick_lower}, {report.tick_upper}] amount {report.amount}")
    for label, gas in report.entries:
        print(f"  {label:<8} {gas:>10}")
    print(f"  {'total':<8} {report.total_gas:>10}")
    return 0


def _add_fixture_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("fixtures", help="Directory holding logs.json and poolData.json")
    parser.add_argument(
        "--backend",
        choices=["memory", "rpc"],
        default="memory",
        help="Run against the in-memory pool or a live node (default: memory)",
    )
    parser.add_argument(
        "--rpc-url",
        default=None,
        help="Node JSON-RPC URL (defaults to $ANVIL_URL or http://127.0.0.1:8545)",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_SETTINGS.tolerance,
        help=f"Relative tolerance for verified quantities (default: {DEFAULT_SETTINGS.tolerance})",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replay recorded V3 pool events and benchmark null-block throughput",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pool-replay generate fixtures/ --events 100
  pool-replay replay fixtures/
  pool-replay bench fixtures/ --blocks 10 --null-swaps 2000
  pool-replay bench fixtures/ --backend rpc --mode individual --verify
  pool-replay gas fixtures/
        """,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate command
    generate_parser = subparsers.add_parser("generate", help="Generate recorded fixtures in memory")
    generate_parser.add_argument("output", help="Directory to write logs.json and poolData.json")
    generate_parser.add_argument("--events", type=int, default=100, help="Number of events (default: 100)")
    generate_parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    generate_parser.add_argument("--fee", type=int, default=500, help="Fee tier in pips (default: 500)")
    generate_parser.set_defaults(func=generate_command)

    # Replay command
    replay_parser = subparsers.add_parser("replay", help="Replay and verify a recorded log")
    _add_fixture_args(replay_parser)
    replay_parser.set_defaults(func=replay_command)

    # Bench command
    bench_parser = subparsers.add_parser("bench", help="Replay, then time null blocks")
    _add_fixture_args(bench_parser)
    bench_parser.add_argument(
        "--blocks",
        type=int,
        default=None,
        help=f"Blocks to mine (default: {DEFAULT_SETTINGS.blocks_to_mine})",
    )
    bench_parser.add_argument(
        "--null-swaps",
        type=int,
        default=None,
        help=f"Null swaps per block (default: {DEFAULT_SETTINGS.null_swaps_per_block})",
    )
    bench_parser.add_argument(
        "--gas-limit",
        type=int,
        default=None,
        help=f"Gas per call (default: {DEFAULT_SETTINGS.call_gas_limit})",
    )
    bench_parser.add_argument("--start-timestamp", type=int, default=None, help="Timestamp of the first block")
    bench_parser.add_argument("--interval", type=int, default=None, help="Seconds between blocks")
    bench_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SubmissionMode],
        default=None,
        help="Submit each block as one multicall or as individual calls",
    )
    bench_parser.add_argument("--gas-price", type=int, default=None, help="Gas price (default: ask the node)")
    bench_parser.add_argument(
        "--verify",
        action="store_true",
        help="Check the pool price after every block",
    )
    bench_parser.set_defaults(func=bench_command)

    # Gas command
    gas_parser = subparsers.add_parser("gas", help="Profile mint, collect and burn gas")
    _add_fixture_args(gas_parser)
    gas_parser.add_argument("--tick-lower", type=int, default=GAS_PROFILE_SETTINGS.tick_lower)
    gas_parser.add_argument("--tick-upper", type=int, default=GAS_PROFILE_SETTINGS.tick_upper)
    gas_parser.add_argument("--amount", type=int, default=GAS_PROFILE_SETTINGS.amount)
    gas_parser.set_defaults(func=gas_command)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except ReplayError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
