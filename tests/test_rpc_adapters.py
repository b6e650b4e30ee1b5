"""Tests for the JSON-RPC adapters, without a running node."""

from types import SimpleNamespace

import pytest
from eth_abi import decode, encode
from web3 import Web3

from pool_replay.core.calls import SELECTOR_MULTICALL, SwapCall
from pool_replay.core.events import SwapDirection
from pool_replay.core.interfaces import CollectResult, LiquidityResult, PoolLogKind, SwapResult
from pool_replay.evm.rpc import RpcError, RpcNode, decode_pool_logs
from tests.fixtures import POOL, RECIPIENT

OTHER = "0x3000000000000000000000000000000000000003"


def topic(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature))


def swap_log(address=POOL, amount0=-5, amount1=9, price=2**96, liquidity=10**18):
    return {
        "address": address,
        "topics": [topic("Swap(address,address,int256,int256,uint160,uint128,int24)"), b"\x00" * 32, b"\x00" * 32],
        "data": encode(
            ["int256", "int256", "uint160", "uint128", "int24"],
            [amount0, amount1, price, liquidity, 0],
        ),
    }


def mint_log(amount0=11, amount1=22):
    return {
        "address": POOL,
        "topics": [topic("Mint(address,address,int24,int24,uint128,uint256,uint256)")],
        "data": encode(
            ["address", "uint128", "uint256", "uint256"],
            [RECIPIENT, 1000, amount0, amount1],
        ),
    }


def collect_log():
    return {
        "address": POOL,
        "topics": [topic("Collect(address,address,int24,int24,uint128,uint128)")],
        "data": encode(["address", "uint128", "uint128"], [RECIPIENT, 3, 4]),
    }


class TestDecodePoolLogs:

    def test_swap(self):
        events = decode_pool_logs([swap_log()], POOL)
        assert events == {PoolLogKind.SWAP: SwapResult(-5, 9, 10**18, 2**96)}

    def test_mint_and_collect(self):
        events = decode_pool_logs([mint_log(), collect_log()], POOL)
        assert events[PoolLogKind.MINT] == LiquidityResult(11, 22)
        assert events[PoolLogKind.COLLECT] == CollectResult(3, 4)

    def test_logs_from_other_contracts_ignored(self):
        # A token Transfer-like log first, then the pool's swap
        token_log = {"address": OTHER, "topics": [b"\x01" * 32], "data": b""}
        events = decode_pool_logs([token_log, swap_log(address=OTHER), swap_log()], POOL)
        assert list(events) == [PoolLogKind.SWAP]

    def test_address_match_ignores_case(self):
        pool = "0xabcdef000000000000000000000000000000abcd"
        events = decode_pool_logs([swap_log(address=Web3.to_checksum_address(pool))], pool)
        assert PoolLogKind.SWAP in events

    def test_unknown_topic_ignored(self):
        log = {"address": POOL, "topics": [b"\x02" * 32], "data": b""}
        assert decode_pool_logs([log], POOL) == {}


class FakeProvider:
    def __init__(self, responses=None):
        self.requests = []
        self.responses = responses or {}

    def make_request(self, method, params):
        self.requests.append((method, params))
        return self.responses.get(method, {"jsonrpc": "2.0", "id": 1, "result": "0x" + "ab" * 32})


def make_node(provider):
    w3 = SimpleNamespace(provider=provider, eth=SimpleNamespace(gas_price=5))
    return RpcNode(w3, OTHER, RECIPIENT)


class TestRpcNode:

    def test_block_controls(self):
        provider = FakeProvider()
        node = make_node(provider)

        node.set_interval_mining(0)
        node.set_next_block_timestamp(1619830000)
        node.mine_block()
        node.set_logging_enabled(False)

        assert provider.requests == [
            ("evm_setIntervalMining", [0]),
            ("evm_setNextBlockTimestamp", [1619830000]),
            ("evm_mine", []),
            ("anvil_setLoggingEnabled", [False]),
        ]

    def test_gas_price_from_node(self):
        assert make_node(FakeProvider()).gas_price() == 5

    def test_submit_batch_sends_multicall(self):
        provider = FakeProvider()
        call = SwapCall(POOL, SwapDirection.ZERO_FOR_ONE, 100, RECIPIENT, 0)

        receipt = make_node(provider).submit_batch([call, call], 2_000_000, 7)

        assert receipt.call_count == 2
        method, (tx,) = provider.requests[0]
        assert method == "eth_sendUnsignedTransaction"
        assert tx["gas"] == hex(2_000_000)
        assert tx["gasPrice"] == hex(7)
        assert tx["to"] == Web3.to_checksum_address(OTHER)
        data = bytes.fromhex(tx["data"][2:])
        assert data[:4] == SELECTOR_MULTICALL
        (inner,) = decode(["bytes[]"], data[4:])
        assert list(inner) == [call.calldata, call.calldata]

    def test_submit_unsigned_sends_single_call(self):
        provider = FakeProvider()
        call = SwapCall(POOL, SwapDirection.ONE_FOR_ZERO, 100, RECIPIENT, 0)
        receipt = make_node(provider).submit_unsigned(call, 1_000_000, 7)
        assert receipt.call_count == 1
        tx = provider.requests[0][1][0]
        assert tx["data"] == "0x" + call.calldata.hex()

    def test_missing_hash_is_no_receipt(self):
        provider = FakeProvider({"eth_sendUnsignedTransaction": {"jsonrpc": "2.0", "id": 1, "result": None}})
        call = SwapCall(POOL, SwapDirection.ONE_FOR_ZERO, 100, RECIPIENT, 0)
        assert make_node(provider).submit_unsigned(call, 1_000_000, 7) is None

    def test_reverted_count_from_latest_block_receipts(self):
        statuses = {b"\x01": 1, b"\x02": 0, b"\x03": 0}
        eth = SimpleNamespace(
            gas_price=5,
            get_block=lambda block: {"transactions": list(statuses)},
            get_transaction_receipt=lambda tx_hash: {"status": statuses[tx_hash]},
        )
        node = RpcNode(SimpleNamespace(provider=FakeProvider(), eth=eth), OTHER, RECIPIENT)
        assert node.reverted_in_latest_block() == 2

    def test_rpc_error_raised(self):
        provider = FakeProvider({"evm_mine": {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}}})
        with pytest.raises(RpcError, match="evm_mine"):
            make_node(provider).mine_block()
