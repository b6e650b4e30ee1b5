"""PoolHandle and NodeControl over a development node's JSON-RPC (anvil, hardhat).

The pool and the test callee are assumed to be deployed already; the sender
account must be unlocked on the node.
"""

import logging
from typing import Optional, Sequence

from eth_abi import decode
from web3 import Web3
from web3.exceptions import ContractLogicError
from web3.types import RPCEndpoint

from pool_replay.core.calls import SwapCall, encode_multicall, resolve_price_limit
from pool_replay.core.errors import PoolRevert
from pool_replay.core.events import SwapDirection
from pool_replay.core.interfaces import (
    CollectResult,
    LiquidityResult,
    NodeControl,
    PoolEvent,
    PoolHandle,
    PoolLogKind,
    PoolReceipt,
    SubmissionReceipt,
    SwapResult,
)
from pool_replay.evm.abi import CALLEE_ABI, POOL_ABI

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_TIMEOUT = 120


class RpcError(RuntimeError):
    """The node answered a JSON-RPC request with an error object."""


def _event_signature(abi_entry: dict) -> str:
    types = ",".join(param["type"] for param in abi_entry["inputs"])
    return f"{abi_entry['name']}({types})"


def _data_types(abi_entry: dict) -> list[str]:
    return [param["type"] for param in abi_entry["inputs"] if not param["indexed"]]


def _data_names(abi_entry: dict) -> list[str]:
    return [param["name"] for param in abi_entry["inputs"] if not param["indexed"]]


_POOL_EVENTS = {
    PoolLogKind(entry["name"]): entry for entry in POOL_ABI if entry["type"] == "event"
}
_TOPICS = {
    bytes(Web3.keccak(text=_event_signature(entry))): kind for kind, entry in _POOL_EVENTS.items()
}


def decode_pool_logs(logs: Sequence[dict], pool_address: str) -> dict[PoolLogKind, PoolEvent]:
    """Decode pool events in ``logs`` by topic and emitting address.

    Logs from other contracts (tokens, the callee) are skipped, so the result
    does not depend on where in the receipt the pool's event landed.
    """
    decoded: dict[PoolLogKind, PoolEvent] = {}
    pool_address = pool_address.lower()
    for log in logs:
        if str(log["address"]).lower() != pool_address or not log["topics"]:
            continue
        kind = _TOPICS.get(bytes(log["topics"][0]))
        if kind is None:
            continue
        entry = _POOL_EVENTS[kind]
        values = dict(zip(_data_names(entry), decode(_data_types(entry), bytes(log["data"]))))
        if kind is PoolLogKind.SWAP:
            decoded[kind] = SwapResult(
                amount0=values["amount0"],
                amount1=values["amount1"],
                liquidity=values["liquidity"],
                sqrt_price_x96=values["sqrtPriceX96"],
            )
        elif kind is PoolLogKind.COLLECT:
            decoded[kind] = CollectResult(values["amount0"], values["amount1"])
        else:
            decoded[kind] = LiquidityResult(values["amount0"], values["amount1"])
    return decoded


class RpcPool(PoolHandle):
    """A deployed pool driven through the test callee contract."""

    def __init__(
        self,
        w3: Web3,
        pool_address: str,
        callee_address: str,
        sender: str,
        recipient: Optional[str] = None,
        receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT,
    ):
        self.w3 = w3
        self.address = Web3.to_checksum_address(pool_address)
        self.sender = Web3.to_checksum_address(sender)
        self.recipient = Web3.to_checksum_address(recipient or sender)
        self.receipt_timeout = receipt_timeout
        self.pool = w3.eth.contract(address=self.address, abi=POOL_ABI)
        self.callee = w3.eth.contract(address=Web3.to_checksum_address(callee_address), abi=CALLEE_ABI)

    def _transact(self, fn) -> Optional[PoolReceipt]:
        try:
            tx_hash = fn.transact({"from": self.sender})
        except ContractLogicError as e:
            raise PoolRevert(f"{fn.fn_name} reverted: {e}", reason=str(e)) from e
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt is None:
            return None
        if receipt["status"] != 1:
            raise PoolRevert(f"transaction {tx_hash.hex()} reverted")
        return PoolReceipt(
            events=decode_pool_logs(receipt["logs"], self.address),
            gas_used=receipt["gasUsed"],
            tx_hash=tx_hash.hex(),
        )

    def initialize(self, sqrt_price_x96: int) -> None:
        self._transact(self.pool.functions.initialize(sqrt_price_x96))

    def add_liquidity(self, tick_lower: int, tick_upper: int, amount: int) -> Optional[PoolReceipt]:
        return self._transact(
            self.callee.functions.mint(self.address, self.recipient, tick_lower, tick_upper, amount)
        )

    def remove_liquidity(
        self, tick_lower: int, tick_upper: int, amount: int
    ) -> Optional[PoolReceipt]:
        return self._transact(
            self.callee.functions.burn(self.address, tick_lower, tick_upper, amount)
        )

    def collect_fees(self, tick_lower: int, tick_upper: int) -> Optional[PoolReceipt]:
        return self._transact(self.callee.functions.collect(self.address, tick_lower, tick_upper))

    def swap_exact_0_for_1(
        self, amount_in: int, recipient: str, sqrt_price_limit_x96: int
    ) -> Optional[PoolReceipt]:
        limit = resolve_price_limit(SwapDirection.ZERO_FOR_ONE, sqrt_price_limit_x96)
        return self._transact(
            self.callee.functions.swapExact0For1(
                self.address, amount_in, Web3.to_checksum_address(recipient), limit
            )
        )

    def swap_exact_1_for_0(
        self, amount_in: int, recipient: str, sqrt_price_limit_x96: int
    ) -> Optional[PoolReceipt]:
        limit = resolve_price_limit(SwapDirection.ONE_FOR_ZERO, sqrt_price_limit_x96)
        return self._transact(
            self.callee.functions.swapExact1For0(
                self.address, amount_in, Web3.to_checksum_address(recipient), limit
            )
        )

    def current_price(self) -> int:
        return self.pool.functions.slot0().call()[0]


class RpcNode(NodeControl):
    """Node controls through anvil/hardhat ``evm_*`` methods."""

    def __init__(self, w3: Web3, callee_address: str, sender: str):
        self.w3 = w3
        self.callee_address = Web3.to_checksum_address(callee_address)
        self.sender = Web3.to_checksum_address(sender)

    @classmethod
    def from_url(cls, url: str, callee_address: str, sender: str) -> "RpcNode":
        return cls(Web3(Web3.HTTPProvider(url)), callee_address, sender)

    def _request(self, method: str, params: list):
        response = self.w3.provider.make_request(RPCEndpoint(method), params)
        if response.get("error"):
            raise RpcError(f"{method} failed: {response['error']}")
        return response.get("result")

    def set_next_block_timestamp(self, unix_seconds: int) -> None:
        self._request("evm_setNextBlockTimestamp", [unix_seconds])

    def set_interval_mining(self, seconds: int) -> None:
        self._request("evm_setIntervalMining", [seconds])

    def mine_block(self) -> None:
        self._request("evm_mine", [])

    def set_logging_enabled(self, enabled: bool) -> None:
        self._request("anvil_setLoggingEnabled", [enabled])

    def gas_price(self) -> int:
        return self.w3.eth.gas_price

    def reverted_in_latest_block(self) -> Optional[int]:
        block = self.w3.eth.get_block("latest")
        return sum(
            1
            for tx_hash in block["transactions"]
            if self.w3.eth.get_transaction_receipt(tx_hash)["status"] != 1
        )

    def _send_unsigned(self, data: bytes, gas_limit: int, gas_price: int) -> Optional[str]:
        tx = {
            "from": self.sender,
            "to": self.callee_address,
            "data": "0x" + data.hex(),
            "gas": hex(gas_limit),
            "gasPrice": hex(gas_price),
        }
        return self._request("eth_sendUnsignedTransaction", [tx])

    def submit_batch(
        self, calls: Sequence[SwapCall], gas_limit: int, gas_price: int
    ) -> Optional[SubmissionReceipt]:
        tx_hash = self._send_unsigned(encode_multicall(calls), gas_limit, gas_price)
        if tx_hash is None:
            return None
        logger.debug("Submitted multicall of %d swaps: %s", len(calls), tx_hash)
        return SubmissionReceipt(tx_hash=tx_hash, call_count=len(calls))

    def submit_unsigned(
        self, call: SwapCall, gas_limit: int, gas_price: int
    ) -> Optional[SubmissionReceipt]:
        tx_hash = self._send_unsigned(call.calldata, gas_limit, gas_price)
        if tx_hash is None:
            return None
        return SubmissionReceipt(tx_hash=tx_hash, call_count=1)
