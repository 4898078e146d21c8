"""
Presale contribution events via eth_getLogs.

The presale contract emits `Buy(address indexed user, uint256 amount)` once per
purchase. Everything else the contract logs is passed through with an empty
event name so the pipeline can drop it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

from airdrop_ledger.models import RawEvent
from airdrop_ledger.rpc import RpcClient, RpcError
from airdrop_ledger.utils import decode_words, keccak_topic, normalize_address, topic_to_address

BUY_SIGNATURE = "Buy(address,uint256)"

TOPIC0 = {
    "Buy": keccak_topic(BUY_SIGNATURE),
}

TOO_MANY_RESULTS = (
    "more than",
    "too many results",
    "response size exceeded",
    "query returned more than",
    "block range too wide",
)


class EventSource(Protocol):
    def get_events(self, from_block: int, to_block: int) -> List[RawEvent]:
        ...


def _hex_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    s = str(value or "0x0")
    return int(s, 16) if s.startswith("0x") else int(s)


def decode_log(log: Dict[str, Any]) -> RawEvent:
    topics = [str(t).lower() for t in (log.get("topics") or [])]
    block_number = _hex_int(log.get("blockNumber"))
    tx_hash = str(log.get("transactionHash") or "").lower()
    log_index = _hex_int(log.get("logIndex"))

    if topics and topics[0] == TOPIC0["Buy"] and len(topics) >= 2:
        (amount,) = decode_words(str(log.get("data") or "0x"), 1)
        return RawEvent(
            event_name="Buy",
            block_number=block_number,
            transaction_hash=tx_hash,
            log_index=log_index,
            fields={"user": topic_to_address(topics[1]), "amount": str(amount)},
        )

    return RawEvent(event_name="", block_number=block_number, transaction_hash=tx_hash, log_index=log_index)


class RpcEventSource:
    def __init__(self, client: RpcClient, contract: str, *, max_splits: int = 12) -> None:
        self.client = client
        self.contract = normalize_address(contract)
        self.max_splits = max_splits

    def _get_logs(self, from_block: int, to_block: int) -> List[Dict[str, Any]]:
        params = {
            "address": self.contract,
            "fromBlock": hex(int(from_block)),
            "toBlock": hex(int(to_block)),
        }
        res = self.client.call("eth_getLogs", [params])
        if res is None:
            return []
        if not isinstance(res, list):
            raise RpcError(f"malformed eth_getLogs result: {str(res)[:200]}")
        return res

    def _get_logs_range(self, from_block: int, to_block: int, max_splits: int) -> List[Dict[str, Any]]:
        try:
            return self._get_logs(from_block, to_block)
        except RpcError as e:
            msg = str(e).lower()
            too_many = any(s in msg for s in TOO_MANY_RESULTS)
            if not too_many or max_splits <= 0 or from_block >= to_block:
                raise
            mid = (from_block + to_block) // 2
            left = self._get_logs_range(from_block, mid, max_splits - 1)
            right = self._get_logs_range(mid + 1, to_block, max_splits - 1)
            return left + right

    def get_events(self, from_block: int, to_block: int) -> List[RawEvent]:
        logs = self._get_logs_range(int(from_block), int(to_block), self.max_splits)
        # eth_getLogs is ordered by (blockNumber, logIndex); keep it that way after splits.
        events = [decode_log(log) for log in logs]
        events.sort(key=lambda e: (e.block_number, e.log_index))
        return events
