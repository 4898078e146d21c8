from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from airdrop_ledger.models import RawEvent

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20


def buy(user: str, amount: int, *, tx: str, log_index: int = 0, block: int = 100) -> RawEvent:
    return RawEvent(
        event_name="Buy",
        block_number=block,
        transaction_hash=tx,
        log_index=log_index,
        fields={"user": user, "amount": str(amount)},
    )


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


def address(n: int) -> str:
    return "0x" + f"{n:040x}"


class ScriptedSource:
    """Event source keyed by window start; can fail a window a number of times first."""

    def __init__(
        self,
        events_by_window: Optional[Dict[int, List[RawEvent]]] = None,
        *,
        failures: Optional[Dict[int, int]] = None,
    ) -> None:
        self.events_by_window = events_by_window or {}
        self.failures = dict(failures or {})
        self.calls: List[Tuple[int, int]] = []

    def get_events(self, from_block: int, to_block: int) -> List[RawEvent]:
        self.calls.append((from_block, to_block))
        if self.failures.get(from_block, 0) > 0:
            self.failures[from_block] -= 1
            raise ConnectionError(f"upstream hiccup at {from_block}")
        return list(self.events_by_window.get(from_block, []))
