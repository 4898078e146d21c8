from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set, Tuple

from airdrop_ledger.utils import normalize_address, parse_uint


@dataclass(frozen=True)
class RawEvent:
    event_name: str
    block_number: int
    transaction_hash: str
    log_index: int
    fields: Dict[str, str] = field(default_factory=dict)

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.transaction_hash.lower(), int(self.log_index))


@dataclass
class ContributionRecord:
    address: str
    primary_amount: int = 0
    first_tx_hash: str = ""
    secondary_allocation: Optional[int] = None


@dataclass
class AggregationState:
    """Per-run scan state.

    Created empty, mutated by the deduplicator and aggregator while the scan
    runs, then frozen before it is handed to the consolidator.
    """

    records: Dict[str, ContributionRecord] = field(default_factory=dict)
    seen: Set[Tuple[str, int]] = field(default_factory=set)
    events_processed: int = 0
    duplicates_skipped: int = 0
    frozen: bool = False

    def ensure_mutable(self) -> None:
        if self.frozen:
            raise RuntimeError("aggregation state is frozen")

    def freeze(self) -> None:
        self.frozen = True

    @property
    def contributors(self) -> int:
        return len(self.records)

    def total_primary(self) -> int:
        return sum(r.primary_amount for r in self.records.values())


@dataclass(frozen=True)
class LedgerEntry:
    address: str
    primary_amount: str
    first_tx_hash: str
    secondary_allocation: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "address": self.address,
            "primary_amount": self.primary_amount,
            "first_tx_hash": self.first_tx_hash,
        }
        if self.secondary_allocation is not None:
            out["secondary_allocation"] = self.secondary_allocation
        return out

    @classmethod
    def from_json(cls, row: Dict[str, Any]) -> "LedgerEntry":
        if not isinstance(row, dict):
            raise ValueError(f"ledger entry must be an object, got {type(row).__name__}")
        secondary = row.get("secondary_allocation")
        return cls(
            address=normalize_address(row["address"]),
            primary_amount=str(parse_uint(row["primary_amount"])),
            first_tx_hash=str(row.get("first_tx_hash") or ""),
            secondary_allocation=str(parse_uint(secondary)) if secondary is not None else None,
        )
