from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from airdrop_ledger.allocation import AllocationCalculator
from airdrop_ledger.models import AggregationState, LedgerEntry
from airdrop_ledger.utils import read_json, write_json_atomic


def consolidate(state: AggregationState, calculator: Optional[AllocationCalculator] = None) -> List[LedgerEntry]:
    """One entry per address, in first-contribution order. Does not touch `state`."""
    entries: List[LedgerEntry] = []
    for address, record in state.records.items():
        if calculator is not None:
            record = replace(record, secondary_allocation=calculator.derive(record.primary_amount))
        entries.append(
            LedgerEntry(
                address=address,
                primary_amount=str(int(record.primary_amount)),
                first_tx_hash=record.first_tx_hash,
                secondary_allocation=(
                    str(record.secondary_allocation) if record.secondary_allocation is not None else None
                ),
            )
        )
    return entries


def ledger_totals(entries: List[LedgerEntry]) -> Dict[str, Any]:
    primary = sum(int(e.primary_amount) for e in entries)
    with_secondary = [e for e in entries if e.secondary_allocation is not None]
    secondary = sum(int(e.secondary_allocation) for e in with_secondary)  # type: ignore[arg-type]
    return {
        "contributors": len(entries),
        "primary_amount": str(primary),
        "secondary_allocation": str(secondary) if with_secondary else None,
    }


def write_ledger(
    path: str,
    entries: List[LedgerEntry],
    *,
    state: Optional[AggregationState] = None,
    inputs: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    totals = ledger_totals(entries)
    if state is not None:
        totals["events_processed"] = state.events_processed
        totals["duplicates_skipped"] = state.duplicates_skipped
    doc = {
        "generated_at_utc": datetime.now(tz=timezone.utc).isoformat(),
        "inputs": inputs or {},
        "totals": totals,
        "entries": [e.to_json() for e in entries],
    }
    write_json_atomic(path, doc)
    return doc


def parse_ledger(payload: Any) -> List[LedgerEntry]:
    rows = payload.get("entries") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ValueError("ledger must be a list of entries or an object with an 'entries' list")

    entries: List[LedgerEntry] = []
    seen = set()
    for i, row in enumerate(rows):
        try:
            entry = LedgerEntry.from_json(row)
        except KeyError as e:
            raise ValueError(f"ledger entry {i} missing field {e}") from e
        if entry.address in seen:
            raise ValueError(f"duplicate address in ledger: {entry.address} (entry {i})")
        seen.add(entry.address)
        entries.append(entry)
    return entries


def read_ledger(path: str) -> List[LedgerEntry]:
    return parse_ledger(read_json(path))
