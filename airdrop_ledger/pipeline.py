from __future__ import annotations

from typing import List, Optional, Tuple

from airdrop_ledger.aggregate import ContributionAggregator, EventDeduplicator, is_recognized
from airdrop_ledger.allocation import AllocationCalculator
from airdrop_ledger.ledger import consolidate
from airdrop_ledger.models import AggregationState, LedgerEntry
from airdrop_ledger.scanner import WindowedScanner


def scan_contributions(scanner: WindowedScanner, state: Optional[AggregationState] = None) -> AggregationState:
    """Run the scan to completion and return the frozen state.

    If the scanner is cancelled the exception propagates and the state is left
    as it was; nothing downstream runs.
    """
    state = state if state is not None else AggregationState()
    dedup = EventDeduplicator(state)
    aggregator = ContributionAggregator(state)

    for window in scanner.scan():
        for event in window.events:
            if not is_recognized(event):
                continue
            if not dedup.admit(event):
                continue
            aggregator.apply(event)

    state.freeze()
    return state


def build_ledger(
    scanner: WindowedScanner, calculator: Optional[AllocationCalculator] = None
) -> Tuple[AggregationState, List[LedgerEntry]]:
    state = scan_contributions(scanner)
    return state, consolidate(state, calculator)
