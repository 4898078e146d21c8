from __future__ import annotations

from airdrop_ledger.models import AggregationState, ContributionRecord, RawEvent
from airdrop_ledger.utils import normalize_address, parse_uint

RECOGNIZED_EVENT = "Buy"


def is_recognized(event: RawEvent) -> bool:
    return event.event_name == RECOGNIZED_EVENT


class EventDeduplicator:
    def __init__(self, state: AggregationState) -> None:
        self.state = state

    def admit(self, event: RawEvent) -> bool:
        self.state.ensure_mutable()
        key = event.identity
        if key in self.state.seen:
            self.state.duplicates_skipped += 1
            return False
        self.state.seen.add(key)
        return True


class ContributionAggregator:
    """Folds admitted Buy events into per-address base-unit totals.

    Input is trusted to be deduplicated already.
    """

    def __init__(self, state: AggregationState) -> None:
        self.state = state

    def apply(self, event: RawEvent) -> ContributionRecord:
        self.state.ensure_mutable()
        try:
            user = normalize_address(event.fields["user"])
            amount = parse_uint(event.fields["amount"])
        except KeyError as e:
            raise ValueError(f"{event.event_name} event {event.identity} missing field {e}") from e

        record = self.state.records.get(user)
        if record is None:
            record = ContributionRecord(address=user, first_tx_hash=event.transaction_hash.lower())
            self.state.records[user] = record
        record.primary_amount += amount
        self.state.events_processed += 1
        return record
