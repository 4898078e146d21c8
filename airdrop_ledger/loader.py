"""
Chunked claim loading.

The claim contract accepts `loadClaims(address[], uint256[])` with a bounded
batch size per transaction. Chunks are submitted one at a time, in ledger
order, and each confirmation is awaited before the next chunk goes out.

A failed chunk aborts the load. Nothing is rolled back: compare the sink's
`totalLoaded()` with the per-chunk totals printed during the run, then re-run
with `start_chunk` set to the first unconfirmed chunk.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Protocol, Sequence

from airdrop_ledger.models import LedgerEntry
from airdrop_ledger.utils import parse_uint

DEFAULT_CHUNK_SIZE = 250


class ClaimSink(Protocol):
    def submit_batch(self, addresses: List[str], amounts: List[str]) -> str:
        ...

    def get_total_loaded(self) -> int:
        ...

    def get_total_users(self) -> int:
        ...


class LoadError(RuntimeError):
    def __init__(self, message: str, *, chunk_index: int, amount_confirmed: int, entries_confirmed: int) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
        self.amount_confirmed = amount_confirmed
        self.entries_confirmed = entries_confirmed


def chunked(entries: Sequence[LedgerEntry], chunk_size: int) -> Iterator[List[LedgerEntry]]:
    for i in range(0, len(entries), chunk_size):
        yield list(entries[i : i + chunk_size])


@dataclass
class LoadResult:
    chunks_total: int
    chunks_skipped: int = 0
    chunks_submitted: int = 0
    entries_submitted: int = 0
    amount_submitted: int = 0
    confirmations: List[str] = field(default_factory=list)
    total_loaded_before: int = 0
    total_loaded_after: int = 0
    users_before: int = 0
    users_after: int = 0

    @property
    def amount_verified(self) -> bool:
        return self.total_loaded_after - self.total_loaded_before == self.amount_submitted

    @property
    def count_verified(self) -> bool:
        return self.users_after - self.users_before == self.entries_submitted

    @property
    def verified(self) -> bool:
        return self.amount_verified and self.count_verified


class ChunkedLoader:
    def __init__(self, sink: ClaimSink, chunk_size: int = DEFAULT_CHUNK_SIZE, *, use_allocation: bool = False) -> None:
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
            raise ValueError(f"chunk_size must be an integer >= 1, got {chunk_size!r}")
        self.sink = sink
        self.chunk_size = chunk_size
        self.use_allocation = use_allocation

    def amount_of(self, entry: LedgerEntry) -> str:
        if self.use_allocation:
            if entry.secondary_allocation is None:
                raise ValueError(f"ledger entry {entry.address} has no secondary_allocation")
            return entry.secondary_allocation
        return entry.primary_amount

    def check(self, entries: Sequence[LedgerEntry]) -> None:
        seen = set()
        for entry in entries:
            if entry.address in seen:
                raise ValueError(f"duplicate address in ledger: {entry.address}")
            seen.add(entry.address)
            parse_uint(self.amount_of(entry))

    def load(self, entries: Sequence[LedgerEntry], *, start_chunk: int = 0) -> LoadResult:
        self.check(entries)
        chunks = list(chunked(entries, self.chunk_size))
        if start_chunk < 0 or (chunks and start_chunk >= len(chunks)):
            raise ValueError(f"start_chunk {start_chunk} out of range for {len(chunks)} chunks")

        result = LoadResult(chunks_total=len(chunks))
        result.total_loaded_before = int(self.sink.get_total_loaded())
        result.users_before = int(self.sink.get_total_users())

        for idx, chunk in enumerate(chunks):
            if idx < start_chunk:
                result.chunks_skipped += 1
                continue

            addresses = [e.address for e in chunk]
            amounts = [self.amount_of(e) for e in chunk]
            if len(addresses) != len(amounts):
                raise ValueError(f"chunk {idx}: {len(addresses)} addresses vs {len(amounts)} amounts")
            chunk_amount = sum(int(a) for a in amounts)

            print(f"- loading chunk {idx + 1}/{len(chunks)}: {len(chunk)} claims, amount={chunk_amount}", file=sys.stderr)
            try:
                confirmation = self.sink.submit_batch(addresses, amounts)
            except Exception as e:
                raise LoadError(
                    f"chunk {idx} ({len(chunk)} claims) failed: {e}",
                    chunk_index=idx,
                    amount_confirmed=result.amount_submitted,
                    entries_confirmed=result.entries_submitted,
                ) from e

            result.chunks_submitted += 1
            result.entries_submitted += len(chunk)
            result.amount_submitted += chunk_amount
            result.confirmations.append(str(confirmation))
            print(f"  confirmed {confirmation} (running total {result.amount_submitted})", file=sys.stderr)

        result.total_loaded_after = int(self.sink.get_total_loaded())
        result.users_after = int(self.sink.get_total_users())

        if not result.amount_verified:
            print(
                f"WARNING: sink total loaded moved by {result.total_loaded_after - result.total_loaded_before}, "
                f"submitted {result.amount_submitted}",
                file=sys.stderr,
            )
        if not result.count_verified:
            print(
                f"WARNING: sink user count moved by {result.users_after - result.users_before}, "
                f"submitted {result.entries_submitted} entries",
                file=sys.stderr,
            )
        return result


def describe(result: LoadResult, entries: Optional[Sequence[LedgerEntry]] = None) -> List[str]:
    lines = [
        f"- chunks: {result.chunks_submitted} submitted, {result.chunks_skipped} skipped, {result.chunks_total} total",
        f"- entries submitted: {result.entries_submitted}",
        f"- amount submitted: {result.amount_submitted}",
        f"- sink total loaded: {result.total_loaded_before} -> {result.total_loaded_after}",
        f"- sink users: {result.users_before} -> {result.users_after}",
        f"- verified: {'yes' if result.verified else 'NO'}",
    ]
    if entries is not None:
        lines.insert(0, f"- ledger entries: {len(entries)}")
    return lines
