from __future__ import annotations

import math
import sys
import threading
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from airdrop_ledger.models import RawEvent
from airdrop_ledger.source import EventSource


class ScanCancelled(RuntimeError):
    pass


@dataclass(frozen=True)
class ScannedWindow:
    from_block: int
    to_block: int
    events: List[RawEvent]
    attempts: int


class WindowedScanner:
    """Walks [start_block, end_block) in fixed-size windows, one source query per window.

    A failed query is retried on the same window after `retry_delay_s`, with no
    upper bound on attempts. Windows are never skipped and never fetched twice
    once they succeed.
    """

    def __init__(
        self,
        source: EventSource,
        *,
        start_block: int,
        end_block: int,
        window_size: int,
        window_delay_s: float = 1.0,
        retry_delay_s: float = 1.0,
        stop: Optional[threading.Event] = None,
    ) -> None:
        if isinstance(window_size, bool) or not isinstance(window_size, int) or window_size < 1:
            raise ValueError(f"window_size must be an integer >= 1, got {window_size!r}")
        for name, delay in (("window_delay_s", window_delay_s), ("retry_delay_s", retry_delay_s)):
            if not math.isfinite(float(delay)) or delay < 0:
                raise ValueError(f"{name} must be a finite number >= 0, got {delay!r}")
        self.source = source
        self.start_block = int(start_block)
        self.end_block = int(end_block)
        self.window_size = window_size
        self.window_delay_s = float(window_delay_s)
        self.retry_delay_s = float(retry_delay_s)
        self.stop = stop

    def windows(self) -> Iterator[Tuple[int, int]]:
        for i in range(self.start_block, self.end_block, self.window_size):
            yield i, i + self.window_size - 1

    def window_count(self) -> int:
        return len(range(self.start_block, self.end_block, self.window_size))

    def _check_stop(self) -> None:
        if self.stop is not None and self.stop.is_set():
            raise ScanCancelled("scan cancelled")

    def scan(self) -> Iterator[ScannedWindow]:
        total = self.window_count()
        for n, (from_block, to_block) in enumerate(self.windows()):
            attempts = 0
            while True:
                self._check_stop()
                attempts += 1
                print(
                    f"- processing: index={from_block} left={self.end_block - from_block} windows_left={total - n}",
                    file=sys.stderr,
                )
                try:
                    events = list(self.source.get_events(from_block, to_block))
                    break
                except Exception as e:
                    print(f" - trying again: {from_block}..{to_block} (attempt {attempts}): {e}", file=sys.stderr)
                    self._check_stop()
                    time.sleep(self.retry_delay_s)

            yield ScannedWindow(from_block=from_block, to_block=to_block, events=events, attempts=attempts)

            if self.window_delay_s > 0 and n + 1 < total:
                time.sleep(self.window_delay_s)
