"""
rime-filter – progress.py
=========================

Throttled progress notifications shared by the extraction and filter stages.

Large dictionaries hold hundreds of thousands of lines; rewriting the
progress line for each of them would dominate the run time on a slow
terminal. :class:`ProgressReporter` therefore records every update but only
prints one when at least ``interval`` seconds elapsed since the previous one.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Callable
from typing import TextIO

from rimefilter.console import COLOR_BLUE, COLOR_GREEN, tag

#: Minimum delay between two emitted notifications, in seconds.
DEFAULT_INTERVAL = 0.1


class ProgressReporter:
    """Single-line, carriage-return rewritten progress display.

    Args:
        total: Expected number of items (``0`` is reported as 100%).
        label: Short description printed before the counters.
        stream: Destination of the notifications (``sys.stdout`` by default).
        clock: Monotonic clock returning seconds; injectable for tests.
        interval: Minimum delay between two emitted updates.
        enabled: When ``False`` counters are tracked but nothing is printed.
    """

    def __init__(
        self,
        total: int,
        label: str = "processed",
        *,
        stream: TextIO | None = None,
        clock: Callable[[], float] = time.monotonic,
        interval: float = DEFAULT_INTERVAL,
        enabled: bool = True,
    ) -> None:
        self.total = total
        self.current = 0
        self.label = label
        self.stream = stream if stream is not None else sys.stdout
        self.clock = clock
        self.interval = interval
        self.enabled = enabled
        self.emitted = 0
        self.completed = False
        self._last = clock()

    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return self.current * 100.0 / self.total

    def update(self, current: int, total: int | None = None) -> None:
        """Record progress; print it only if the throttle interval elapsed."""
        self.current = current
        if total is not None:
            self.total = total

        now = self.clock()
        if now - self._last < self.interval:
            return
        self._last = now
        self._write(
            f"\r{tag('progress', COLOR_BLUE, self.stream)} {self.label} "
            f"{self.current}/{self.total} ({self.percentage():.1f}%)"
        )

    def complete(self) -> None:
        """Print the final 100% line; later calls do nothing."""
        if self.completed:
            return
        self.completed = True
        self.current = self.total
        self._write(
            f"\r{tag('done', COLOR_GREEN, self.stream)} {self.label} "
            f"{self.total}/{self.total} (100.0%)\n"
        )

    def _write(self, text: str) -> None:
        if not self.enabled:
            return
        try:
            self.stream.write(text)
            self.stream.flush()
        except (OSError, ValueError):
            # progress output is best-effort
            return
        self.emitted += 1
