# promptpacks/core/logging/filters.py
from __future__ import annotations
import logging
import time
import threading
from collections import deque, defaultdict
from collections.abc import Callable

from promptpacks.core.redaction import redactText

__all__ = ["RecurringSuppressFilter"]

# Upper bound for normalized keys
MAX_KEY_LEN = 512



class RecurringSuppressFilter(logging.Filter):
    """
    Suppresses recurring identical log messages after `maxPerWindow` occurrences
    within a sliding `windowSeconds`. Emits a summary once the window slides and
    logging resumes for that key.

    A periodic sync against an unreachable index logs the same warning every
    cycle; this keeps the log readable over long sessions.

    Key = (logger name, levelno, normalized message)
    """
    def __init__(
            self,
            *,
            windowSeconds: int = 60,
            maxPerWindow: int = 5,
            summaryLevel: int = logging.INFO,
            normalize: Callable[[logging.LogRecord], str] | None = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self.windowSeconds = max(1, int(windowSeconds))
        self.maxPerWindow = max(1, int(maxPerWindow))
        self.summaryLevel = int(summaryLevel)
        self.normalize = normalize or self._defaultNormalize
        self._clock = clock

        # Per-key sliding window of timestamps
        self._buckets: dict[tuple[str, int, str], deque[float]] = defaultdict(deque)
        # Suppressed count not yet reported
        self._suppressedCounts: dict[tuple[str, int, str], int] = defaultdict(int)
        self._lock = threading.Lock()

    def _defaultNormalize(self, record: logging.LogRecord) -> str:
        norm = " ".join(redactText(record.getMessage()).split())
        if len(norm) > MAX_KEY_LEN:
            norm = norm[:MAX_KEY_LEN] + "…"
        return norm

    def _pruneOld(self, dq: deque[float], now: float) -> None:
        limit = now - self.windowSeconds
        while dq and dq[0] < limit:
            dq.popleft()

    def _emitSummary(self, key: tuple[str, int, str], suppressedCount: int) -> None:
        loggerName, _levelno, normMessage = key
        # Marked so this filter lets it through
        logging.getLogger(loggerName).log(
            self.summaryLevel,
            "Suppressed %d repeated logs: %s",
            suppressedCount,
            normMessage,
            extra={"_noRecurringSuppress": True},
        )

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "_noRecurringSuppress", False):
            return True

        now = self._clock()
        key = (record.name, record.levelno, self.normalize(record))
        suppressedCount = 0

        with self._lock:
            dq = self._buckets[key]
            self._pruneOld(dq, now)
            dq.append(now)
            if len(dq) <= self.maxPerWindow:
                suppressedCount = self._suppressedCounts.pop(key, 0)
            else:
                self._suppressedCounts[key] += 1
                return False

        # Outside the lock: the summary record passes back through this filter
        if suppressedCount > 0:
            self._emitSummary(key, suppressedCount)
        return True
