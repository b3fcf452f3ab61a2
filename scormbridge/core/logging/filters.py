# scormbridge/core/logging/filters.py
from __future__ import annotations
import logging
import re
import time
import threading
from collections import deque, defaultdict
from collections.abc import Callable

from scormbridge.core.redaction import redactText
from .context import getLogContext

__all__ = ["SessionLogFilter", "RecurringSuppressFilter"]

# Upper bound for normalized keys
MAX_KEY_LEN = 512
# Upper bound for tracked keys before cleanup kicks in
MAX_TRACKED_KEYS = 5000

# Correlation keys differ on every call ("Call #812 timed out")
_CALL_KEY_RE = re.compile(r"#\d+")



class SessionLogFilter(logging.Filter):
    """Passes only records logged under `sessionId` in the current log context."""
    def __init__(self, sessionId: str):
        super().__init__()
        self.sessionId = sessionId

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = getLogContext()
        return bool(ctx) and ctx.get("sessionId") == self.sessionId



class RecurringSuppressFilter(logging.Filter):
    """
    Suppresses recurring identical log messages (typically repeated bridge
    timeouts while the host page is gone) after `maxPerWindow` occurrences
    within a sliding `windowSeconds`. Emits a summary once logging resumes
    for that key.

    Key = (logger name, levelno, normalized message). Correlation keys
    (#123) are folded so every timeout line shares one key.
    """
    def __init__(
            self,
            *,
            windowSeconds: int = 60,
            maxPerWindow: int = 5,
            summaryLevel: int = logging.INFO,
            normalize: Callable[[logging.LogRecord], str] | None = None,
            maxKeys: int = MAX_TRACKED_KEYS,
    ):
        super().__init__()
        self.windowSeconds = max(1, int(windowSeconds))
        self.maxPerWindow = max(1, int(maxPerWindow))
        self.summaryLevel = int(summaryLevel)
        self.normalize = normalize or self._defaultNormalize
        self.maxKeys = max(10, int(maxKeys))

        self._buckets: dict[tuple[str, int, str], deque[float]] = defaultdict(deque)
        self._suppressedCounts: dict[tuple[str, int, str], int] = defaultdict(int)
        self._lock = threading.Lock()
    
    @property
    def trackedKeys(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _defaultNormalize(self, record: logging.LogRecord) -> str:
        try:
            msg = redactText(record.getMessage())
        except Exception:
            msg = str(record.msg)
        norm = _CALL_KEY_RE.sub("#N", " ".join(str(msg).split()))
        if len(norm) > MAX_KEY_LEN:
            norm = norm[:MAX_KEY_LEN] + "…"
        return norm
    
    def _keyOf(self, record: logging.LogRecord) -> tuple[str, int, str]:
        return (record.name, record.levelno, self.normalize(record))
    
    def _pruneOld(self, dq: deque[float], now: float) -> None:
        limit = now - self.windowSeconds
        while dq and dq[0] < limit:
            dq.popleft()

    def _dropKey(self, key: tuple[str, int, str]) -> None:
        self._buckets.pop(key, None)
        self._suppressedCounts.pop(key, None)

    def _maybeCleanup(self, now: float) -> None:
        """Cleanup old entries from the buckets. Called with the lock held."""
        if len(self._buckets) < self.maxKeys:
            return
        keep = self.maxKeys * 3 // 5
        # Drop keys whose window has emptied and owe no summary
        for key in list(self._buckets)[:len(self._buckets) - keep]:
            dq = self._buckets[key]
            self._pruneOld(dq, now)
            if not dq and not self._suppressedCounts.get(key, 0):
                self._dropKey(key)
        # Still over: many distinct live messages; forget the oldest ones
        overflow = len(self._buckets) - keep
        if overflow > 0:
            for key in list(self._buckets)[:overflow]:
                self._dropKey(key)
        
    def _emitSummary(self, key: tuple[str, int, str]) -> None:
        suppressedCount = self._suppressedCounts.get(key, 0)
        if suppressedCount <= 0:
            return
        loggerName, _levelno, normMessage = key
        lg = logging.getLogger(loggerName)
        try:
            # Marked so the summary is not suppressed by this filter again
            lg.log(
                self.summaryLevel,
                "Suppressed %d repeated logs: %s",
                suppressedCount,
                normMessage,
                extra={"_noRecurringSuppress": True}
            )
        except Exception:
            pass
        finally:
            self._suppressedCounts[key] = 0

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "_noRecurringSuppress", False):
            return True
        
        now = time.monotonic()
        key = self._keyOf(record)

        with self._lock:
            self._maybeCleanup(now)
            dq = self._buckets[key]
            self._pruneOld(dq, now)

            if len(dq) < self.maxPerWindow:
                dq.append(now)
                if self._suppressedCounts.get(key, 0) > 0:
                    self._emitSummary(key)
                return True
            
            self._suppressedCounts[key] += 1
            dq.append(now)
            return False
