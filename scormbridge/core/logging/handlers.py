# scormbridge/core/logging/handlers.py
from __future__ import annotations
from collections import deque
import logging
import threading
from typing import TYPE_CHECKING

from .formatters import HostLineFormatter

if TYPE_CHECKING:
    from scormbridge.bridge.channel import HostChannel
    from scormbridge.bridge.main_context import MainContext



class HostLogHandler(logging.Handler):
    """
    Forwards log lines to the host page's log function (DebugPrint by default).
    One handler per bridge session; pair it with SessionLogFilter so a page
    only ever sees its own session's lines.

    - Buffers formatted lines in a bounded deque (oldest dropped first)
    - Flushes in batches on the main context, which owns every host call
    - Never raises and never blocks the emitting thread
    """
    def __init__(self, *, maxQueue: int = 2000, batchSize: int = 50):
        super().__init__()
        # If maxQueue <= 0, treat as unbounded (deque maxlen=None)
        self._deque: deque[str] = deque(maxlen=maxQueue if maxQueue and maxQueue > 0 else None)
        self._batchSize = max(1, int(batchSize))
        self._lock = threading.Lock()
        self._flushScheduled = False
        self._mainContext: MainContext | None = None
        self._channel: HostChannel | None = None
        self._functionName = "DebugPrint"

        self.setFormatter(HostLineFormatter())

    def emit(self, record: logging.LogRecord):
        try:
            line = self.format(record)
        except Exception:
            # Never crash during logging
            line = "[error] log format failed"
        
        # Deque append/popleft are thread-safe primitives
        self._deque.append(line)
        self._scheduleFlush()
    
    def _scheduleFlush(self) -> None:
        with self._lock:
            mainContext = self._mainContext
            if mainContext is None or self._channel is None or self._flushScheduled:
                return
            self._flushScheduled = True
        try:
            mainContext.post(self._flush)
        except Exception:
            # Main context is gone; lines stay buffered until the next bind()
            with self._lock:
                self._flushScheduled = False

    def _flush(self) -> None:
        """Runs on the main context."""
        channel = self._channel
        functionName = self._functionName
        sent = 0
        while channel is not None and self._deque and sent < self._batchSize:
            line = self._deque.popleft()
            try:
                channel.call(functionName, line)
            except Exception:
                # Host sink is fire-and-forget; a failing page must not break logging
                pass
            sent += 1
        with self._lock:
            self._flushScheduled = False
        if self._deque:
            self._scheduleFlush()
    
    def bind(self, mainContext: MainContext, channel: HostChannel, functionName: str = "DebugPrint") -> None:
        """
        Attach the handler to a host channel. Backlog collected while unbound
        is flushed right away.
        """
        with self._lock:
            self._mainContext = mainContext
            self._channel = channel
            self._functionName = functionName
            self._flushScheduled = False
        if self._deque:
            self._scheduleFlush()

    def unbind(self, channel: HostChannel | None = None) -> None:
        """Detach from `channel` (or from whatever is bound when None)."""
        with self._lock:
            if channel is not None and channel is not self._channel:
                return
            self._mainContext = None
            self._channel = None
            self._flushScheduled = False

    @property
    def isBound(self) -> bool:
        return self._channel is not None

    def pendingLines(self) -> int:
        return len(self._deque)
