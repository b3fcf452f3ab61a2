# scormbridge/bridge/reply_queue.py
from __future__ import annotations
from collections import deque
import logging
import threading
from typing import TYPE_CHECKING

from .codec import parseReply
from .models import MalformedReply

if TYPE_CHECKING:
    from .pending import PendingCallTable

logger = logging.getLogger(__name__)

__all__ = ["ReplyQueue"]



class ReplyQueue:
    """
    Inbound buffer for raw host replies.

    push() is called from the main context and only touches the queue lock.
    drainInto() is called by waiting workers; it empties the queue under the
    queue lock, releases it, and only then delivers into the pending table.
    The two locks are never held together.

    An activity sequence number, bumped on every push and on every delivering
    drain, lets waiters sleep on the condition without missing a wakeup.
    """
    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._items: deque[str] = deque()
        self._seq = 0

    def push(self, raw: str) -> None:
        with self._cond:
            self._items.append(raw)
            self._seq += 1
            self._cond.notify_all()

    @property
    def sequence(self) -> int:
        with self._cond:
            return self._seq

    def drainInto(self, table: PendingCallTable) -> int:
        with self._cond:
            if not self._items:
                return 0
            batch = list(self._items)
            self._items.clear()

        delivered = 0
        for raw in batch:
            parsed = parseReply(raw)
            if isinstance(parsed, MalformedReply):
                logger.warning("Discarding malformed reply %r: %s", parsed.raw, parsed.reason)
                continue
            if table.deliver(parsed.toResult()):
                delivered += 1
            else:
                logger.debug("Discarding reply for unknown key #%d", parsed.key)

        if delivered:
            # Another waiter may own one of the delivered keys
            self.notifyActivity()
        return delivered

    def notifyActivity(self) -> None:
        """Wakes every waiter without queueing anything (used by abortAll)."""
        with self._cond:
            self._seq += 1
            self._cond.notify_all()

    def waitForActivity(self, sinceSeq: int, timeoutS: float) -> bool:
        """
        Blocks until the sequence moves past `sinceSeq` or `timeoutS` elapses.
        Returns True if there was activity.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._seq != sinceSeq, timeout=max(0.0, timeoutS))

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)
