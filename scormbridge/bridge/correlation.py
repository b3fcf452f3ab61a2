# scormbridge/bridge/correlation.py
from __future__ import annotations
import logging
import random
from collections.abc import Sequence
from typing import Any

from scormbridge.core.time import nowMonotonicMs
from .cancellation import CancellationToken
from .channel import HostChannel
from .main_context import MainContext
from .models import CallResult
from .pending import PendingCallTable
from .reply_queue import ReplyQueue

logger = logging.getLogger(__name__)

__all__ = ["CorrelationBridge", "DEFAULT_TIMEOUT_MS", "DEFAULT_POLL_INTERVAL_MS"]

DEFAULT_TIMEOUT_MS = 15000
DEFAULT_POLL_INTERVAL_MS = 10



class CorrelationBridge:
    """
    Turns one-way host calls plus asynchronous replies into blocking round
    trips for worker threads.

    Outbound calls are posted onto the main context. Replies come back
    through onReply() (also on the main context), land in the ReplyQueue and
    are moved into the pending table by whichever waiter drains first.
    """

    def __init__(
        self,
        mainContext: MainContext,
        channel: HostChannel,
        *,
        callbackObjectName: str = "ScormManager",
        callbackFunctionName: str = "ScormValueCallback",
        timeoutMs: int = DEFAULT_TIMEOUT_MS,
        pollIntervalMs: int = DEFAULT_POLL_INTERVAL_MS,
        keySpace: int = 65536,
        rng: random.Random | None = None,
    ):
        self.mainContext = mainContext
        self.channel = channel
        self.callbackObjectName = callbackObjectName
        self.callbackFunctionName = callbackFunctionName
        self.timeoutMs = timeoutMs
        self.pollIntervalMs = pollIntervalMs
        self.table = PendingCallTable(keySpace, rng=rng)
        self.queue = ReplyQueue()

    # ----- Keys and sending -----

    def newKey(self) -> int:
        """Reserves a fresh correlation key. Raises KeySpaceExhaustedError when none is free."""
        return self.table.reserve()

    def send(self, functionName: str, args: Sequence[Any], key: int) -> None:
        """
        Fire-and-forget: functionName(*args, callbackObject, callbackFunction, key)
        is invoked on the main context.
        """
        payload = (*args, self.callbackObjectName, self.callbackFunctionName, key)
        logger.debug("send %s #%d", functionName, key)
        self.mainContext.post(self.channel.call, functionName, *payload)

    def sendOneWay(self, functionName: str, *args: Any) -> None:
        """One-way call that expects no reply (commit, terminate, log)."""
        logger.debug("sendOneWay %s", functionName)
        self.mainContext.post(self.channel.call, functionName, *args)

    # ----- Replies -----

    def onReply(self, raw: str) -> None:
        """Host callback target. Only queues; parsing happens in the waiters."""
        try:
            self.queue.push(raw)
        except Exception:
            logger.exception("Failed to queue host reply")

    def runningOnMainContext(self) -> bool:
        return self.mainContext.isCurrent()

    def awaitReply(
        self,
        key: int,
        timeoutMs: int | None = None,
        pollIntervalMs: int | None = None,
        cancelToken: CancellationToken | None = None,
    ) -> CallResult:
        """
        Blocks until the reply for `key` is delivered, the deadline passes,
        or `cancelToken` fires. The pending entry is always removed on return.
        """
        if self.runningOnMainContext():
            # Waiting here would starve the very loop that delivers the reply
            self.table.remove(key)
            logger.error("awaitReply(#%d) called on the main context; refusing to block", key)
            return CallResult.onMainContext(key)

        timeoutMs = self.timeoutMs if timeoutMs is None else timeoutMs
        pollIntervalMs = self.pollIntervalMs if pollIntervalMs is None else pollIntervalMs
        pollS = max(1, pollIntervalMs) / 1000.0
        deadline = nowMonotonicMs() + timeoutMs

        while True:
            seq = self.queue.sequence
            self.queue.drainInto(self.table)

            result = self.table.takeReady(key)
            if result is not None:
                return result

            if self.table.state(key) is None:
                # Someone else removed the entry; nothing will ever arrive
                logger.warning("Pending call #%d vanished while waiting", key)
                return CallResult.cancelled(key, "pending entry removed")

            if cancelToken is not None and cancelToken.cancelled:
                self.table.remove(key)
                logger.info("Call #%d cancelled: %s", key, cancelToken.reason)
                return CallResult.cancelled(key, cancelToken.reason)

            remaining = deadline - nowMonotonicMs()
            if remaining <= 0:
                late = self.table.remove(key)
                if late is not None:
                    # Delivered between the last check and the deadline
                    return late
                logger.warning("Call #%d timed out after %d ms", key, timeoutMs)
                return CallResult.timedOut(key, timeoutMs)

            self.queue.waitForActivity(seq, min(pollS, remaining / 1000.0))

    def call(
        self,
        functionName: str,
        args: Sequence[Any] = (),
        *,
        timeoutMs: int | None = None,
        cancelToken: CancellationToken | None = None,
    ) -> CallResult:
        """newKey + send + awaitReply."""
        key = self.newKey()
        if self.runningOnMainContext():
            return self.awaitReply(key)
        try:
            self.send(functionName, args, key)
        except Exception:
            self.table.remove(key)
            raise
        return self.awaitReply(key, timeoutMs=timeoutMs, cancelToken=cancelToken)

    # ----- Housekeeping -----

    def abortAll(self, reason: str = "aborted") -> int:
        """Resolves every waiting call as CANCELLED and wakes the waiters."""
        aborted = self.table.abortAll(reason)
        self.queue.notifyActivity()
        if aborted:
            logger.info("Aborted %d pending call(s): %s", len(aborted), reason)
        return len(aborted)

    def pendingKeys(self) -> list[int]:
        return self.table.keys()

    def __repr__(self) -> str:
        return f"CorrelationBridge(pending={len(self.table)}, queued={len(self.queue)})"
