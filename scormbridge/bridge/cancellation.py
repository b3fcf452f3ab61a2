# scormbridge/bridge/cancellation.py
from __future__ import annotations
import threading

__all__ = ["CancellationToken"]



class CancellationToken:
    """
    Cooperative cancellation flag checked by CorrelationBridge.awaitReply.
    Safe to cancel from any thread, including the main context.
    """
    def __init__(self):
        self._event = threading.Event()
        self.reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeoutS: float | None = None) -> bool:
        return self._event.wait(timeoutS)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
