# scormbridge/bridge/channel.py
from __future__ import annotations
import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

__all__ = ["HostChannel", "HostCallbackRouter", "RecordingChannel"]

CallbackFn = Callable[[str], Any]



class HostChannel(Protocol):
    """
    One-way path into the host page. Implementations are only ever invoked
    on the main context and must not block.
    """
    def call(self, functionName: str, *args: Any) -> None: ...



class HostCallbackRouter:
    """
    Host-to-client direction: SendMessage(objectName, functionName, text).
    Receivers register under an (object, function) address.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._receivers: dict[tuple[str, str], CallbackFn] = {}

    def register(self, objectName: str, functionName: str, fn: CallbackFn) -> None:
        with self._lock:
            if (objectName, functionName) in self._receivers:
                logger.warning("Replacing receiver for %s.%s", objectName, functionName)
            self._receivers[(objectName, functionName)] = fn

    def unregister(self, objectName: str, functionName: str) -> bool:
        with self._lock:
            return self._receivers.pop((objectName, functionName), None) is not None

    def sendMessage(self, objectName: str, functionName: str, value: str) -> bool:
        """
        Delivers `value` to the registered receiver. Unknown receivers and
        receiver failures are logged; never raises.
        """
        with self._lock:
            fn = self._receivers.get((objectName, functionName))
        if fn is None:
            logger.warning("SendMessage to unknown receiver %s.%s dropped", objectName, functionName)
            return False
        try:
            fn(value)
        except Exception:
            logger.exception("Receiver %s.%s failed", objectName, functionName)
            return False
        return True



class RecordingChannel:
    """Channel that only records calls. Useful when no host is attached yet."""
    def __init__(self):
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def call(self, functionName: str, *args: Any) -> None:
        self.calls.append((functionName, args))
