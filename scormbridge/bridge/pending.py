# scormbridge/bridge/pending.py
from __future__ import annotations
import logging
import random
import threading

from scormbridge.core.errors import KeySpaceExhaustedError
from .models import CallResult, CallState, PendingCall

logger = logging.getLogger(__name__)

__all__ = ["PendingCallTable"]

# Random draws before falling back to a linear scan for a free key
_MAX_RANDOM_DRAWS = 64



class PendingCallTable:
    """
    Outstanding calls keyed by correlation key, guarded by one lock.
    At most one entry per key exists at any time.
    """
    def __init__(self, keySpace: int = 65536, *, rng: random.Random | None = None):
        if keySpace <= 0:
            raise ValueError("keySpace must be positive")
        self.keySpace = keySpace
        self._lock = threading.Lock()
        self._calls: dict[int, PendingCall] = {}
        self._rng = rng or random.Random()

    def reserve(self) -> int:
        """Draws a key not currently outstanding and inserts a WAITING entry for it."""
        with self._lock:
            if len(self._calls) >= self.keySpace:
                raise KeySpaceExhaustedError(f"All {self.keySpace} correlation keys are outstanding")
            for _ in range(_MAX_RANDOM_DRAWS):
                key = self._rng.randrange(self.keySpace)
                if key not in self._calls:
                    break
            else:
                # Nearly full table: start at a random offset and walk
                start = self._rng.randrange(self.keySpace)
                key = next(
                    candidate % self.keySpace
                    for candidate in range(start, start + self.keySpace)
                    if candidate % self.keySpace not in self._calls
                )
            self._calls[key] = PendingCall(key=key)
            return key

    def deliver(self, result: CallResult) -> bool:
        """
        Marks the entry for result.key READY. Returns False when no entry is
        waiting (unknown key, already removed, or already delivered).
        """
        with self._lock:
            call = self._calls.get(result.key)
            if call is None or call.state is CallState.READY:
                return False
            call.result = result
            call.state = CallState.READY
            return True

    def takeReady(self, key: int) -> CallResult | None:
        """Removes and returns the result if the entry is READY."""
        with self._lock:
            call = self._calls.get(key)
            if call is None or call.state is not CallState.READY:
                return None
            del self._calls[key]
            return call.result

    def remove(self, key: int) -> CallResult | None:
        """Removes the entry whatever its state. Returns its result if it had one."""
        with self._lock:
            call = self._calls.pop(key, None)
        return call.result if call is not None else None

    def state(self, key: int) -> CallState | None:
        with self._lock:
            call = self._calls.get(key)
            return call.state if call is not None else None

    def abortAll(self, reason: str) -> list[int]:
        """Resolves every WAITING entry as CANCELLED. Returns the affected keys."""
        aborted: list[int] = []
        with self._lock:
            for key, call in self._calls.items():
                if call.state is CallState.WAITING:
                    call.result = CallResult.cancelled(key, reason)
                    call.state = CallState.READY
                    aborted.append(key)
        return aborted

    def keys(self) -> list[int]:
        with self._lock:
            return list(self._calls)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._calls

    def __len__(self) -> int:
        with self._lock:
            return len(self._calls)
