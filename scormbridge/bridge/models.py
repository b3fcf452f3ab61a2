# scormbridge/bridge/models.py
from __future__ import annotations
from dataclasses import dataclass
from enum import StrEnum

__all__ = [
    "CallState", "CallStatus", "CallResult", "PendingCall",
    "ParsedReply", "MalformedReply", "ParseResult",
    "TIMEOUT_ERROR_CODE", "CANCELLED_ERROR_CODE", "MAIN_CONTEXT_ERROR_CODE",
]

# Error codes of results produced by the bridge itself (host never sends these)
TIMEOUT_ERROR_CODE = "BRIDGE_TIMEOUT"
CANCELLED_ERROR_CODE = "BRIDGE_CANCELLED"
MAIN_CONTEXT_ERROR_CODE = "BRIDGE_MAIN_CONTEXT"



class CallState(StrEnum):
    WAITING = "waiting"
    READY = "ready"



class CallStatus(StrEnum):
    OK = "ok"
    HOST_ERROR = "hostError"
    TIMED_OUT = "timedOut"
    CANCELLED = "cancelled"
    MAIN_CONTEXT = "mainContext"



@dataclass(frozen=True, slots=True)
class CallResult:
    """Outcome of one round trip. `value` is the raw host string."""
    key: int
    value: str = ""
    errorCode: str = ""
    errorDescription: str = ""
    status: CallStatus = CallStatus.OK

    @property
    def ok(self) -> bool:
        return self.status is CallStatus.OK

    @classmethod
    def fromHost(cls, key: int, value: str, errorCode: str, errorDescription: str) -> CallResult:
        status = CallStatus.OK if not errorCode else CallStatus.HOST_ERROR
        return cls(key=key, value=value, errorCode=errorCode, errorDescription=errorDescription, status=status)

    @classmethod
    def timedOut(cls, key: int, timeoutMs: int) -> CallResult:
        return cls(
            key=key,
            errorCode=TIMEOUT_ERROR_CODE,
            errorDescription=f"No reply within {timeoutMs} ms",
            status=CallStatus.TIMED_OUT,
        )

    @classmethod
    def cancelled(cls, key: int, reason: str = "cancelled") -> CallResult:
        return cls(key=key, errorCode=CANCELLED_ERROR_CODE, errorDescription=reason, status=CallStatus.CANCELLED)

    @classmethod
    def onMainContext(cls, key: int) -> CallResult:
        return cls(
            key=key,
            errorCode=MAIN_CONTEXT_ERROR_CODE,
            errorDescription="Blocking wait refused on the main context",
            status=CallStatus.MAIN_CONTEXT,
        )



@dataclass(slots=True)
class PendingCall:
    key: int
    state: CallState = CallState.WAITING
    result: CallResult | None = None



@dataclass(frozen=True, slots=True)
class ParsedReply:
    key: int
    value: str
    errorCode: str
    errorDescription: str

    def toResult(self) -> CallResult:
        return CallResult.fromHost(self.key, self.value, self.errorCode, self.errorDescription)



@dataclass(frozen=True, slots=True)
class MalformedReply:
    raw: str
    reason: str



ParseResult = ParsedReply | MalformedReply
