# scormbridge/datamodel/vocab.py
from __future__ import annotations
import math
from enum import Enum
from typing import TypeVar

__all__ = [
    "CompletionStatus", "Credit", "Entry", "Exit", "InteractionType", "Mode",
    "Result", "SuccessStatus", "TimeLimitAction",
    "fromWire", "toWire", "parseResult", "formatResult", "formatNumber",
]

E = TypeVar("E", bound=Enum)



# Member values are internal names. Wire strings live only in the tables below,
# since several of them ("not attempted", "ab-initio", "continue,no message")
# are not valid identifiers.

class CompletionStatus(Enum):
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    NOT_ATTEMPTED = "notAttempted"
    UNKNOWN = "unknown"
    NOT_SET = "notSet"



class Credit(Enum):
    CREDIT = "credit"
    NO_CREDIT = "noCredit"
    NOT_SET = "notSet"



class Entry(Enum):
    START = "start"
    RESUME = "resume"
    NOT_SET = "notSet"



class Exit(Enum):
    TIMEOUT = "timeout"
    SUSPEND = "suspend"
    NORMAL = "normal"
    LOGOUT = "logout"
    NOT_SET = "notSet"



class InteractionType(Enum):
    TRUE_FALSE = "trueFalse"
    CHOICE = "choice"
    FILL_IN = "fillIn"
    LONG_FILL_IN = "longFillIn"
    LIKERT = "likert"
    MATCHING = "matching"
    PERFORMANCE = "performance"
    SEQUENCING = "sequencing"
    NUMERIC = "numeric"
    OTHER = "other"
    NOT_SET = "notSet"



class Mode(Enum):
    BROWSE = "browse"
    NORMAL = "normal"
    REVIEW = "review"
    NOT_SET = "notSet"



class Result(Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNANTICIPATED = "unanticipated"
    NEUTRAL = "neutral"
    ESTIMATE = "estimate"
    NOT_SET = "notSet"



class SuccessStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    UNKNOWN = "unknown"
    NOT_SET = "notSet"



class TimeLimitAction(Enum):
    EXIT_MESSAGE = "exitMessage"
    CONTINUE_MESSAGE = "continueMessage"
    EXIT_NO_MESSAGE = "exitNoMessage"
    CONTINUE_NO_MESSAGE = "continueNoMessage"
    NOT_SET = "notSet"



# ----------------------------------------------
#              wire string tables
# ----------------------------------------------

_TO_WIRE: dict[type[Enum], dict[Enum, str]] = {
    CompletionStatus: {
        CompletionStatus.COMPLETED: "completed",
        CompletionStatus.INCOMPLETE: "incomplete",
        CompletionStatus.NOT_ATTEMPTED: "not attempted",
        CompletionStatus.UNKNOWN: "unknown",
        CompletionStatus.NOT_SET: "",
    },
    Credit: {
        Credit.CREDIT: "credit",
        Credit.NO_CREDIT: "no-credit",
        Credit.NOT_SET: "",
    },
    Entry: {
        Entry.START: "ab-initio",
        Entry.RESUME: "resume",
        Entry.NOT_SET: "",
    },
    Exit: {
        Exit.TIMEOUT: "time-out",
        Exit.SUSPEND: "suspend",
        Exit.NORMAL: "normal",
        Exit.LOGOUT: "logout",
        Exit.NOT_SET: "",
    },
    InteractionType: {
        InteractionType.TRUE_FALSE: "true-false",
        InteractionType.CHOICE: "choice",
        InteractionType.FILL_IN: "fill-in",
        InteractionType.LONG_FILL_IN: "long-fill-in",
        InteractionType.LIKERT: "likert",
        InteractionType.MATCHING: "matching",
        InteractionType.PERFORMANCE: "performance",
        InteractionType.SEQUENCING: "sequencing",
        InteractionType.NUMERIC: "numeric",
        InteractionType.OTHER: "other",
        InteractionType.NOT_SET: "",
    },
    Mode: {
        Mode.BROWSE: "browse",
        Mode.NORMAL: "normal",
        Mode.REVIEW: "review",
        Mode.NOT_SET: "",
    },
    Result: {
        Result.CORRECT: "correct",
        Result.INCORRECT: "incorrect",
        Result.UNANTICIPATED: "unanticipated",
        Result.NEUTRAL: "neutral",
        Result.ESTIMATE: "",  # formatResult() writes the number instead
        Result.NOT_SET: "",
    },
    SuccessStatus: {
        SuccessStatus.PASSED: "passed",
        SuccessStatus.FAILED: "failed",
        SuccessStatus.UNKNOWN: "unknown",
        SuccessStatus.NOT_SET: "",
    },
    TimeLimitAction: {
        TimeLimitAction.EXIT_MESSAGE: "exit,message",
        TimeLimitAction.CONTINUE_MESSAGE: "continue,message",
        TimeLimitAction.EXIT_NO_MESSAGE: "exit,no message",
        TimeLimitAction.CONTINUE_NO_MESSAGE: "continue,no message",
        TimeLimitAction.NOT_SET: "",
    },
}

_FROM_WIRE: dict[type[Enum], dict[str, Enum]] = {
    enumType: {wire: member for member, wire in table.items() if wire}
    for enumType, table in _TO_WIRE.items()
}



def toWire(member: Enum) -> str:
    """Wire string for `member`. Every NOT_SET maps to ""."""
    return _TO_WIRE[type(member)][member]



def fromWire(enumType: type[E], text: str | None) -> E:
    """Enum member for a wire string. Unknown or empty text gives NOT_SET."""
    found = _FROM_WIRE[enumType].get((text or "").strip())
    if found is None:
        return enumType["NOT_SET"]
    return found  # type: ignore[return-value]



def parseResult(text: str | None) -> tuple[Result, float]:
    """
    Interaction result plus its estimate. A numeric string is an ESTIMATE
    carrying that number; everything else goes through the table.
    """
    text = (text or "").strip()
    try:
        estimate = float(text)
    except ValueError:
        pass
    else:
        if math.isfinite(estimate):
            return Result.ESTIMATE, estimate
    return fromWire(Result, text), 0.0



def formatResult(result: Result, estimate: float = 0.0) -> str:
    if result is Result.ESTIMATE:
        return formatNumber(estimate)
    return toWire(result)



def formatNumber(value: float) -> str:
    """Shortest plain decimal for a data model real: 75.0 -> "75", 0.755 -> "0.755"."""
    if not math.isfinite(value):
        return "0"
    text = f"{value:.7f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text
