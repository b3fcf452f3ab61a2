# scormbridge/datamodel/record.py
from __future__ import annotations
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .vocab import (
    CompletionStatus, Credit, Entry, Exit, InteractionType, Mode, Result,
    SuccessStatus, TimeLimitAction,
)

__all__ = [
    "LearnerScore", "LearnerPreference", "Comment", "InteractionObjective",
    "CorrectResponse", "Interaction", "Objective", "StudentRecord",
    "parseFloatOr0", "parseIntOr0", "parseTimestamp", "formatTimestamp",
]



def parseFloatOr0(text: str | None) -> float:
    try:
        return float((text or "").strip())
    except ValueError:
        return 0.0



def parseIntOr0(text: str | None) -> int:
    try:
        return int((text or "").strip())
    except ValueError:
        return 0



def parseTimestamp(text: str | None) -> datetime | None:
    """Lenient ISO-8601 parse. Empty or invalid input gives None."""
    text = (text or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None



def formatTimestamp(value: datetime) -> str:
    """Second precision, no offset: 2015-09-07T09:00:00."""
    return value.replace(microsecond=0, tzinfo=None).isoformat()



class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)



class LearnerScore(_Record):
    scaled: float = 0.0
    raw: float = 0.0
    max: float = 0.0
    min: float = 0.0



class LearnerPreference(_Record):
    audioLevel: float = 0.0
    language: str = ""
    deliverySpeed: float = 0.0
    audioCaptioning: int = 0



class Comment(_Record):
    comment: str = ""
    location: str = ""
    timestamp: datetime | None = None



class InteractionObjective(_Record):
    id: str



class CorrectResponse(_Record):
    pattern: str



class Interaction(_Record):
    id: str = ""
    type: InteractionType = InteractionType.NOT_SET
    timestamp: datetime | None = None
    weighting: float = 0.0
    response: str = ""
    latency: float = 0.0            # seconds
    description: str = ""
    result: Result = Result.NOT_SET
    estimate: float = 0.0           # only meaningful when result is ESTIMATE
    objectives: list[InteractionObjective] = Field(default_factory=list)
    correctResponses: list[CorrectResponse] = Field(default_factory=list)



class Objective(_Record):
    id: str = ""
    score: LearnerScore = Field(default_factory=LearnerScore)
    successStatus: SuccessStatus = SuccessStatus.NOT_SET
    completionStatus: CompletionStatus = CompletionStatus.NOT_SET
    progressMeasure: float = 0.0
    description: str = ""



class StudentRecord(_Record):
    """Learner state as read from the run-time data model at startup."""
    version: str = ""
    commentsFromLearner: list[Comment] = Field(default_factory=list)
    commentsFromLms: list[Comment] = Field(default_factory=list)
    completionStatus: CompletionStatus = CompletionStatus.NOT_SET
    completionThreshold: float = 0.0
    credit: Credit = Credit.NOT_SET
    entry: Entry = Entry.NOT_SET
    exit: Exit = Exit.NOT_SET       # write-only element; last value set this session
    interactions: list[Interaction] = Field(default_factory=list)
    launchData: str = ""
    learnerId: str = ""
    learnerName: str = ""
    learnerPreference: LearnerPreference = Field(default_factory=LearnerPreference)
    score: LearnerScore = Field(default_factory=LearnerScore)
    location: str = ""
    objectives: list[Objective] = Field(default_factory=list)
    maxTimeAllowed: float = 0.0     # seconds
    mode: Mode = Mode.NOT_SET
    progressMeasure: float = 0.0
    scaledPassingScore: float = 0.0
    sessionTime: float = 0.0        # seconds; write-only like exit
    successStatus: SuccessStatus = SuccessStatus.NOT_SET
    suspendData: str = ""
    timeLimitAction: TimeLimitAction = TimeLimitAction.NOT_SET
    totalTime: float = 0.0          # seconds
