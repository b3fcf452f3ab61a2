# scormbridge/datamodel/loader.py
from __future__ import annotations
import logging
from typing import Protocol

from .record import (
    Comment, CorrectResponse, Interaction, InteractionObjective, LearnerPreference,
    LearnerScore, Objective, StudentRecord, parseFloatOr0, parseIntOr0, parseTimestamp,
)
from .timeinterval import timeIntervalToSeconds
from .vocab import (
    CompletionStatus, Credit, Entry, InteractionType, Mode, SuccessStatus,
    TimeLimitAction, fromWire, parseResult,
)

logger = logging.getLogger(__name__)

__all__ = ["ValueReader", "loadStudentRecord"]



class ValueReader(Protocol):
    def getValue(self, identifier: str) -> str: ...



def _loadComments(reader: ValueReader, prefix: str) -> list[Comment]:
    count = parseIntOr0(reader.getValue(f"{prefix}._count"))
    return [
        Comment(
            comment=reader.getValue(f"{prefix}.{i}.comment"),
            location=reader.getValue(f"{prefix}.{i}.location"),
            timestamp=parseTimestamp(reader.getValue(f"{prefix}.{i}.timestamp")),
        )
        for i in range(count)
    ]



def _loadScore(reader: ValueReader, prefix: str) -> LearnerScore:
    return LearnerScore(
        scaled=parseFloatOr0(reader.getValue(f"{prefix}.scaled")),
        raw=parseFloatOr0(reader.getValue(f"{prefix}.raw")),
        max=parseFloatOr0(reader.getValue(f"{prefix}.max")),
        min=parseFloatOr0(reader.getValue(f"{prefix}.min")),
    )



def _loadInteraction(reader: ValueReader, i: int) -> Interaction:
    prefix = f"cmi.interactions.{i}"
    result, estimate = parseResult(reader.getValue(f"{prefix}.result"))

    objectiveCount = parseIntOr0(reader.getValue(f"{prefix}.objectives._count"))
    objectives = [
        InteractionObjective(id=reader.getValue(f"{prefix}.objectives.{x}.id"))
        for x in range(objectiveCount)
    ]
    responseCount = parseIntOr0(reader.getValue(f"{prefix}.correct_responses._count"))
    correctResponses = [
        CorrectResponse(pattern=reader.getValue(f"{prefix}.correct_responses.{x}.pattern"))
        for x in range(responseCount)
    ]

    return Interaction(
        id=reader.getValue(f"{prefix}.id"),
        type=fromWire(InteractionType, reader.getValue(f"{prefix}.type")),
        timestamp=parseTimestamp(reader.getValue(f"{prefix}.timestamp")),
        weighting=parseFloatOr0(reader.getValue(f"{prefix}.weighting")),
        response=reader.getValue(f"{prefix}.learner_response"),
        latency=timeIntervalToSeconds(reader.getValue(f"{prefix}.latency")),
        description=reader.getValue(f"{prefix}.description"),
        result=result,
        estimate=estimate,
        objectives=objectives,
        correctResponses=correctResponses,
    )



def _loadObjective(reader: ValueReader, i: int) -> Objective:
    prefix = f"cmi.objectives.{i}"
    return Objective(
        id=reader.getValue(f"{prefix}.id"),
        score=_loadScore(reader, f"{prefix}.score"),
        successStatus=fromWire(SuccessStatus, reader.getValue(f"{prefix}.success_status")),
        completionStatus=fromWire(CompletionStatus, reader.getValue(f"{prefix}.completion_status")),
        progressMeasure=parseFloatOr0(reader.getValue(f"{prefix}.progress_measure")),
        description=reader.getValue(f"{prefix}.description"),
    )



def loadStudentRecord(reader: ValueReader) -> StudentRecord:
    """
    Reads the whole learner record through `reader` (normally a SyncFacade),
    one blocking round trip per element. Elements the host does not know
    come back as "" and fall to each field's default.
    """
    get = reader.getValue
    record = StudentRecord(
        version=get("cmi._version"),
        commentsFromLearner=_loadComments(reader, "cmi.comments_from_learner"),
        commentsFromLms=_loadComments(reader, "cmi.comments_from_lms"),
        completionStatus=fromWire(CompletionStatus, get("cmi.completion_status")),
        completionThreshold=parseFloatOr0(get("cmi.completion_threshold")),
        credit=fromWire(Credit, get("cmi.credit")),
        entry=fromWire(Entry, get("cmi.entry")),
        interactions=[
            _loadInteraction(reader, i)
            for i in range(parseIntOr0(get("cmi.interactions._count")))
        ],
        launchData=get("cmi.launch_data"),
        learnerId=get("cmi.learner_id"),
        learnerName=get("cmi.learner_name"),
        learnerPreference=LearnerPreference(
            audioLevel=parseFloatOr0(get("cmi.learner_preference.audio_level")),
            language=get("cmi.learner_preference.language"),
            deliverySpeed=parseFloatOr0(get("cmi.learner_preference.delivery_speed")),
            audioCaptioning=parseIntOr0(get("cmi.learner_preference.audio_captioning")),
        ),
        location=get("cmi.location"),
        objectives=[
            _loadObjective(reader, i)
            for i in range(parseIntOr0(get("cmi.objectives._count")))
        ],
        maxTimeAllowed=timeIntervalToSeconds(get("cmi.max_time_allowed")),
        mode=fromWire(Mode, get("cmi.mode")),
        progressMeasure=parseFloatOr0(get("cmi.progress_measure")),
        scaledPassingScore=parseFloatOr0(get("cmi.scaled_passing_score")),
        score=_loadScore(reader, "cmi.score"),
        successStatus=fromWire(SuccessStatus, get("cmi.success_status")),
        suspendData=get("cmi.suspend_data"),
        timeLimitAction=fromWire(TimeLimitAction, get("cmi.time_limit_action")),
        totalTime=timeIntervalToSeconds(get("cmi.total_time")),
    )
    logger.info(
        "Student record loaded: %d interaction(s), %d objective(s)",
        len(record.interactions), len(record.objectives),
    )
    return record
