# scormbridge/manager.py
from __future__ import annotations
import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any, Literal

from scormbridge.core.logging.context import logContext
from scormbridge.datamodel.loader import loadStudentRecord
from scormbridge.datamodel.record import (
    Comment, Interaction, LearnerPreference, LearnerScore, Objective,
    StudentRecord, formatTimestamp,
)
from scormbridge.datamodel.timeinterval import secondsToTimeInterval
from scormbridge.datamodel.vocab import (
    CompletionStatus, Exit, SuccessStatus, formatNumber, formatResult, toWire,
)
from scormbridge.facade import ProtocolVersion, SyncFacade

logger = logging.getLogger(__name__)

__all__ = ["ScormManager", "ManagerEvent", "INTERACTION_ID_PREFIX", "OBJECTIVE_ID_PREFIX"]

ManagerEvent = Literal["initializeComplete", "commitComplete"]
Listener = Callable[["ScormManager"], Any]

INTERACTION_ID_PREFIX = "urn:scormbridge:interaction-id-"
OBJECTIVE_ID_PREFIX = "urn:scormbridge:objective-id-"



class ScormManager:
    """
    Application-facing API on top of SyncFacade.

    Every facade call runs on a worker pool so callers on the main context
    never block. Writes wait until start() has finished loading the
    learner record (the first write calls start() itself), then go to the
    host one element at a time.
    """

    def __init__(
        self,
        facade: SyncFacade,
        *,
        workerThreads: int = 4,
        initializeWaitPollMs: int = 25,
    ):
        self.facade = facade
        self.initializeWaitPollMs = initializeWaitPollMs
        self._executor = ThreadPoolExecutor(max_workers=max(1, workerThreads), thread_name_prefix="scorm-worker")
        self._initialized = threading.Event()
        self._closed = threading.Event()
        self._recordLock = threading.RLock()
        self._record = StudentRecord()
        self._listeners: dict[str, list[Listener]] = {"initializeComplete": [], "commitComplete": []}
        self._listenersLock = threading.Lock()
        self._startFuture: Future[bool] | None = None

    # ----- Events -----

    def on(self, event: ManagerEvent, fn: Listener) -> Callable[[], None]:
        if event not in self._listeners:
            raise ValueError(f"Unknown event '{event}'")
        with self._listenersLock:
            self._listeners[event].append(fn)

        def _off() -> None:
            with self._listenersLock:
                try:
                    self._listeners[event].remove(fn)
                except ValueError:
                    pass
        return _off

    def _emit(self, event: ManagerEvent) -> None:
        with self._listenersLock:
            listeners = list(self._listeners[event])
        for fn in listeners:
            try:
                fn(self)
            except Exception:
                logger.exception("Listener for '%s' failed", event)

    # ----- Lifecycle -----

    @property
    def initialized(self) -> bool:
        return self._initialized.is_set()

    @property
    def record(self) -> StudentRecord:
        with self._recordLock:
            return self._record.model_copy(deep=True)

    def start(self) -> Future[bool]:
        """Initializes the facade and loads the learner record in the background."""
        with self._listenersLock:
            if self._startFuture is None:
                self._startFuture = self._executor.submit(self._initialize)
            return self._startFuture

    def _initialize(self) -> bool:
        with logContext(sessionId=self.facade.sessionId):
            return self._initializeScoped()

    def _initializeScoped(self) -> bool:
        ok = False
        try:
            ok = self.facade.initialize()
            if not ok:
                logger.error("Initialize failed; continuing with an empty learner record")
            elif self.facade.protocolVersion is ProtocolVersion.SCORM_2004:
                record = loadStudentRecord(self.facade)
                with self._recordLock:
                    self._record = record
            else:
                logger.warning("SCORM 1.2 data model is not loaded; continuing with an empty learner record")
        except Exception:
            logger.exception("Initialize failed")
        finally:
            self._initialized.set()
        self._emit("initializeComplete")
        return ok

    def waitForInitialize(self, timeoutS: float | None = None) -> bool:
        pollS = max(1, self.initializeWaitPollMs) / 1000.0
        waited = 0.0
        while not self._initialized.wait(pollS):
            if self._closed.is_set():
                return False
            waited += pollS
            if timeoutS is not None and waited >= timeoutS:
                return False
        return True

    def close(self, wait: bool = True) -> None:
        self._closed.set()
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> ScormManager:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ----- Internals -----

    def _submit(self, label: str, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        # Initialize must be queued ahead of anything that waits for it
        self.start()
        def _run() -> Any:
            with logContext(sessionId=self.facade.sessionId):
                if not self.waitForInitialize():
                    logger.warning("%s skipped: manager closed before initialize", label)
                    return False
                return fn(*args)
        return self._executor.submit(_run)

    def _setValues(self, pairs: Iterable[tuple[str, str]]) -> bool:
        ok = True
        for identifier, value in pairs:
            ok = self.facade.setValue(identifier, value) and ok
        return ok

    def setValue(self, identifier: str, value: str) -> Future[bool]:
        return self._submit(f"setValue({identifier})", self.facade.setValue, identifier, value)

    def getValue(self, identifier: str) -> Future[str]:
        return self._submit(f"getValue({identifier})", self.facade.getValue, identifier)

    # ----- Setters -----

    def setLocation(self, value: str) -> Future[bool]:
        with self._recordLock:
            self._record.location = value
        return self.setValue("cmi.location", value)

    def setSuspendData(self, value: str) -> Future[bool]:
        with self._recordLock:
            self._record.suspendData = value
        return self.setValue("cmi.suspend_data", value)

    def setProgressMeasure(self, value: float) -> Future[bool]:
        with self._recordLock:
            self._record.progressMeasure = value
        return self.setValue("cmi.progress_measure", formatNumber(value))

    def setCompletionStatus(self, value: CompletionStatus) -> Future[bool]:
        with self._recordLock:
            self._record.completionStatus = value
        return self.setValue("cmi.completion_status", toWire(value))

    def setSuccessStatus(self, value: SuccessStatus) -> Future[bool]:
        with self._recordLock:
            self._record.successStatus = value
        return self.setValue("cmi.success_status", toWire(value))

    def setExit(self, value: Exit) -> Future[bool]:
        with self._recordLock:
            self._record.exit = value
        return self.setValue("cmi.exit", toWire(value))

    def setSessionTime(self, seconds: float) -> Future[bool]:
        with self._recordLock:
            self._record.sessionTime = seconds
        return self.setValue("cmi.session_time", secondsToTimeInterval(seconds))

    def setScore(self, score: LearnerScore) -> Future[bool]:
        with self._recordLock:
            self._record.score = score.model_copy()
        return self._submit("setScore", self._setValues, [
            ("cmi.score.scaled", formatNumber(score.scaled)),
            ("cmi.score.raw", formatNumber(score.raw)),
            ("cmi.score.max", formatNumber(score.max)),
            ("cmi.score.min", formatNumber(score.min)),
        ])

    def setLearnerPreference(self, preference: LearnerPreference) -> Future[bool]:
        with self._recordLock:
            self._record.learnerPreference = preference.model_copy()
        return self._submit("setLearnerPreference", self._setValues, [
            ("cmi.learner_preference.audio_level", formatNumber(preference.audioLevel)),
            ("cmi.learner_preference.language", preference.language),
            ("cmi.learner_preference.delivery_speed", formatNumber(preference.deliverySpeed)),
            ("cmi.learner_preference.audio_captioning", str(preference.audioCaptioning)),
        ])

    # ----- Collections -----

    def nextInteractionId(self) -> str:
        with self._recordLock:
            return f"{INTERACTION_ID_PREFIX}{len(self._record.interactions)}"

    def _checkIndex(self, entries: list[Any], index: int, kind: str) -> None:
        if not 0 <= index < len(entries):
            raise IndexError(f"{kind} index {index} out of range (have {len(entries)})")

    def addInteraction(self, interaction: Interaction) -> Future[bool]:
        """Appends `interaction` under a generated id. Returns once queued."""
        return self._submit("addInteraction", self._addInteraction, interaction.model_copy(deep=True))

    def _addInteraction(self, interaction: Interaction) -> bool:
        with self._recordLock:
            index = len(self._record.interactions)
            interaction.id = f"{INTERACTION_ID_PREFIX}{index}"
            if interaction.timestamp is None:
                interaction.timestamp = datetime.now()
            self._record.interactions.append(interaction)
        return self._setValues([(f"cmi.interactions.{index}.id", interaction.id)] + self._interactionPairs(index, interaction))

    def updateInteraction(self, index: int, interaction: Interaction) -> Future[bool]:
        """
        Rewrites interaction `index` with the fields of `interaction`. The
        stored id is kept and the timestamp is set to now. The future raises
        IndexError when no interaction exists at `index`.
        """
        return self._submit(f"updateInteraction({index})", self._updateInteraction, index, interaction.model_copy(deep=True))

    def _updateInteraction(self, index: int, interaction: Interaction) -> bool:
        with self._recordLock:
            self._checkIndex(self._record.interactions, index, "Interaction")
            interaction.id = self._record.interactions[index].id
            interaction.timestamp = datetime.now()
            self._record.interactions[index] = interaction
        return self._setValues(self._interactionPairs(index, interaction))

    def _interactionPairs(self, index: int, interaction: Interaction) -> list[tuple[str, str]]:
        prefix = f"cmi.interactions.{index}"
        pairs = [
            (f"{prefix}.type", toWire(interaction.type)),
            (f"{prefix}.timestamp", formatTimestamp(interaction.timestamp or datetime.now())),
            (f"{prefix}.weighting", formatNumber(interaction.weighting)),
            (f"{prefix}.learner_response", interaction.response),
            (f"{prefix}.result", formatResult(interaction.result, interaction.estimate)),
            (f"{prefix}.latency", secondsToTimeInterval(interaction.latency)),
            (f"{prefix}.description", interaction.description),
        ]
        pairs += [
            (f"{prefix}.objectives.{x}.id", objective.id)
            for x, objective in enumerate(interaction.objectives)
        ]
        pairs += [
            (f"{prefix}.correct_responses.{x}.pattern", response.pattern)
            for x, response in enumerate(interaction.correctResponses)
        ]
        return pairs

    def addObjective(self, objective: Objective) -> Future[bool]:
        return self._submit("addObjective", self._addObjective, objective.model_copy(deep=True))

    def _addObjective(self, objective: Objective) -> bool:
        with self._recordLock:
            index = len(self._record.objectives)
            objective.id = f"{OBJECTIVE_ID_PREFIX}{index}"
            self._record.objectives.append(objective)
        return self._setValues(self._objectivePairs(index, objective))

    def updateObjective(self, index: int, objective: Objective) -> Future[bool]:
        """Rewrites objective `index`, keeping its id. IndexError when out of range."""
        return self._submit(f"updateObjective({index})", self._updateObjective, index, objective.model_copy(deep=True))

    def _updateObjective(self, index: int, objective: Objective) -> bool:
        with self._recordLock:
            self._checkIndex(self._record.objectives, index, "Objective")
            objective.id = self._record.objectives[index].id
            self._record.objectives[index] = objective
        return self._setValues(self._objectivePairs(index, objective))

    def _objectivePairs(self, index: int, objective: Objective) -> list[tuple[str, str]]:
        prefix = f"cmi.objectives.{index}"
        return [
            (f"{prefix}.id", objective.id),
            (f"{prefix}.score.scaled", formatNumber(objective.score.scaled)),
            (f"{prefix}.score.raw", formatNumber(objective.score.raw)),
            (f"{prefix}.score.max", formatNumber(objective.score.max)),
            (f"{prefix}.score.min", formatNumber(objective.score.min)),
            (f"{prefix}.success_status", toWire(objective.successStatus)),
            (f"{prefix}.completion_status", toWire(objective.completionStatus)),
            (f"{prefix}.progress_measure", formatNumber(objective.progressMeasure)),
            (f"{prefix}.description", objective.description),
        ]

    def addCommentFromLearner(self, comment: str, location: str = "") -> Future[bool]:
        entry = Comment(comment=comment, location=location, timestamp=datetime.now())
        return self._submit("addCommentFromLearner", self._addComment, entry)

    def _addComment(self, comment: Comment) -> bool:
        with self._recordLock:
            index = len(self._record.commentsFromLearner)
            self._record.commentsFromLearner.append(comment)
        return self._setValues(self._commentPairs(index, comment))

    def updateCommentFromLearner(self, index: int, comment: str, location: str = "") -> Future[bool]:
        """Rewrites learner comment `index` with a fresh timestamp. IndexError when out of range."""
        entry = Comment(comment=comment, location=location, timestamp=datetime.now())
        return self._submit(f"updateCommentFromLearner({index})", self._updateComment, index, entry)

    def _updateComment(self, index: int, comment: Comment) -> bool:
        with self._recordLock:
            self._checkIndex(self._record.commentsFromLearner, index, "Comment")
            self._record.commentsFromLearner[index] = comment
        return self._setValues(self._commentPairs(index, comment))

    def _commentPairs(self, index: int, comment: Comment) -> list[tuple[str, str]]:
        prefix = f"cmi.comments_from_learner.{index}"
        return [
            (f"{prefix}.comment", comment.comment),
            (f"{prefix}.location", comment.location),
            (f"{prefix}.timestamp", formatTimestamp(comment.timestamp or datetime.now())),
        ]

    # ----- Commit / terminate -----

    def commit(self) -> Future[None]:
        return self._submit("commit", self._commit)

    def _commit(self) -> None:
        try:
            self.facade.commit()
        finally:
            self._emit("commitComplete")

    def terminate(self) -> Future[None]:
        return self._submit("terminate", self.facade.terminate)
