# scormbridge/host/simulator.py
from __future__ import annotations
import logging
import random
import threading
from collections.abc import Mapping
from typing import Any

from scormbridge.bridge.channel import HostCallbackRouter
from scormbridge.bridge.codec import formatReply
from scormbridge.bridge.main_context import MainContext
from scormbridge.config.settings import HostFunctions

logger = logging.getLogger(__name__)

__all__ = ["SimulatedLmsHost", "SAMPLE_LEARNER_DATA", "UNDEFINED_ELEMENT_ERROR"]

UNDEFINED_ELEMENT_ERROR = ("401", "Undefined Data Model Element")

SAMPLE_LEARNER_DATA: dict[str, str] = {
    "cmi._version": "1.0",

    "cmi.comments_from_learner._count": "1",
    "cmi.comments_from_learner.0.comment": "An example comment from learner",
    "cmi.comments_from_learner.0.location": "Location 1",
    "cmi.comments_from_learner.0.timestamp": "2015-09-07T09:00:00",
    "cmi.comments_from_lms._count": "1",
    "cmi.comments_from_lms.0.comment": "test comment from LMS",
    "cmi.comments_from_lms.0.location": "test location string",
    "cmi.comments_from_lms.0.timestamp": "2014-09-07T09:00:00",

    "cmi.completion_status": "incomplete",
    "cmi.completion_threshold": "0.9",
    "cmi.credit": "credit",
    "cmi.entry": "ab-initio",

    "cmi.interactions._count": "1",
    "cmi.interactions.0.id": "urn:scormbridge:interaction-id-0",
    "cmi.interactions.0.type": "true-false",
    "cmi.interactions.0.objectives._count": "2",
    "cmi.interactions.0.objectives.0.id": "Objective1",
    "cmi.interactions.0.objectives.1.id": "Objective2",
    "cmi.interactions.0.timestamp": "2015-09-07T09:00:00",
    "cmi.interactions.0.correct_responses._count": "1",
    "cmi.interactions.0.correct_responses.0.pattern": "true",
    "cmi.interactions.0.weighting": "1.0",
    "cmi.interactions.0.learner_response": "false",
    "cmi.interactions.0.result": "incorrect",
    "cmi.interactions.0.latency": "P0DT0H2M18S",
    "cmi.interactions.0.description": "Interaction description",

    "cmi.launch_data": "Launch data from the ims manifest file will be here.",
    "cmi.learner_id": "rdescartes",
    "cmi.learner_name": "Rene Descartes",

    "cmi.learner_preference.audio_captioning": "-1",
    "cmi.learner_preference.audio_level": "80.0",
    "cmi.learner_preference.delivery_speed": "1.0",
    "cmi.learner_preference.language": "en-US",

    "cmi.location": "Bookmarked location id",
    "cmi.max_time_allowed": "P0DT1H0M0S",
    "cmi.mode": "normal",

    "cmi.objectives._count": "2",
    "cmi.objectives.0.id": "Objective1",
    "cmi.objectives.0.score.scaled": "0.50",
    "cmi.objectives.0.score.raw": "45.0",
    "cmi.objectives.0.score.min": "0.0",
    "cmi.objectives.0.score.max": "90.0",
    "cmi.objectives.0.success_status": "failed",
    "cmi.objectives.0.completion_status": "completed",
    "cmi.objectives.0.progress_measure": "0.9",
    "cmi.objectives.0.description": "Understand how to use the SCORM API.",
    "cmi.objectives.1.id": "Objective2",
    "cmi.objectives.1.score.scaled": "0.80",
    "cmi.objectives.1.score.raw": "80.0",
    "cmi.objectives.1.score.min": "0.0",
    "cmi.objectives.1.score.max": "100.0",
    "cmi.objectives.1.success_status": "passed",
    "cmi.objectives.1.completion_status": "completed",
    "cmi.objectives.1.progress_measure": "1",
    "cmi.objectives.1.description": "Understand how to use the SCORM API in a browser host.",

    "cmi.progress_measure": "0.3",
    "cmi.scaled_passing_score": "0.8",

    "cmi.score.max": "100.0",
    "cmi.score.min": "0.0",
    "cmi.score.raw": "75.5",
    "cmi.score.scaled": "0.755",

    "cmi.success_status": "unknown",
    "cmi.suspend_data": "You set the suspend data.",

    "cmi.time_limit_action": "continue,no message",
    "cmi.total_time": "P0DT0H27M10S",
}



class SimulatedLmsHost:
    """
    In-memory stand-in for the host page plus its LMS.

    Implements HostChannel: the bridge calls it on the main context with the
    same argument layout the page functions receive, and it answers through
    the HostCallbackRouter after an optional delay. Random delays let
    replies arrive out of order.
    """

    def __init__(
        self,
        mainContext: MainContext,
        router: HostCallbackRouter,
        *,
        functions: HostFunctions | None = None,
        data: Mapping[str, str] | None = None,
        isScorm2004: bool = True,
        replyDelayMs: tuple[int, int] = (0, 0),
        rng: random.Random | None = None,
    ):
        self.mainContext = mainContext
        self.router = router
        self.functions = functions or HostFunctions()
        self.data: dict[str, str] = dict(SAMPLE_LEARNER_DATA if data is None else data)
        self.isScorm2004 = isScorm2004
        self.replyDelayMs = replyDelayMs
        self.silent = False
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._scriptedErrors: dict[str, tuple[str, str]] = {}

        self.logLines: list[str] = []
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.commits = 0
        self.terminated = False

    # ----- Test hooks -----

    def failNext(self, identifier: str, errorCode: str, errorDescription: str = "") -> None:
        """The next get/set on `identifier` answers with the given error."""
        with self._lock:
            self._scriptedErrors[identifier] = (errorCode, errorDescription)

    def setSilent(self, silent: bool = True) -> None:
        """While silent, round-trip calls are recorded but never answered."""
        self.silent = silent

    # ----- HostChannel -----

    def call(self, functionName: str, *args: Any) -> None:
        self.calls.append((functionName, args))
        fns = self.functions
        if functionName == fns.log:
            self.logLines.append(str(args[0]) if args else "")
        elif functionName == fns.commit:
            self.commits += 1
        elif functionName == fns.terminate:
            self.terminated = True
        elif functionName == fns.getValue:
            identifier, objectName, callbackName, key = args
            self._reply(objectName, callbackName, key, *self._getValue(identifier))
        elif functionName == fns.setValue:
            identifier, value, objectName, callbackName, key = args
            self._reply(objectName, callbackName, key, *self._setValue(identifier, value))
        elif functionName == fns.versionCheck:
            objectName, callbackName, key = args
            self._reply(objectName, callbackName, key, "true" if self.isScorm2004 else "false", "", "")
        else:
            logger.warning("Simulated host has no function '%s'", functionName)

    # ----- Internals -----

    def _takeScriptedError(self, identifier: str) -> tuple[str, str] | None:
        with self._lock:
            return self._scriptedErrors.pop(identifier, None)

    def _getValue(self, identifier: str) -> tuple[str, str, str]:
        scripted = self._takeScriptedError(identifier)
        if scripted is not None:
            return "", scripted[0], scripted[1]
        value = self.data.get(identifier)
        if not value:
            return "Error", *UNDEFINED_ELEMENT_ERROR
        return value, "", ""

    def _setValue(self, identifier: str, value: Any) -> tuple[str, str, str]:
        scripted = self._takeScriptedError(identifier)
        if scripted is not None:
            return "false", scripted[0], scripted[1]
        self.data[identifier] = str(value)
        return "true", "", ""

    def _reply(self, objectName: str, callbackName: str, key: Any, value: str, errorCode: str, errorDescription: str) -> None:
        if self.silent:
            return
        raw = formatReply(key, value, errorCode, errorDescription)
        low, high = self.replyDelayMs
        delayMs = self._rng.randint(low, high) if high > low else low
        if delayMs <= 0:
            self.mainContext.post(self.router.sendMessage, objectName, callbackName, raw)
        else:
            self.mainContext.loop.call_later(delayMs / 1000.0, self.router.sendMessage, objectName, callbackName, raw)
