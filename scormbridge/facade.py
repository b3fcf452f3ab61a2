# scormbridge/facade.py
from __future__ import annotations
import logging
import threading
from collections.abc import Iterable
from enum import StrEnum
from typing import TYPE_CHECKING

from scormbridge.bridge.cancellation import CancellationToken
from scormbridge.bridge.models import CallResult, CallStatus
from scormbridge.core.errors import BridgeError
from scormbridge.core.logging.context import logContext
from scormbridge.core.redaction import DEFAULT_SENSITIVE_IDENTIFIERS, maskValue

if TYPE_CHECKING:
    from scormbridge.bridge.correlation import CorrelationBridge
    from scormbridge.config.settings import HostFunctions

logger = logging.getLogger(__name__)

__all__ = ["FacadeState", "ProtocolVersion", "SyncFacade"]



class FacadeState(StrEnum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    TERMINATING = "terminating"
    TERMINATED = "terminated"



class ProtocolVersion(StrEnum):
    SCORM_1_2 = "1.2"
    SCORM_2004 = "2004"



def _parseFlag(text: str) -> bool | None:
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None



class SyncFacade:
    """
    Blocking run-time API for application code running on worker threads.

    Each call wraps exactly one round trip through the CorrelationBridge and
    turns its CallResult into the plain value the caller wants. Nothing here
    raises for runtime failures; errors are logged and mapped to ""/False.
    """

    def __init__(
        self,
        bridge: CorrelationBridge,
        functions: HostFunctions | None = None,
        *,
        sensitiveIdentifiers: Iterable[str] = DEFAULT_SENSITIVE_IDENTIFIERS,
        cancelToken: CancellationToken | None = None,
        sessionId: str | None = None,
    ):
        if functions is None:
            from scormbridge.config.settings import HostFunctions
            functions = HostFunctions()
        self.bridge = bridge
        self.functions = functions
        self.sensitiveIdentifiers = frozenset(sensitiveIdentifiers)
        self.cancelToken = cancelToken
        self.sessionId = sessionId
        self.protocolVersion = ProtocolVersion.SCORM_2004
        self._state = FacadeState.UNINITIALIZED
        self._stateLock = threading.Lock()

    @property
    def state(self) -> FacadeState:
        with self._stateLock:
            return self._state

    def _setState(self, state: FacadeState) -> None:
        with self._stateLock:
            previous, self._state = self._state, state
        if previous is not state:
            logger.debug("Facade %s -> %s", previous, state)

    @property
    def isScorm2004(self) -> bool:
        return self.protocolVersion is ProtocolVersion.SCORM_2004

    def _onMainContext(self, operation: str) -> bool:
        if self.bridge.runningOnMainContext():
            logger.error("%s called on the main context; refusing to block", operation)
            return True
        return False

    def _roundTrip(self, functionName: str, *args: str) -> CallResult:
        try:
            return self.bridge.call(functionName, args, cancelToken=self.cancelToken)
        except BridgeError as err:
            logger.error("%s could not be sent: %s", functionName, err)
            return CallResult.cancelled(-1, str(err))

    def _sendOneWay(self, functionName: str) -> None:
        try:
            self.bridge.sendOneWay(functionName)
        except BridgeError as err:
            logger.error("%s could not be sent: %s", functionName, err)

    def _mask(self, identifier: str, value: str) -> str:
        return maskValue(identifier, value, self.sensitiveIdentifiers)

    def _scope(self, **kvs: object):
        """Log context for one public call; tags every line with this session."""
        return logContext(sessionId=self.sessionId, **kvs)

    # ----- Public API -----

    def initialize(self) -> bool:
        """
        Version handshake. The host answers "true" for a 2004 run-time,
        anything else selects 1.2.
        """
        with self._scope():
            if self._onMainContext("initialize"):
                return False
            self._setState(FacadeState.INITIALIZING)
            result = self._roundTrip(self.functions.versionCheck)
            if not result.ok:
                logger.error(
                    "Version check failed (%s): %s %s",
                    result.status, result.errorCode, result.errorDescription,
                )
                self._setState(FacadeState.UNINITIALIZED)
                return False

            flag = _parseFlag(result.value)
            if flag is None:
                logger.warning("Unexpected version check reply %r; assuming 1.2", result.value)
            self.protocolVersion = ProtocolVersion.SCORM_2004 if flag else ProtocolVersion.SCORM_1_2
            logger.info("ScormVersion is %s", self.protocolVersion.value)
            self._setState(FacadeState.READY)
            return True

    def getValue(self, identifier: str) -> str:
        with self._scope(identifier=identifier):
            if self._onMainContext(f"getValue({identifier})"):
                return ""
            logger.debug("Get %s", identifier)
            result = self._roundTrip(self.functions.getValue, identifier)
            with logContext(key=result.key):
                if result.ok:
                    logger.debug("Got %s", self._mask(identifier, result.value))
                    return result.value
                if result.status is CallStatus.HOST_ERROR:
                    logger.warning(
                        "Error: %s %s Result: %s",
                        result.errorCode, result.errorDescription, self._mask(identifier, result.value),
                    )
                else:
                    logger.warning("Get %s failed: %s", identifier, result.errorDescription)
                return ""

    def setValue(self, identifier: str, value: str) -> bool:
        with self._scope(identifier=identifier):
            if self._onMainContext(f"setValue({identifier})"):
                return False
            value = str(value)
            logger.debug("Set %s to %s", identifier, self._mask(identifier, value))
            result = self._roundTrip(self.functions.setValue, identifier, value)
            with logContext(key=result.key):
                if result.ok:
                    logger.debug("Result %s", result.value)
                    return True
                if result.status is CallStatus.HOST_ERROR:
                    logger.warning("Error: %s %s", result.errorCode, result.errorDescription)
                else:
                    logger.warning("Set %s failed: %s", identifier, result.errorDescription)
                return False

    def commit(self) -> None:
        with self._scope():
            if self._onMainContext("commit"):
                return
            logger.debug("Commit")
            self._sendOneWay(self.functions.commit)

    def terminate(self) -> None:
        with self._scope():
            if self._onMainContext("terminate"):
                return
            self._setState(FacadeState.TERMINATING)
            logger.debug("Terminate")
            self._sendOneWay(self.functions.terminate)
            self._setState(FacadeState.TERMINATED)
