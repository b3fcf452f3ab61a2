# scormbridge/app/session.py
from __future__ import annotations
import asyncio
import logging
import threading
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from scormbridge.bridge.channel import HostCallbackRouter, HostChannel
from scormbridge.bridge.correlation import CorrelationBridge
from scormbridge.bridge.main_context import MainContext
from scormbridge.config.settings import BridgeSettings
from scormbridge.core.ids import uuid_12
from scormbridge.core.logging import attachHostLogHandler, detachHostLogHandler, logContext
from scormbridge.core.logging.handlers import HostLogHandler
from scormbridge.facade import SyncFacade
from scormbridge.manager import ScormManager
from .frames import CallFrame

logger = logging.getLogger(__name__)

__all__ = ["BridgeSession", "WebSocketChannel", "HostSessionRegistry"]



class BridgeSession:
    """
    Composition root for one connected host: the main context, the host
    channel, the callback router and the bridge/facade pair wired to them.
    There is no process-wide bridge; every session owns its own.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        mainContext: MainContext,
        channel: HostChannel,
        router: HostCallbackRouter | None = None,
        *,
        sessionId: str | None = None,
        forwardLogs: bool | None = None,
    ):
        self.id = sessionId or uuid_12("sess_")
        self.settings = settings
        self.mainContext = mainContext
        self.channel = channel
        self.router = router or HostCallbackRouter()

        bridgeCfg = settings.bridge
        self.bridge = CorrelationBridge(
            mainContext,
            channel,
            callbackObjectName=bridgeCfg.callbackObjectName,
            callbackFunctionName=bridgeCfg.callbackFunctionName,
            timeoutMs=bridgeCfg.timeoutMs,
            pollIntervalMs=bridgeCfg.pollIntervalMs,
            keySpace=bridgeCfg.keySpace,
        )
        self.facade = SyncFacade(
            self.bridge,
            settings.host.functions,
            sensitiveIdentifiers=settings.logging.redactIdentifiers,
            sessionId=self.id,
        )
        self.router.register(bridgeCfg.callbackObjectName, bridgeCfg.callbackFunctionName, self.bridge.onReply)

        if forwardLogs is None:
            forwardLogs = settings.logging.forwardToHost.enabled
        self._hostLogHandler: HostLogHandler | None = None
        if forwardLogs:
            self._hostLogHandler = attachHostLogHandler(settings, mainContext, channel, self.id)

        self._manager: ScormManager | None = None
        self._closed = False
        self._ownsMainContext = False
        logger.debug("Bridge session %s created", self.id)

    @classmethod
    def withSimulator(cls, settings: BridgeSettings, **hostOptions: Any) -> BridgeSession:
        """
        Session against an in-process SimulatedLmsHost on its own main
        context thread. Closing the session stops that thread.
        """
        from scormbridge.host.simulator import SimulatedLmsHost

        mainContext = MainContext("scormbridge-sim").start()
        router = HostCallbackRouter()
        delay = settings.simulator.replyDelayMs
        hostOptions.setdefault("replyDelayMs", (delay.min, delay.max))
        host = SimulatedLmsHost(mainContext, router, functions=settings.host.functions, **hostOptions)
        session = cls(settings, mainContext, host, router)
        session._ownsMainContext = True
        return session

    @property
    def closed(self) -> bool:
        return self._closed

    def manager(self) -> ScormManager:
        """Lazily built ScormManager running on this session's facade."""
        if self._manager is None:
            managerCfg = self.settings.manager
            self._manager = ScormManager(
                self.facade,
                workerThreads=managerCfg.workerThreads,
                initializeWaitPollMs=managerCfg.initializeWaitPollMs,
            )
        return self._manager

    def close(self, reason: str = "session closed") -> None:
        if self._closed:
            return
        self._closed = True
        bridgeCfg = self.settings.bridge
        self.router.unregister(bridgeCfg.callbackObjectName, bridgeCfg.callbackFunctionName)
        with logContext(sessionId=self.id):
            self.bridge.abortAll(reason)
        if self._hostLogHandler is not None:
            detachHostLogHandler(self._hostLogHandler)
            self._hostLogHandler = None
        if self._manager is not None:
            self._manager.close(wait=False)
        if self._ownsMainContext:
            self.mainContext.stop()
        logger.info("Bridge session %s closed: %s", self.id, reason)

    def __repr__(self) -> str:
        return f"BridgeSession(id={self.id!r}, closed={self._closed})"



class WebSocketChannel:
    """
    HostChannel over the page's WebSocket. call() runs on the server loop
    (the adopted main context) and only schedules the send.
    """

    def __init__(self, ws: WebSocket, loop: asyncio.AbstractEventLoop):
        self.ws = ws
        self.loop = loop
        self._tasks: set[asyncio.Task[None]] = set()

    def call(self, functionName: str, *args: Any) -> None:
        frame = CallFrame(fn=functionName, args=list(args))
        task = self.loop.create_task(self._send(frame.model_dump_json()))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, text: str) -> None:
        if self.ws.application_state is not WebSocketState.CONNECTED:
            logger.debug("Dropping host call; socket is closed")
            return
        try:
            await self.ws.send_text(text)
        except Exception:
            logger.debug("Sending host call failed (likely disconnect happened)", exc_info=True)



class HostSessionRegistry:
    """Live bridge sessions by id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: dict[str, BridgeSession] = {}

    def add(self, session: BridgeSession) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise KeyError(f"Session '{session.id}' is already registered")
            self._sessions[session.id] = session

    def get(self, sessionId: str) -> BridgeSession | None:
        with self._lock:
            return self._sessions.get(sessionId)

    def remove(self, sessionId: str) -> BridgeSession | None:
        with self._lock:
            return self._sessions.pop(sessionId, None)

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def closeAll(self, reason: str = "server shutdown") -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close(reason)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
