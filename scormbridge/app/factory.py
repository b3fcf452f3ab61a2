# scormbridge/app/factory.py
from __future__ import annotations
import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from scormbridge.bridge.main_context import MainContext
from scormbridge.config.settings import BridgeSettings, loadSettings
from .frames import CallbackFrame, ErrorFrame, HelloFrame, LogFrame, WelcomeFrame, parseInboundFrame
from .session import BridgeSession, HostSessionRegistry, WebSocketChannel

logger = logging.getLogger(__name__)

__all__ = ["createApp", "main"]

SessionHook = Callable[[BridgeSession], Any]



def createApp(
    settings: BridgeSettings | None = None,
    *,
    onSessionReady: SessionHook | None = None,
) -> FastAPI:
    """
    Builds the FastAPI app that host pages connect to.

    `onSessionReady` is called on the server loop right after the welcome
    frame went out. It must not block; start worker threads from it instead.
    """
    settings = settings or loadSettings()
    registry = HostSessionRegistry()

    @asynccontextmanager
    async def life(app: FastAPI) -> AsyncIterator[None]:
        yield
        registry.closeAll("server shutdown")

    app = FastAPI(lifespan=life)
    app.state.settings = settings
    app.state.sessions = registry

    # ----- CORS -----
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.allowOrigins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ----- Routes -----
    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "sessions": len(registry)}

    @app.get("/settings")
    async def currentSettings() -> dict[str, Any]:
        return settings.model_dump(mode="json")

    # ----- WebSocket endpoint -----
    @app.websocket("/ws")
    async def wsEndpoint(ws: WebSocket):
        await ws.accept()
        session: BridgeSession | None = None
        maxFrameChars = settings.server.maxFrameChars

        try:
            while True:
                event = await ws.receive()
                if event["type"] == "websocket.disconnect":
                    break
                if event["type"] != "websocket.receive":
                    continue

                raw = event.get("text")
                if raw is None:
                    if event.get("bytes") is not None:
                        logger.debug("Ignoring binary frame (%d bytes)", len(event["bytes"]))
                    continue

                # Soft guard for pathological sizes
                if len(raw) > maxFrameChars:
                    logger.warning("Dropping oversized frame (%d chars)", len(raw))
                    await ws.send_text(ErrorFrame(code="FRAME_TOO_LARGE", message="payload too large").model_dump_json())
                    continue

                frame = parseInboundFrame(raw)
                if frame is None:
                    logger.warning("Dropping invalid frame from host page")
                    continue

                # ----- Handshake -----
                if isinstance(frame, HelloFrame):
                    isNew = session is None
                    if isNew:
                        loop = asyncio.get_running_loop()
                        session = BridgeSession(
                            settings,
                            MainContext.fromRunningLoop(),
                            WebSocketChannel(ws, loop),
                        )
                        registry.add(session)
                        logger.info("Host connected: session %s", session.id)
                    else:
                        logger.debug("Repeated hello on session %s", session.id)
                    await ws.send_text(WelcomeFrame(
                        sessionId=session.id,
                        callbackObject=settings.bridge.callbackObjectName,
                        callbackFunction=settings.bridge.callbackFunctionName,
                    ).model_dump_json())
                    if isNew and onSessionReady is not None:
                        try:
                            onSessionReady(session)
                        except Exception:
                            logger.exception("onSessionReady hook failed")
                    continue

                if isinstance(frame, CallbackFrame):
                    if session is None:
                        logger.warning("Callback before hello dropped")
                        continue
                    session.router.sendMessage(frame.object, frame.function, frame.value)
                    continue

                if isinstance(frame, LogFrame):
                    logger.info("[page] %s", frame.text)
                    continue
        except Exception:
            logger.exception("WebSocket loop failed")
        finally:
            if session is not None:
                registry.remove(session.id)
                session.close("host disconnected")

    logger.info("scormbridge app created")
    return app



def main() -> None:
    import uvicorn
    from scormbridge.core.logging import configureLogging

    settings = loadSettings()
    configureLogging(settings)
    uvicorn.run(createApp(settings), host=settings.server.host, port=settings.server.port)



if __name__ == "__main__":
    main()
