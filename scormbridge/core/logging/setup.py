# scormbridge/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter, RedactingFormatter, HostLineFormatter
from .filters import RecurringSuppressFilter, SessionLogFilter
from .handlers import HostLogHandler

if TYPE_CHECKING:
    from scormbridge.bridge.channel import HostChannel
    from scormbridge.bridge.main_context import MainContext
    from scormbridge.config.settings import BridgeSettings

__all__ = [
    "NO_PROPAGATE",
    "configureLogging",
    "attachHostLogHandler",
    "detachHostLogHandler",
    "getLogger",
]



# Disable propagation from common libraries
NO_PROPAGATE = [
    "uvicorn", "uvicorn.access", "uvicorn.error",
    "fastapi", "concurrent.futures", "asyncio",
    "httpcore.connection", "httpcore.http11",
    "httpx"
]



def configureLogging(settings: BridgeSettings) -> None:
    """
    Initiate the global logging configuration.

    Dev:
      - Console pretty logs (DEBUG)
      - Optional JSON file log (DEBUG)
      - Host page forwarding is attached per session (attachHostLogHandler)
    
    Prod:
      - Console INFO
      - Optional JSON file log INFO with rotation
      - Learner PII scrubbing always active
      - Optional recurring suppression (toggle)
    """
    logCfg = settings.logging
    rootLevel = logging.DEBUG if logCfg.devMode else logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)
    
    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    handlers: list[logging.Handler] = []

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(RedactingFormatter(DevFormatter()))
    handlers.append(consoleHandler)

    if logCfg.file.enabled:
        fileHandler = logging.handlers.RotatingFileHandler(
            logCfg.file.path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(RedactingFormatter(JsonFormatter()))
        handlers.append(fileHandler)

    # Optional recurring suppression (disabled by default)
    if logCfg.suppressRecurring.enabled:
        suppressFilter = RecurringSuppressFilter(
            windowSeconds=logCfg.suppressRecurring.windowSeconds,
            maxPerWindow=logCfg.suppressRecurring.maxPerWindow,
        )
        for handler in handlers:
            handler.addFilter(suppressFilter)

    for handler in handlers:
        root.addHandler(handler)

    # Per-logger tweaks (reduce noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)



def attachHostLogHandler(
    settings: BridgeSettings,
    mainContext: MainContext,
    channel: HostChannel,
    sessionId: str,
) -> HostLogHandler:
    """
    Forwards records logged under `sessionId` to that session's host page.
    The handler hangs off the root logger until detachHostLogHandler().
    """
    hostCfg = settings.logging.forwardToHost
    handler = HostLogHandler(maxQueue=hostCfg.maxQueue, batchSize=hostCfg.batchSize)
    handler.setLevel(getattr(logging, hostCfg.level.upper(), logging.INFO))
    handler.setFormatter(RedactingFormatter(HostLineFormatter()))
    handler.addFilter(SessionLogFilter(sessionId))
    handler.bind(mainContext, channel, settings.host.functions.log)
    logging.getLogger().addHandler(handler)
    return handler



def detachHostLogHandler(handler: HostLogHandler) -> None:
    logging.getLogger().removeHandler(handler)
    handler.unbind()
    handler.close()



def getLogger(name: str, side: str = "") -> logging.Logger:
    return logging.getLogger(f"{str(side).strip()}.{str(name).strip()}" if str(side).strip() else str(name).strip())
