from __future__ import annotations

from .context import setLogContext, clearLogContext, getLogContext, logContext
from .filters import SessionLogFilter
from .handlers import HostLogHandler
from .setup import configureLogging, attachHostLogHandler, detachHostLogHandler, getLogger

__all__ = [
    "configureLogging",
    "attachHostLogHandler",
    "detachHostLogHandler",
    "getLogger",
    "HostLogHandler",
    "SessionLogFilter",
    "setLogContext",
    "clearLogContext",
    "getLogContext",
    "logContext",
]
