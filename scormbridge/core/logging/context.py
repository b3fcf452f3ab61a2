# scormbridge/core/logging/context.py
from __future__ import annotations
import contextvars
from collections.abc import Iterator
from contextlib import contextmanager

# Per-call log context. Enriched by the facade around every round trip.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("scormbridge.logctx", default=None)

def setLogContext(**kvs):
    """Set or update per-log context values (sessionId, key, identifier, etc.)."""
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    _logContextVar.set(current)

def clearLogContext():
    """Clear context after a call is fully handled."""
    _logContextVar.set(None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()

@contextmanager
def logContext(**kvs) -> Iterator[None]:
    """Scoped setLogContext(); restores the previous context on exit."""
    current = dict(_logContextVar.get() or {})
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    token = _logContextVar.set(current)
    try:
        yield
    finally:
        _logContextVar.reset(token)
