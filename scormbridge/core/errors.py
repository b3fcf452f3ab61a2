# scormbridge/core/errors.py
from __future__ import annotations

__all__ = [
    "BridgeError", "KeySpaceExhaustedError",
    "MainContextError", "ConfigValidationError",
]



class BridgeError(Exception):
    """Base class for scormbridge programming and configuration errors."""
    pass



class KeySpaceExhaustedError(BridgeError):
    """Raised when every correlation key is held by an outstanding call."""
    pass



class MainContextError(BridgeError):
    """Raised when the main context is used before start() or after stop()."""
    pass



class ConfigValidationError(BridgeError):
    """Raised when the effective configuration document fails schema validation."""
    def __init__(self, namespace: str, message: str):
        super().__init__(f"{namespace}: {message}")
        self.namespace = namespace
        self.message = message
