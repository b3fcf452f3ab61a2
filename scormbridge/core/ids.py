# scormbridge/core/ids.py
from __future__ import annotations

import uuid

__all__ = ["uuid_12"]



def uuid_12(prefix: str = "") -> str:
    """Returns a short ID with 12 chars from a UUIDv4, optionally prefixed."""
    if not isinstance(prefix, str):
        raise TypeError("prefix must be a str")
    return f"{prefix}{uuid.uuid4().hex[:12]}"
