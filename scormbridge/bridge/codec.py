# scormbridge/bridge/codec.py
from __future__ import annotations

from .models import MalformedReply, ParsedReply, ParseResult

__all__ = ["REPLY_SEPARATOR", "parseReply", "formatReply"]

REPLY_SEPARATOR = "|"



def parseReply(raw: object) -> ParseResult:
    """
    Parses "<value>|<errorCode>|<errorDescription>|<key>".

    Splits from the right so a value that itself contains "|" survives.
    Never raises; anything unusable comes back as MalformedReply.
    """
    if not isinstance(raw, str):
        return MalformedReply(raw=repr(raw), reason=f"expected str, got {type(raw).__name__}")

    parts = raw.rsplit(REPLY_SEPARATOR, 3)
    if len(parts) != 4:
        return MalformedReply(raw=raw, reason=f"expected 4 fields, got {len(parts)}")

    value, errorCode, errorDescription, keyText = parts
    keyText = keyText.strip()
    if not (keyText.isascii() and keyText.isdigit()):
        return MalformedReply(raw=raw, reason=f"key '{keyText}' is not a non-negative integer")

    return ParsedReply(
        key=int(keyText),
        value=value,
        errorCode=errorCode.strip(),
        errorDescription=errorDescription,
    )



def formatReply(key: int, value: str = "", errorCode: str = "", errorDescription: str = "") -> str:
    """Host-side encoding, used by the simulated host."""
    return REPLY_SEPARATOR.join((str(value), str(errorCode), str(errorDescription), str(key)))
