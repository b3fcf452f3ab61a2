# tests/scormbridge/bridge/test_reply_codec.py
from __future__ import annotations

import pytest

from scormbridge.bridge.codec import formatReply, parseReply
from scormbridge.bridge.models import CallStatus, MalformedReply, ParsedReply



def test_parseReply_wellFormed():
    parsed = parseReply("Rene Descartes|||4711")
    assert parsed == ParsedReply(key=4711, value="Rene Descartes", errorCode="", errorDescription="")
    result = parsed.toResult()
    assert result.ok
    assert result.status is CallStatus.OK


def test_parseReply_hostError():
    parsed = parseReply("Error|401|Undefined Data Model Element|12")
    assert isinstance(parsed, ParsedReply)
    result = parsed.toResult()
    assert result.status is CallStatus.HOST_ERROR
    assert result.errorCode == "401"
    assert result.errorDescription == "Undefined Data Model Element"
    assert not result.ok


def test_parseReply_valueContainingSeparator_isKeptIntact():
    parsed = parseReply("a|b|c|||7")
    assert isinstance(parsed, ParsedReply)
    assert parsed.value == "a|b|c"
    assert parsed.key == 7


def test_parseReply_keyWhitespaceIsTrimmed():
    parsed = parseReply("v||| 42 \n")
    assert isinstance(parsed, ParsedReply)
    assert parsed.key == 42


@pytest.mark.parametrize("raw", [
    "",
    "no separators",
    "only|two",
    "v|||",
    "v|||abc",
    "v|||-3",
    "v|||4.5",
])
def test_parseReply_malformed(raw: str):
    parsed = parseReply(raw)
    assert isinstance(parsed, MalformedReply)
    assert parsed.reason


def test_parseReply_nonString_isMalformed():
    assert isinstance(parseReply(None), MalformedReply)
    assert isinstance(parseReply(b"v|||1"), MalformedReply)


def test_formatReply_layout():
    assert formatReply(9, "true") == "true|||9"
    assert formatReply(3, "Error", "401", "Undefined") == "Error|401|Undefined|3"
