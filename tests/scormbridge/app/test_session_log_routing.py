# tests/scormbridge/app/test_session_log_routing.py
from __future__ import annotations
import logging
from collections.abc import Iterator

import pytest

from scormbridge.app.session import BridgeSession
from scormbridge.bridge.channel import RecordingChannel
from scormbridge.bridge.main_context import MainContext
from scormbridge.config.settings import BridgeSettings, loadSettings
from scormbridge.core.logging.context import logContext

logger = logging.getLogger("tests.session_logs")



@pytest.fixture
def forwardingSettings() -> BridgeSettings:
    return loadSettings(overrides={
        "bridge.timeoutMs": 2000,
        "logging.forwardToHost.enabled": True,
        "logging.forwardToHost.level": "WARNING",
    })



def _logLines(channel: RecordingChannel) -> list[str]:
    return [args[0] for fn, args in channel.calls if fn == "DebugPrint"]



@pytest.fixture
def twoSessions(forwardingSettings: BridgeSettings, mainContext: MainContext) -> Iterator[tuple[BridgeSession, BridgeSession]]:
    a = BridgeSession(forwardingSettings, mainContext, RecordingChannel(), sessionId="sess_a")
    b = BridgeSession(forwardingSettings, mainContext, RecordingChannel(), sessionId="sess_b")
    try:
        yield a, b
    finally:
        a.close()
        b.close()



def test_lines_goOnlyToTheirOwnSession(twoSessions, barrier):
    a, b = twoSessions
    with logContext(sessionId="sess_a"):
        logger.warning("line from session A")
    with logContext(sessionId="sess_b"):
        logger.warning("line from session B")
    barrier()

    assert _logLines(a.channel) == ["[warning] line from session A"]
    assert _logLines(b.channel) == ["[warning] line from session B"]


def test_linesWithoutSession_areNotForwarded(twoSessions, barrier):
    a, b = twoSessions
    logger.warning("process-wide line")
    barrier()
    assert _logLines(a.channel) == []
    assert _logLines(b.channel) == []


def test_closingOneSession_keepsTheOtherForwarding(twoSessions, barrier):
    a, b = twoSessions
    b.close()
    with logContext(sessionId="sess_a"):
        logger.warning("after B closed")
    with logContext(sessionId="sess_b"):
        logger.warning("B is gone")
    barrier()

    assert _logLines(a.channel) == ["[warning] after B closed"]
    assert _logLines(b.channel) == []


def test_closedSessions_detachTheirHandlers(forwardingSettings: BridgeSettings, mainContext: MainContext):
    before = list(logging.getLogger().handlers)
    session = BridgeSession(forwardingSettings, mainContext, RecordingChannel())
    assert len(logging.getLogger().handlers) == len(before) + 1
    session.close()
    assert logging.getLogger().handlers == before


def test_facadeErrors_reachOnlyTheCallingSessionsPage(forwardingSettings: BridgeSettings):
    a = BridgeSession.withSimulator(forwardingSettings)
    b = BridgeSession.withSimulator(forwardingSettings)
    try:
        assert a.facade.getValue("cmi.not_an_element") == ""
        a.mainContext.call(lambda: None, timeoutS=5)
        b.mainContext.call(lambda: None, timeoutS=5)

        assert any("401" in line for line in a.channel.logLines)
        assert b.channel.logLines == []
    finally:
        a.close()
        b.close()
