# tests/scormbridge/test_sync_facade.py
from __future__ import annotations
import logging
import time

import pytest

from scormbridge.bridge.correlation import CorrelationBridge
from scormbridge.bridge.main_context import MainContext
from scormbridge.facade import FacadeState, ProtocolVersion, SyncFacade
from scormbridge.host.simulator import SimulatedLmsHost



# ----------------------------
# Handshake and state machine
# ----------------------------

def test_initialize_selects2004(facade: SyncFacade):
    assert facade.state is FacadeState.UNINITIALIZED
    assert facade.initialize() is True
    assert facade.state is FacadeState.READY
    assert facade.protocolVersion is ProtocolVersion.SCORM_2004
    assert facade.isScorm2004


def test_initialize_selects12_onFalse(facade: SyncFacade, host: SimulatedLmsHost):
    host.isScorm2004 = False
    assert facade.initialize() is True
    assert facade.protocolVersion is ProtocolVersion.SCORM_1_2
    assert not facade.isScorm2004


def test_initialize_failedHandshake_returnsToUninitialized(bridge: CorrelationBridge, host: SimulatedLmsHost):
    host.setSilent()
    bridge.timeoutMs = 30
    facade = SyncFacade(bridge)
    assert facade.initialize() is False
    assert facade.state is FacadeState.UNINITIALIZED
    assert bridge.pendingKeys() == []


def test_terminate_movesToTerminated(facade: SyncFacade, host: SimulatedLmsHost, barrier):
    facade.initialize()
    facade.terminate()
    barrier()
    assert facade.state is FacadeState.TERMINATED
    assert host.terminated is True


def test_getSet_notGatedOnState(facade: SyncFacade):
    assert facade.state is FacadeState.UNINITIALIZED
    assert facade.getValue("cmi.location") == "Bookmarked location id"


# ----------------------------
# Values
# ----------------------------

def test_setValue_thenGetValue(facade: SyncFacade, host: SimulatedLmsHost):
    assert facade.setValue("cmi.location", "chapter-2") is True
    assert host.data["cmi.location"] == "chapter-2"
    assert facade.getValue("cmi.location") == "chapter-2"


def test_getValue_unknownElement_returnsEmpty(facade: SyncFacade):
    assert facade.getValue("cmi.no_such_element") == ""


def test_setValue_hostError_returnsFalse(facade: SyncFacade, host: SimulatedLmsHost):
    host.failNext("cmi.location", "401", "Undefined Data Model Element")
    assert facade.setValue("cmi.location", "x") is False
    assert host.data["cmi.location"] == "Bookmarked location id"


def test_getValue_timeout_returnsEmpty(bridge: CorrelationBridge, host: SimulatedLmsHost):
    host.setSilent()
    bridge.timeoutMs = 30
    assert SyncFacade(bridge).getValue("cmi.location") == ""


def test_setValue_coercesToString(facade: SyncFacade, host: SimulatedLmsHost):
    assert facade.setValue("cmi.score.raw", 42) is True  # type: ignore[arg-type]
    assert host.data["cmi.score.raw"] == "42"


def test_commit_isOneWay(facade: SyncFacade, host: SimulatedLmsHost, barrier):
    facade.commit()
    barrier()
    assert host.commits == 1
    assert host.calls[-1] == ("doCommit", ())


# ----------------------------
# Main context guard
# ----------------------------

def test_facade_onMainContext_failsFast(facade: SyncFacade, host: SimulatedLmsHost, mainContext: MainContext):
    started = time.perf_counter()
    assert mainContext.call(facade.getValue, "cmi.location", timeoutS=5) == ""
    assert mainContext.call(facade.setValue, "cmi.location", "x", timeoutS=5) is False
    assert mainContext.call(facade.initialize, timeoutS=5) is False
    assert time.perf_counter() - started < 1.0
    assert host.calls == []
    assert facade.bridge.pendingKeys() == []


# ----------------------------
# Logging
# ----------------------------

def test_sensitiveValues_areMaskedInLogs(facade: SyncFacade, caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.DEBUG, logger="scormbridge.facade"):
        assert facade.getValue("cmi.learner_name") == "Rene Descartes"
        facade.setValue("cmi.learner_id", "secret-id")
    text = "\n".join(rec.getMessage() for rec in caplog.records)
    assert "Rene Descartes" not in text
    assert "secret-id" not in text
    assert "***" in text


def test_initialize_logsVersion(facade: SyncFacade, caplog: pytest.LogCaptureFixture):
    with caplog.at_level(logging.INFO, logger="scormbridge.facade"):
        facade.initialize()
    assert any("ScormVersion is 2004" in rec.getMessage() for rec in caplog.records)
