# tests/scormbridge/host/test_simulated_host.py
from __future__ import annotations
import threading

from scormbridge.bridge.channel import HostCallbackRouter
from scormbridge.bridge.main_context import MainContext
from scormbridge.host.simulator import SimulatedLmsHost



class Inbox:
    def __init__(self, router: HostCallbackRouter):
        self.values: list[str] = []
        self.arrived = threading.Event()
        router.register("Obj", "Cb", self._receive)

    def _receive(self, value: str) -> None:
        self.values.append(value)
        self.arrived.set()

    def waitOne(self) -> str:
        assert self.arrived.wait(2)
        self.arrived.clear()
        return self.values[-1]



def test_getValue_knownAndUnknown(mainContext: MainContext, router: HostCallbackRouter, host: SimulatedLmsHost):
    inbox = Inbox(router)
    mainContext.post(host.call, "doGetValue", "cmi.mode", "Obj", "Cb", 11)
    assert inbox.waitOne() == "normal|||11"

    mainContext.post(host.call, "doGetValue", "cmi.nothing", "Obj", "Cb", 12)
    assert inbox.waitOne() == "Error|401|Undefined Data Model Element|12"


def test_setValue_stores(mainContext: MainContext, router: HostCallbackRouter, host: SimulatedLmsHost):
    inbox = Inbox(router)
    mainContext.post(host.call, "doSetValue", "cmi.location", "p2", "Obj", "Cb", 3)
    assert inbox.waitOne() == "true|||3"
    assert host.data["cmi.location"] == "p2"


def test_versionCheck(mainContext: MainContext, router: HostCallbackRouter, host: SimulatedLmsHost):
    inbox = Inbox(router)
    mainContext.post(host.call, "doIsVersionCheck", "Obj", "Cb", 1)
    assert inbox.waitOne() == "true|||1"
    host.isScorm2004 = False
    mainContext.post(host.call, "doIsVersionCheck", "Obj", "Cb", 2)
    assert inbox.waitOne() == "false|||2"


def test_scriptedError_appliesOnce(mainContext: MainContext, router: HostCallbackRouter, host: SimulatedLmsHost):
    inbox = Inbox(router)
    host.failNext("cmi.mode", "403", "Element is read only")
    mainContext.post(host.call, "doSetValue", "cmi.mode", "review", "Obj", "Cb", 5)
    assert inbox.waitOne() == "false|403|Element is read only|5"
    assert host.data["cmi.mode"] == "normal"

    mainContext.post(host.call, "doGetValue", "cmi.mode", "Obj", "Cb", 6)
    assert inbox.waitOne() == "normal|||6"


def test_silentMode_neverReplies(mainContext: MainContext, router: HostCallbackRouter, host: SimulatedLmsHost):
    inbox = Inbox(router)
    host.setSilent()
    mainContext.post(host.call, "doGetValue", "cmi.mode", "Obj", "Cb", 7)
    mainContext.call(lambda: None, timeoutS=2)
    assert not inbox.arrived.wait(0.05)
    assert host.calls[-1][0] == "doGetValue"


def test_oneWayCalls_areRecorded(mainContext: MainContext, host: SimulatedLmsHost):
    mainContext.post(host.call, "DebugPrint", "[info] hello")
    mainContext.post(host.call, "doCommit")
    mainContext.post(host.call, "doTerminate")
    mainContext.call(lambda: None, timeoutS=2)
    assert host.logLines == ["[info] hello"]
    assert host.commits == 1
    assert host.terminated


def test_router_unknownReceiver_isIgnored(router: HostCallbackRouter):
    assert router.sendMessage("Nobody", "Home", "x|||1") is False


def test_router_receiverFailure_isContained(router: HostCallbackRouter):
    def boom(value: str) -> None:
        raise RuntimeError(value)

    router.register("Obj", "Cb", boom)
    assert router.sendMessage("Obj", "Cb", "x") is False
    assert router.unregister("Obj", "Cb") is True
    assert router.unregister("Obj", "Cb") is False
