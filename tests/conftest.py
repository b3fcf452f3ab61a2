# tests/conftest.py
from __future__ import annotations
import sys
from collections.abc import Iterator

import pytest

from scormbridge.bridge.channel import HostCallbackRouter
from scormbridge.bridge.correlation import CorrelationBridge
from scormbridge.bridge.main_context import MainContext
from scormbridge.config.settings import BridgeSettings, loadSettings
from scormbridge.facade import SyncFacade
from scormbridge.host.simulator import SimulatedLmsHost

CALLBACK_OBJECT = "ScormManager"
CALLBACK_FUNCTION = "ScormValueCallback"



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



@pytest.fixture
def settings() -> BridgeSettings:
    return loadSettings(overrides={
        "bridge.timeoutMs": 2000,
        "logging.forwardToHost.enabled": False,
    })



@pytest.fixture
def mainContext() -> Iterator[MainContext]:
    ctx = MainContext("test-main").start()
    try:
        yield ctx
    finally:
        ctx.stop()



@pytest.fixture
def router() -> HostCallbackRouter:
    return HostCallbackRouter()



@pytest.fixture
def host(mainContext: MainContext, router: HostCallbackRouter) -> SimulatedLmsHost:
    return SimulatedLmsHost(mainContext, router)



@pytest.fixture
def bridge(mainContext: MainContext, router: HostCallbackRouter, host: SimulatedLmsHost) -> CorrelationBridge:
    corr = CorrelationBridge(
        mainContext,
        host,
        callbackObjectName=CALLBACK_OBJECT,
        callbackFunctionName=CALLBACK_FUNCTION,
        timeoutMs=2000,
    )
    router.register(CALLBACK_OBJECT, CALLBACK_FUNCTION, corr.onReply)
    return corr



@pytest.fixture
def facade(bridge: CorrelationBridge) -> SyncFacade:
    return SyncFacade(bridge)



def drainMainContext(ctx: MainContext) -> None:
    """Barrier: returns once everything posted before it has run."""
    ctx.call(lambda: None, timeoutS=5)



@pytest.fixture
def barrier(mainContext: MainContext):
    return lambda: drainMainContext(mainContext)
