# tests/scormbridge/bridge/test_main_context.py
from __future__ import annotations
import threading

import pytest

from scormbridge.bridge.main_context import MainContext
from scormbridge.core.errors import MainContextError



def test_post_runsOnMainThread(mainContext: MainContext):
    seen: list[bool] = []
    done = threading.Event()

    def probe() -> None:
        seen.append(mainContext.isCurrent())
        done.set()

    mainContext.post(probe)
    assert done.wait(2)
    assert seen == [True]
    assert mainContext.isCurrent() is False


def test_post_logsAndSwallowsErrors(mainContext: MainContext, caplog: pytest.LogCaptureFixture):
    def boom() -> None:
        raise RuntimeError("boom")

    mainContext.post(boom)
    assert mainContext.call(lambda: "still alive", timeoutS=2) == "still alive"
    assert any("failed" in rec.getMessage() for rec in caplog.records)


def test_call_returnsValue_andPropagatesErrors(mainContext: MainContext):
    assert mainContext.call(lambda a, b: a + b, 2, 3, timeoutS=2) == 5
    with pytest.raises(ZeroDivisionError):
        mainContext.call(lambda: 1 / 0, timeoutS=2)


def test_post_beforeStart_raises():
    ctx = MainContext()
    with pytest.raises(MainContextError):
        ctx.post(lambda: None)
    assert ctx.isCurrent() is False


def test_stop_isIdempotent_andContextManager():
    with MainContext("cm") as ctx:
        assert ctx.running
    assert not ctx.running
    ctx.stop()
    with pytest.raises(MainContextError):
        ctx.post(lambda: None)


def test_start_twice_raises(mainContext: MainContext):
    with pytest.raises(MainContextError):
        mainContext.start()
