# tests/scormbridge/bridge/test_correlation_bridge.py
from __future__ import annotations
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from scormbridge.bridge.cancellation import CancellationToken
from scormbridge.bridge.codec import formatReply
from scormbridge.bridge.correlation import CorrelationBridge
from scormbridge.bridge.models import CallResult, CallStatus
from scormbridge.host.simulator import SimulatedLmsHost



# ----------------------------
# Keys
# ----------------------------

def test_newKey_uniqueUnderConcurrency(bridge: CorrelationBridge):
    with ThreadPoolExecutor(max_workers=16) as pool:
        keys = list(pool.map(lambda _: bridge.newKey(), range(1000)))

    assert len(set(keys)) == 1000
    assert all(0 <= key < 65536 for key in keys)
    assert sorted(bridge.pendingKeys()) == sorted(keys)


# ----------------------------
# Round trips
# ----------------------------

def test_call_roundTrip_removesEntry(bridge: CorrelationBridge, host: SimulatedLmsHost):
    result = bridge.call("doGetValue", ["cmi.learner_name"])
    assert result.status is CallStatus.OK
    assert result.value == "Rene Descartes"
    assert bridge.pendingKeys() == []

    fn, args = host.calls[-1]
    assert fn == "doGetValue"
    assert args[:3] == ("cmi.learner_name", "ScormManager", "ScormValueCallback")
    assert args[3] == result.key


def test_send_appendsCallbackFieldsAndKey(bridge: CorrelationBridge, host: SimulatedLmsHost, barrier):
    host.setSilent()
    key = bridge.newKey()
    bridge.send("doSetValue", ["cmi.location", "page-3"], key)
    barrier()
    assert host.calls[-1] == ("doSetValue", ("cmi.location", "page-3", "ScormManager", "ScormValueCallback", key))


def test_sendOneWay_hasNoCallbackFields(bridge: CorrelationBridge, host: SimulatedLmsHost, barrier):
    bridge.sendOneWay("doCommit")
    barrier()
    assert host.calls[-1] == ("doCommit", ())
    assert host.commits == 1


def test_hostError_isReportedAsHostError(bridge: CorrelationBridge):
    result = bridge.call("doGetValue", ["cmi.does_not_exist"])
    assert result.status is CallStatus.HOST_ERROR
    assert result.errorCode == "401"
    assert bridge.pendingKeys() == []


def test_outOfOrderReplies_reachTheirOwnWaiters(bridge: CorrelationBridge):
    first = bridge.newKey()
    second = bridge.newKey()
    results: dict[int, CallResult] = {}

    def waitFor(key: int) -> None:
        results[key] = bridge.awaitReply(key, timeoutMs=2000)

    threads = [threading.Thread(target=waitFor, args=(key,)) for key in (first, second)]
    for thread in threads:
        thread.start()

    bridge.onReply(formatReply(second, "B"))
    bridge.onReply(formatReply(first, "A"))

    for thread in threads:
        thread.join(5)
    assert results[first].value == "A"
    assert results[second].value == "B"
    assert bridge.pendingKeys() == []


def test_outOfOrderReplies_fromDelayedHost(bridge: CorrelationBridge, host: SimulatedLmsHost):
    host.replyDelayMs = (0, 30)
    with ThreadPoolExecutor(max_workers=8) as pool:
        identifiers = ["cmi.location", "cmi.mode", "cmi.credit", "cmi.entry"] * 4
        values = list(pool.map(lambda ident: bridge.call("doGetValue", [ident]).value, identifiers))
    expected = [host.data[ident] for ident in identifiers]
    assert values == expected


def test_malformedReply_inSameBatch_doesNotBlockValidOne(bridge: CorrelationBridge):
    key = bridge.newKey()
    bridge.onReply("this is not a reply")
    bridge.onReply(formatReply(key, "still fine"))
    result = bridge.awaitReply(key, timeoutMs=1000)
    assert result.status is CallStatus.OK
    assert result.value == "still fine"


# ----------------------------
# Timeout, late and orphan replies
# ----------------------------

def test_awaitReply_timesOut_andRemovesEntry(bridge: CorrelationBridge, host: SimulatedLmsHost):
    host.setSilent()
    key = bridge.newKey()
    bridge.send("doGetValue", ["cmi.location"], key)

    started = time.perf_counter()
    result = bridge.awaitReply(key, timeoutMs=50, pollIntervalMs=10)
    elapsedMs = (time.perf_counter() - started) * 1000

    assert result.status is CallStatus.TIMED_OUT
    assert result.key == key
    assert 45 <= elapsedMs < 500
    assert key not in bridge.pendingKeys()


def test_lateReply_afterTimeout_isDropped(bridge: CorrelationBridge, host: SimulatedLmsHost):
    host.setSilent()
    key = bridge.newKey()
    assert bridge.awaitReply(key, timeoutMs=20).status is CallStatus.TIMED_OUT

    bridge.onReply(formatReply(key, "too late"))
    assert bridge.queue.drainInto(bridge.table) == 0
    assert bridge.pendingKeys() == []


def test_orphanReply_leavesOtherCallsWaiting(bridge: CorrelationBridge):
    key = bridge.newKey()
    orphan = (key + 1) % 65536
    bridge.onReply(formatReply(orphan, "nobody asked"))
    assert bridge.queue.drainInto(bridge.table) == 0
    assert bridge.pendingKeys() == [key]


# ----------------------------
# Cancellation
# ----------------------------

def test_cancelToken_stopsWait(bridge: CorrelationBridge, host: SimulatedLmsHost):
    host.setSilent()
    token = CancellationToken()
    key = bridge.newKey()
    timer = threading.Timer(0.03, token.cancel, args=("user left",))
    timer.start()
    try:
        started = time.perf_counter()
        result = bridge.awaitReply(key, timeoutMs=5000, pollIntervalMs=10, cancelToken=token)
    finally:
        timer.cancel()

    assert result.status is CallStatus.CANCELLED
    assert result.errorDescription == "user left"
    assert time.perf_counter() - started < 2.0
    assert bridge.pendingKeys() == []


def test_abortAll_wakesBlockedWaiters(bridge: CorrelationBridge, host: SimulatedLmsHost):
    host.setSilent()
    results: list[CallResult] = []
    workers = [
        threading.Thread(target=lambda: results.append(bridge.call("doGetValue", ["cmi.location"], timeoutMs=5000)))
        for _ in range(3)
    ]
    for worker in workers:
        worker.start()

    deadline = time.monotonic() + 2
    while len(bridge.pendingKeys()) < 3 and time.monotonic() < deadline:
        time.sleep(0.005)

    assert bridge.abortAll("host disconnected") == 3
    for worker in workers:
        worker.join(2)

    assert [r.status for r in results] == [CallStatus.CANCELLED] * 3
    assert bridge.pendingKeys() == []


# ----------------------------
# Main context guard
# ----------------------------

def test_awaitReply_onMainContext_returnsImmediately(bridge: CorrelationBridge, mainContext):
    key = bridge.newKey()
    started = time.perf_counter()
    result = mainContext.call(bridge.awaitReply, key, timeoutS=5)
    assert result.status is CallStatus.MAIN_CONTEXT
    assert time.perf_counter() - started < 1.0
    assert key not in bridge.pendingKeys()


def test_runningOnMainContext(bridge: CorrelationBridge, mainContext):
    assert bridge.runningOnMainContext() is False
    assert mainContext.call(bridge.runningOnMainContext, timeoutS=5) is True


def test_onReply_neverRaises(bridge: CorrelationBridge):
    bridge.onReply(None)  # type: ignore[arg-type]
    assert bridge.queue.drainInto(bridge.table) == 0
