# tests/scormbridge/bridge/test_reply_queue.py
from __future__ import annotations
import threading
import time

from scormbridge.bridge.codec import formatReply
from scormbridge.bridge.models import CallStatus
from scormbridge.bridge.pending import PendingCallTable
from scormbridge.bridge.reply_queue import ReplyQueue



def test_push_bumpsSequence():
    queue = ReplyQueue()
    before = queue.sequence
    queue.push("x|||1")
    assert queue.sequence == before + 1
    assert len(queue) == 1


def test_drainInto_deliversKnownKeys_andDiscardsUnknown():
    queue = ReplyQueue()
    table = PendingCallTable()
    key = table.reserve()

    queue.push(formatReply(key, "value"))
    queue.push(formatReply((key + 1) % table.keySpace, "orphan"))

    assert queue.drainInto(table) == 1
    assert len(queue) == 0
    result = table.takeReady(key)
    assert result is not None and result.value == "value"
    assert len(table) == 0


def test_drainInto_malformedItem_doesNotStopBatch():
    queue = ReplyQueue()
    table = PendingCallTable()
    first = table.reserve()
    second = table.reserve()

    queue.push(formatReply(first, "one"))
    queue.push("garbage without separators")
    queue.push(formatReply(second, "two", "403", "Read only"))

    assert queue.drainInto(table) == 2
    one = table.takeReady(first)
    two = table.takeReady(second)
    assert one is not None and one.value == "one"
    assert two is not None and two.status is CallStatus.HOST_ERROR


def test_drainInto_emptyQueue_returnsZero():
    assert ReplyQueue().drainInto(PendingCallTable()) == 0


def test_waitForActivity_timesOutWithoutPush():
    queue = ReplyQueue()
    started = time.perf_counter()
    assert queue.waitForActivity(queue.sequence, 0.03) is False
    assert time.perf_counter() - started >= 0.025


def test_waitForActivity_wakesOnPush():
    queue = ReplyQueue()
    seq = queue.sequence
    timer = threading.Timer(0.02, queue.push, args=("v|||1",))
    timer.start()
    try:
        started = time.perf_counter()
        assert queue.waitForActivity(seq, 5.0) is True
        assert time.perf_counter() - started < 2.0
    finally:
        timer.cancel()


def test_waitForActivity_returnsAtOnceWhenSequenceAlreadyMoved():
    queue = ReplyQueue()
    seq = queue.sequence
    queue.push("v|||1")
    assert queue.waitForActivity(seq, 5.0) is True
