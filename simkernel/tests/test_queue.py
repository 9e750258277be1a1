"""
Tests for EventQueue ordering and thread-safe submission.
"""

import threading

import pytest

from simkernel.core.events import EventRecord
from simkernel.core.queue import EventQueue
from simkernel.tests.entities import Fixed

TARGET = Fixed([None])


def _rec(time, label):
    return EventRecord(time=time, target=TARGET, ordinal=0, debug_label=label)


def test_pops_in_time_order():
    q = EventQueue()
    for t in (5, 1, 3, 2, 4):
        q.push(_rec(t, str(t)))

    assert [q.pop().time for _ in range(5)] == [1, 2, 3, 4, 5]
    assert not q


def test_equal_times_are_fifo():
    """Records with the same time leave in insertion order."""
    q = EventQueue()
    labels = ["x", "y", "z", "w"]
    for label in labels:
        q.push(_rec(7, label))
    q.push(_rec(3, "early"))

    assert [q.pop().debug_label for _ in range(5)] == ["early"] + labels


def test_pop_empty_raises():
    with pytest.raises(IndexError):
        EventQueue().pop()


def test_pop_until_respects_bound():
    q = EventQueue()
    q.push(_rec(2, "a"))
    q.push(_rec(9, "b"))

    assert q.pop_until(5).debug_label == "a"
    assert q.pop_until(5) is None
    assert len(q) == 1
    assert q.peek_time() == 9
    assert q.pop_until(None).debug_label == "b"
    assert q.pop_until(None) is None


def test_iteration_and_clear_are_snapshots_in_dispatch_order():
    q = EventQueue()
    for t, label in ((4, "c"), (1, "a"), (4, "d"), (2, "b")):
        q.push(_rec(t, label))

    assert [r.debug_label for r in q] == ["a", "b", "c", "d"]
    assert len(q) == 4
    assert [r.debug_label for r in q.clear()] == ["a", "b", "c", "d"]
    assert len(q) == 0


def test_concurrent_push():
    """Submissions from many threads are all retained and stay ordered."""
    q = EventQueue()

    def writer(offset):
        for i in range(200):
            q.push(_rec(i, f"{offset}-{i}"))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    times = [q.pop().time for _ in range(len(q))]
    assert len(times) == 1600
    assert times == sorted(times)
