"""
Tests for the controller dispatch loop.

Critical: time order, FIFO ties, continuation resume with values and
failures, and the documented failure policy.
"""

import io

import pytest

from simkernel.config import FailurePolicy, KernelConfig
from simkernel.core.entity import Entity, behavior
from simkernel.core.errors import (
    CapabilityMismatch,
    InvocationFailure,
    OrderingViolation,
    SimulationError,
)
from simkernel.core.events import EventRecord
from simkernel.runtime import kronos
from simkernel.runtime.controller import Controller, ControllerState
from simkernel.tests.entities import Boom, Caller, Recorder, TrackingController

PING = Recorder.ordinal_of("ping")
ECHO = Recorder.ordinal_of("echo")
FAIL = Recorder.ordinal_of("fail")
CALL = Caller.ordinal_of("call")
CALL_CATCHING = Caller.ordinal_of("call_catching")


class Raiser(Entity):
    def __init__(self, error: Exception) -> None:
        self.error = error

    @behavior
    def explode(self):
        raise self.error


def test_dispatch_in_time_order():
    """Records posted with t1 <= t2 <= ... dispatch in that order."""
    log = []
    ctl = Controller()
    r = Recorder("r", log)
    for t in (0, 2, 2, 5, 9, 9, 12):
        ctl.post_event_at(t, r, PING, (t,))

    assert ctl.run() == ControllerState.DRAINED
    assert [entry[1] for entry in log] == [0, 2, 2, 5, 9, 9, 12]
    assert ctl.now == 12


def test_out_of_order_posting_still_dispatches_by_time():
    log = []
    ctl = Controller()
    r = Recorder("r", log)
    for t in (7, 3, 5, 1):
        ctl.post_event_at(t, r, PING, (t,))

    ctl.run()
    assert [entry[1] for entry in log] == [1, 3, 5, 7]


def test_simultaneous_events_are_fifo():
    """Equal-time records dispatch in the order they were posted."""
    log = []
    ctl = Controller()
    x, y, z = Recorder("x", log), Recorder("y", log), Recorder("z", log)
    ctl.post_event_at(4, x, PING)
    ctl.post_event_at(4, y, PING)
    ctl.post_event_at(4, z, PING)

    ctl.run()
    assert [entry[0] for entry in log] == ["x", "y", "z"]


def test_post_event_at_rejects_past():
    ctl = Controller()
    r = Recorder("r", [])
    ctl.post_event_at(5, r, PING)
    ctl.run()
    with pytest.raises(ValueError):
        ctl.post_event_at(4, r, PING)


def test_continuing_call_returns_value():
    """A blocks on B at t=5; B returns "ok"; A observes exactly "ok"."""
    log = []
    ctl = Controller()
    a = Caller()
    b = Recorder("b", log)
    ctl.post_event_at(0, a, CALL, (b, ECHO, ("ok",), 5))

    state = ctl.run()

    assert a.observed == ["ok"]
    assert log == [("b", 5, ("ok",))]
    assert a.resumed_at == [5]
    assert ctl.now >= 5
    assert len(ctl.queue) == 0
    assert state == ControllerState.DRAINED
    assert ctl.statistics.continuations_resumed == 1


def test_continuing_call_raises_same_error():
    """B fails with E; A's suspended call raises exactly E."""
    error = Boom("kaput")
    ctl = Controller()
    a = Caller()
    ctl.post_event_at(0, a, CALL_CATCHING, (Raiser(error), Raiser.ordinal_of("explode"), ()))

    ctl.run()

    assert len(a.errors) == 1
    assert a.errors[0] is error
    assert a.observed == []
    assert ctl.failures == []
    assert ctl.statistics.uncaught_failures == 0


def test_uncaught_error_through_continuation_aborts_with_trace():
    """Uncaught failure reports the causal trace of the failing record."""
    error = Boom("kaput")
    sink = io.StringIO()
    ctl = Controller(trace_sink=sink)
    a = Caller()
    ctl.post_event_at(0, a, CALL, (Raiser(error), Raiser.ordinal_of("explode"), (), 5))

    with pytest.raises(InvocationFailure) as excinfo:
        ctl.run()

    assert excinfo.value.cause is error
    assert excinfo.value.__cause__ is error
    assert ctl.state == ControllerState.HALTED

    lines = sink.getvalue().splitlines()
    assert lines == [
        "5 : Raiser.explode()",
        "5 : Caller.call(target, ordinal, args, delay)",
    ]


def test_uncaught_failure_without_awaiter_aborts_by_default():
    log = []
    sink = io.StringIO()
    ctl = Controller(trace_sink=sink)
    r = Recorder("r", log)
    ctl.post_event_at(1, r, FAIL, ("first",))
    ctl.post_event_at(2, r, PING)

    with pytest.raises(InvocationFailure):
        ctl.run()

    assert ctl.state == ControllerState.HALTED
    assert [entry[1] for entry in log] == [1]
    assert len(ctl.queue) == 1
    assert sink.getvalue() == "1 : Recorder.fail(message)\n"
    assert ctl.statistics.uncaught_failures == 1


def test_continue_policy_keeps_processing():
    log = []
    sink = io.StringIO()
    ctl = Controller(failure_policy=FailurePolicy.CONTINUE, trace_sink=sink)
    r = Recorder("r", log)
    ctl.post_event_at(1, r, FAIL, ("first",))
    ctl.post_event_at(2, r, PING)
    ctl.post_event_at(3, r, FAIL, ("second",))

    assert ctl.run() == ControllerState.DRAINED
    assert [entry[1] for entry in log] == [1, 2, 3]
    assert [str(error) for _, error in ctl.failures] == ["first", "second"]
    assert [record.time for record, _ in ctl.failures] == [1, 3]
    assert sink.getvalue().splitlines() == [
        "1 : Recorder.fail(message)",
        "3 : Recorder.fail(message)",
    ]


def test_policy_from_config():
    ctl = Controller(KernelConfig(failure_policy=FailurePolicy.CONTINUE))
    assert ctl.failure_policy == FailurePolicy.CONTINUE
    assert Controller(KernelConfig(), failure_policy=FailurePolicy.CONTINUE).failure_policy == FailurePolicy.CONTINUE


def test_capability_mismatch_never_aborts():
    """Bad ordinal or arity drops that record only."""
    log = []
    sink = io.StringIO()
    ctl = Controller(trace_sink=sink)
    r = Recorder("r", log)
    ctl.post_event_at(1, r, 42)
    ctl.post_event_at(2, r, ECHO, ())
    ctl.post_event_at(3, r, PING, ("still runs",))

    assert ctl.run() == ControllerState.DRAINED
    assert log == [("r", 3, ("still runs",))]
    assert sink.getvalue().splitlines() == [
        "1 : Recorder#42",
        "2 : Recorder.echo(value)",
    ]
    assert ctl.failures == []


def test_capability_mismatch_propagates_to_awaiting_caller():
    ctl = Controller()
    a = Caller()
    ctl.post_event_at(0, a, CALL_CATCHING, (Recorder("r", []), 42, ()))

    ctl.run()
    assert len(a.errors) == 1
    assert isinstance(a.errors[0], CapabilityMismatch)


def test_ordering_violation_is_fatal():
    ctl = Controller()
    r = Recorder("r", [])
    ctl.post_event_at(5, r, PING)
    ctl.run()

    # Bypass the submission API to simulate a corrupted queue
    ctl.queue.push(EventRecord(time=1, target=r, ordinal=PING))
    with pytest.raises(OrderingViolation):
        ctl.run()
    assert ctl.state == ControllerState.HALTED
    assert ctl.now == 5


def test_post_continuing_event_outside_loop_is_rejected():
    ctl = Controller()
    with pytest.raises(SimulationError):
        ctl.post_continuing_event(Recorder("r", []), PING)
    with pytest.raises(SimulationError):
        ctl.blocking_sleep(3)
    with pytest.raises(SimulationError):
        ctl.advance(3)


def test_stop_halts_and_run_resumes():
    log = []
    ctl = Controller()

    class Stopper(Entity):
        @behavior
        def halt(self):
            kronos.current_controller().stop()

    r = Recorder("r", log)
    ctl.post_event_at(1, r, PING)
    ctl.post_event_at(2, Stopper(), Stopper.ordinal_of("halt"))
    ctl.post_event_at(3, r, PING)

    assert ctl.run() == ControllerState.HALTED
    assert [entry[1] for entry in log] == [1]
    assert len(ctl.queue) == 1

    assert ctl.run() == ControllerState.DRAINED
    assert [entry[1] for entry in log] == [1, 3]


def test_stop_before_run():
    ctl = Controller()
    ctl.start()
    ctl.stop()
    assert ctl.state == ControllerState.HALTED


def test_end_time_leaves_later_records_queued():
    log = []
    ctl = Controller(end_time=4)
    r = Recorder("r", log)
    for t in (1, 3, 5, 7):
        ctl.post_event_at(t, r, PING)

    assert ctl.run() == ControllerState.HALTED
    assert [entry[1] for entry in log] == [1, 3]
    assert ctl.now == 3
    assert len(ctl.queue) == 2

    assert ctl.run(until=5) == ControllerState.HALTED
    assert ctl.now == 5

    ctl.end_time = None
    assert ctl.run() == ControllerState.DRAINED
    assert [entry[1] for entry in log] == [1, 3, 5, 7]


def test_run_is_not_reentrant():
    ctl = Controller()
    errors = []

    class Nested(Entity):
        @behavior
        def go(self):
            try:
                kronos.current_controller().run()
            except SimulationError as e:
                errors.append(e)

    ctl.post_event_at(0, Nested(), Nested.ordinal_of("go"))
    ctl.run()
    assert len(errors) == 1


def test_statistics_spectrum():
    ctl = Controller()
    r = Recorder("r", [])
    a = Caller()
    ctl.post_event_at(0, r, PING)
    ctl.post_event_at(0, r, PING)
    ctl.post_event_at(1, a, CALL, (r, ECHO, ("v",)))

    ctl.run()
    stats = ctl.statistics
    # Caller.call is dispatched twice: first invocation and resumption
    assert stats.total_events == 5
    assert stats.spectrum["Recorder.ping(*args)"] == 2
    assert stats.spectrum["Recorder.echo(value)"] == 1
    assert stats.spectrum["Caller.call(target, ordinal, args, delay)"] == 2
    assert stats.start_time == 0
    assert stats.end_time == 1
    assert stats.to_dict()["continuations_resumed"] == 1


def test_tracking_controller_records_posts():
    ctl = TrackingController()
    r = Recorder("r", [])
    a = Caller()
    ctl.post_event(a, CALL, (r, ECHO, ("v",)))

    ctl.run()
    assert ctl.events == ["Caller.call(target, ordinal, args, delay)"]
    assert ctl.blocking_events == ["Recorder.echo(value)"]
    assert ctl.references == [a, r]
