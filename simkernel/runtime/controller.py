"""
Controller: owns the clock and the event queue and runs the dispatch loop.

Blocking calls are expressed as generator behaviors:

    @behavior
    def withdraw(self, bank, amount):
        balance = yield controller.post_continuing_event(bank, DEBIT, (amount,))
        ...

post_continuing_event() enqueues the callee and attaches a Continuation to
the calling record; the behavior yields it to suspend. When the callee
completes, the caller is re-enqueued at the current instant and its
generator receives the value (send) or the failure (throw).

Only the thread running run() dispatches. post_event() may be called from
any thread; the queue serializes submissions.
"""

from __future__ import annotations

import inspect
import logging
import sys
import threading
from enum import Enum
from typing import Any, List, Optional, Sequence, TextIO, Tuple

from ..config import FailurePolicy, KernelConfig
from ..core.clock import SimulationClock, check_time
from ..core.continuation import Continuation
from ..core.entity import EntityReference
from ..core.errors import (
    CapabilityMismatch,
    InvocationFailure,
    OrderingViolation,
    SimulationError,
)
from ..core.events import EventRecord
from ..core.queue import EventQueue
from ..logging_config import get_logger
from ..metrics import track_dispatch, track_resume, track_run_duration, track_uncaught_failure
from . import kronos
from .statistics import SimulationStatistics

logger = logging.getLogger(__name__)

_SUSPENDED = object()


class ControllerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    HALTED = "halted"
    DRAINED = "drained"


class Controller:
    """
    Discrete-event scheduler.

    Args:
        config: Kernel configuration (defaults to KernelConfig())
        failure_policy: Overrides config.failure_policy
        end_time: Overrides config.end_time; later records are not dispatched
        trace_sink: Text stream for failure traces (default: stderr)

    Uncaught failures (nothing awaits the failing record) are written to
    trace_sink as a causal trace, logged, and then:
    - FailurePolicy.ABORT: the run halts and run() raises InvocationFailure
    - FailurePolicy.CONTINUE: the failure is appended to self.failures
    CapabilityMismatch never aborts: the offending record is dropped.
    """

    def __init__(
        self,
        config: Optional[KernelConfig] = None,
        *,
        failure_policy: Optional[FailurePolicy] = None,
        end_time: Optional[int] = None,
        trace_sink: Optional[TextIO] = None,
    ) -> None:
        config = config or KernelConfig()
        self.failure_policy = failure_policy or config.failure_policy
        self.end_time = end_time if end_time is not None else config.end_time
        self.trace_dispatch = config.trace_dispatch
        self.trace_sink = trace_sink
        self.statistics = SimulationStatistics()
        self.failures: List[Tuple[EventRecord, BaseException]] = []

        self._clock = SimulationClock()
        self._queue = EventQueue()
        self._state = ControllerState.IDLE
        self._stop_requested = threading.Event()
        self._loop_thread: Optional[int] = None
        self._current: Optional[EventRecord] = None
        self._offset = 0

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def now(self) -> int:
        return self._clock.now()

    @property
    def clock(self) -> SimulationClock:
        return self._clock

    @property
    def queue(self) -> EventQueue:
        return self._queue

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def current_event(self) -> Optional[EventRecord]:
        """Record executing on the calling thread, if any."""
        return self._caller()

    def _caller(self) -> Optional[EventRecord]:
        if self._loop_thread != threading.get_ident():
            return None
        return self._current

    def _require_caller(self, operation: str) -> EventRecord:
        caller = self._caller()
        if caller is None:
            raise SimulationError(f"{operation} requires an executing event")
        return caller

    def _posting_time(self, delay: int) -> int:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        base = self._clock.now()
        if self._caller() is not None:
            base += self._offset
        return check_time(base + delay)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def post_event(
        self,
        target: EntityReference,
        ordinal: int,
        arguments: Sequence[Any] = (),
        *,
        delay: int = 0,
        debug_label: Optional[str] = None,
    ) -> EventRecord:
        """
        Schedule a fire-and-forget invocation.

        The record lands at the caller's current instant (clock plus any
        advance() of the executing record) plus delay. Its source is the
        executing record, or None when posted from outside the loop.
        """
        record = EventRecord(
            time=self._posting_time(delay),
            target=target,
            ordinal=ordinal,
            arguments=arguments,
            source=self._caller(),
            debug_label=debug_label,
        )
        self._queue.push(record)
        return record

    def post_event_at(
        self,
        time: int,
        target: EntityReference,
        ordinal: int,
        arguments: Sequence[Any] = (),
        *,
        debug_label: Optional[str] = None,
    ) -> EventRecord:
        """
        Schedule a fire-and-forget invocation at an absolute instant.

        Raises:
            ValueError: If time precedes the clock
        """
        if check_time(time) < self._clock.now():
            raise ValueError(f"Cannot schedule in the past: time={time}, now={self.now}")
        record = EventRecord(
            time=time,
            target=target,
            ordinal=ordinal,
            arguments=arguments,
            source=self._caller(),
            debug_label=debug_label,
        )
        self._queue.push(record)
        return record

    def post_continuing_event(
        self,
        target: EntityReference,
        ordinal: int,
        arguments: Sequence[Any] = (),
        *,
        delay: int = 0,
        debug_label: Optional[str] = None,
    ) -> Continuation:
        """
        Schedule a blocking invocation from inside an executing behavior.

        The executing record is suspended until the target completes. The
        behavior must yield the returned Continuation; the yield evaluates
        to the target's value or raises the target's failure.

        Raises:
            SimulationError: If no record is executing on this thread
            CapabilityMismatch: If the caller is already suspended
        """
        caller = self._require_caller("post_continuing_event")
        record = EventRecord(
            time=self._posting_time(delay),
            target=target,
            ordinal=ordinal,
            arguments=arguments,
            source=caller,
            debug_label=debug_label,
            continuing=True,
        )
        continuation = Continuation(awaiting=record)
        caller.attach_continuation(continuation)
        self._queue.push(record)
        return continuation

    def blocking_sleep(self, duration: int) -> Continuation:
        """
        Suspend the executing behavior for duration time units.

        The behavior must yield the returned Continuation.
        """
        caller = self._require_caller("blocking_sleep")
        continuation = Continuation(wake_time=self._posting_time(duration))
        caller.attach_continuation(continuation)
        return continuation

    def advance(self, duration: int) -> None:
        """Move the posting instant of the executing behavior forward."""
        self._require_caller("advance")
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")
        self._offset += duration

    def repeat(self, delay: int = 0) -> EventRecord:
        """Schedule another invocation of the executing record after delay."""
        caller = self._require_caller("repeat")
        clone = caller.clone_at(self._posting_time(delay))
        self._queue.push(clone)
        return clone

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Enter RUNNING. Records already queued are kept."""
        if self._loop_thread is not None:
            raise SimulationError("Dispatch loop already active")
        self._stop_requested.clear()
        self._state = ControllerState.RUNNING
        logger.info(f"Controller started at t={self.now} with {len(self._queue)} pending event(s)")

    def stop(self) -> None:
        """Request the loop to halt after the record currently dispatching."""
        self._stop_requested.set()
        if self._loop_thread is None and self._state != ControllerState.IDLE:
            self._state = ControllerState.HALTED

    def run(self, until: Optional[int] = None) -> ControllerState:
        """
        Dispatch records until the queue drains, stop() is called, the end
        time is passed, or an uncaught failure aborts.

        Args:
            until: Last instant to dispatch (overrides end_time)

        Returns:
            Final state (DRAINED or HALTED)

        Raises:
            OrderingViolation: If a record precedes the clock
            InvocationFailure: On an uncaught failure under FailurePolicy.ABORT
        """
        self.start()
        end_time = until if until is not None else self.end_time
        self._loop_thread = threading.get_ident()
        try:
            with kronos.bound(self), track_run_duration():
                self._loop(end_time)
        except BaseException:
            self._state = ControllerState.HALTED
            raise
        finally:
            self._loop_thread = None
            self._current = None
        logger.info(
            f"Controller {self._state.value} at t={self.now}: "
            f"{self.statistics.total_events} event(s) dispatched, {len(self._queue)} pending"
        )
        return self._state

    def _loop(self, end_time: Optional[int]) -> None:
        while True:
            if self._stop_requested.is_set():
                self._state = ControllerState.HALTED
                return
            record = self._queue.pop_until(end_time)
            if record is None:
                self._state = ControllerState.HALTED if self._queue else ControllerState.DRAINED
                return
            self._dispatch(record)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, record: EventRecord) -> None:
        if record.time < self._clock.now():
            get_logger(__name__, trace_id=f"t={self.now}").critical(
                f"Ordering violation: {record} dequeued at t={self.now}"
            )
            raise OrderingViolation(f"{record} precedes clock {self.now}")
        self._clock = self._clock.advance_to(record.time)
        self._current = record
        self._offset = 0
        self.statistics.record_dispatch(record.signature, record.time)
        if self.trace_dispatch:
            logger.debug(f"Dispatching {record}")

        continuation = record.take_continuation()
        outcome = "ok"
        try:
            result = self._execute(record, continuation)
        except Exception as e:
            outcome = "mismatch" if isinstance(e, CapabilityMismatch) else "failed"
            self._abandon(record)
            origin = record
            if continuation is not None and continuation.error is e and continuation.origin is not None:
                origin = continuation.origin
            self._fail(record, e, origin)
        else:
            if result is not _SUSPENDED:
                self._complete(record, result)
        finally:
            self._current = None
            track_dispatch(outcome, len(self._queue), self.now)

    def _execute(self, record: EventRecord, continuation: Optional[Continuation]) -> Any:
        if record.frame is None:
            value = record.invoke()
            if not inspect.isgenerator(value):
                if record.continuation is not None:
                    raise CapabilityMismatch(
                        f"{record} suspended without yielding; blocking behaviors must be generators"
                    )
                return value
            record.frame = value
            continuation = None

        frame = record.frame
        try:
            if continuation is None:
                yielded = frame.send(None)
            elif continuation.error is not None:
                yielded = frame.throw(continuation.error)
            else:
                yielded = frame.send(continuation.result)
        except StopIteration as stop:
            record.frame = None
            if record.continuation is not None:
                raise CapabilityMismatch(f"{record} returned while suspended") from None
            return stop.value

        pending = record.continuation
        if pending is None or yielded is not pending:
            raise CapabilityMismatch(f"{record} yielded {yielded!r} instead of its pending continuation")
        if pending.awaiting is None:
            self._queue.push(record.resume(pending.wake_time))
        return _SUSPENDED

    def _abandon(self, record: EventRecord) -> None:
        frame, record.frame = record.frame, None
        if frame is not None:
            frame.close()
        record.take_continuation()

    def _awaiting_caller(self, record: EventRecord) -> Optional[EventRecord]:
        caller = record.source
        if not record.continuing or caller is None:
            return None
        pending = caller.continuation
        if pending is None or pending.awaiting is not record:
            return None
        return caller

    def _complete(self, record: EventRecord, result: Any) -> None:
        caller = self._awaiting_caller(record)
        if caller is not None:
            self._resume(caller, result, None, None)

    def _resume(
        self,
        caller: EventRecord,
        result: Any,
        error: Optional[BaseException],
        origin: Optional[EventRecord],
    ) -> None:
        self._queue.push(caller.resume(self.now, result, error, origin))
        self.statistics.continuations_resumed += 1
        track_resume()

    def _fail(self, record: EventRecord, error: Exception, origin: EventRecord) -> None:
        caller = self._awaiting_caller(record)
        if caller is not None:
            self._resume(caller, None, error, origin)
            return

        self._report_failure(origin, error)
        if isinstance(error, CapabilityMismatch):
            return
        self.statistics.uncaught_failures += 1
        track_uncaught_failure()
        if self.failure_policy == FailurePolicy.ABORT:
            self._state = ControllerState.HALTED
            raise InvocationFailure(origin, error) from error
        self.failures.append((origin, error))

    def _report_failure(self, origin: EventRecord, error: Exception) -> None:
        get_logger(__name__, trace_id=f"t={self.now}").error(
            f"Uncaught {type(error).__name__} in {origin}: {error}",
            exc_info=(type(error), error, error.__traceback__),
        )
        origin.trace(self.trace_sink or sys.stderr)

    def __repr__(self) -> str:
        return (
            f"Controller(state={self._state.value}, now={self.now}, "
            f"pending={len(self._queue)}, policy={self.failure_policy.value})"
        )
