"""
Event record: one scheduled invocation of an entity behavior.

Records link to the record whose execution caused them (source), which
gives a causal chain that survives suspend/resume even though the real
Python call stack does not.
"""

import sys
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, TextIO, Tuple

from .clock import check_time
from .continuation import Continuation
from .entity import EntityReference
from .errors import CapabilityMismatch, CloneDefect, OrderingViolation, SimulationError

# Serializes trace output when several threads share one sink.
_TRACE_LOCK = threading.RLock()


@dataclass(eq=False)
class EventRecord:
    """
    Scheduled invocation.

    Fields:
        time: Simulated instant of the invocation
        target: Entity to invoke (borrowed, never None)
        ordinal: Behavior selector in the target's dispatch table
        arguments: Positional arguments for the behavior
        source: Record whose execution posted this one (None at the root)
        debug_label: Optional diagnostic string shown in traces
        continuing: True when source is suspended awaiting this record
        continuation: Present only while this record is suspended

    Equality is identity; ordering is by time only (see compare()).
    """
    time: int
    target: EntityReference
    ordinal: int
    arguments: Tuple[Any, ...] = ()
    source: Optional["EventRecord"] = field(default=None, repr=False)
    debug_label: Optional[str] = None
    continuing: bool = False
    continuation: Optional[Continuation] = field(default=None, init=False, repr=False)
    # Suspended generator of a blocking behavior, owned by the controller.
    frame: Any = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.target is None:
            raise ValueError("EventRecord.target is required but None")
        check_time(self.time)
        self.arguments = tuple(self.arguments)

    def compare(self, other: "EventRecord") -> int:
        """
        Order two records by time.

        Returns -1, 0 or 1. Equal times compare equal; the queue breaks ties
        by insertion order.
        """
        # Relational only: (self.time - other.time) is not safe for 64-bit peers.
        if self.time == other.time:
            return 0
        if self.time < other.time:
            return -1
        return 1

    def __lt__(self, other: "EventRecord") -> bool:
        return self.compare(other) < 0

    def clone_at(self, time: int) -> "EventRecord":
        """
        Copy this record for rescheduling at time.

        The copy shares target, ordinal, arguments and source, and starts
        without a continuation or suspended frame. This record is unchanged.

        Raises:
            CloneDefect: If a valid copy cannot be built
        """
        try:
            return EventRecord(
                time=time,
                target=self.target,
                ordinal=self.ordinal,
                arguments=self.arguments,
                source=self.source,
                debug_label=self.debug_label,
            )
        except (TypeError, ValueError) as e:
            raise CloneDefect(f"Cannot clone {self} at {time!r}: {e}") from e

    @property
    def signature(self) -> str:
        try:
            return self.target.signature_for(self.ordinal)
        except CapabilityMismatch:
            return f"{type(self.target).__name__}#{self.ordinal}"

    def invoke(self) -> Any:
        """Run the target behavior. Failures propagate unchanged."""
        return self.target.invoke(self.ordinal, self.arguments)

    def attach_continuation(self, continuation: Continuation) -> None:
        if self.continuation is not None:
            raise CapabilityMismatch(f"{self} is already suspended")
        self.continuation = continuation

    def take_continuation(self) -> Optional[Continuation]:
        """Detach and return the continuation (consumed on resumption)."""
        continuation, self.continuation = self.continuation, None
        return continuation

    def resume(
        self,
        current_time: int,
        result: Any = None,
        error: Optional[BaseException] = None,
        origin: Optional["EventRecord"] = None,
    ) -> "EventRecord":
        """
        Resolve the pending continuation and move to the resumption instant.

        Returns:
            self, ready to be enqueued again

        Raises:
            SimulationError: If the record is not suspended
            OrderingViolation: If current_time precedes the record's time
        """
        if self.continuation is None:
            raise SimulationError(f"{self} has no continuation to resume")
        if current_time < self.time:
            raise OrderingViolation(f"Cannot resume {self} at earlier time {current_time}")
        self.time = current_time
        self.continuation.set_return_state(result, error, origin)
        return self

    def trace(self, sink: Optional[TextIO] = None) -> None:
        """
        Write the causal chain of this record, one line per record.

        The first line is this record; each following line is the source of
        the previous one, ending at the root. Default sink is stderr.
        """
        if sink is None:
            sink = sys.stderr
        with _TRACE_LOCK:
            record: Optional[EventRecord] = self
            while record is not None:
                sink.write(f"{record}\n")
                record = record.source
            flush = getattr(sink, "flush", None)
            if flush is not None:
                flush()

    def depth(self) -> int:
        """Number of ancestors along the source chain."""
        count = 0
        record = self.source
        while record is not None:
            count += 1
            record = record.source
        return count

    def __str__(self) -> str:
        if self.debug_label is None:
            return f"{self.time} : {self.signature}"
        return f"{self.time} : {self.signature} @ {self.debug_label}"
