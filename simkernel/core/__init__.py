"""
Core simulation primitives.

This module provides the data structures the controller is built from:
- SimulationClock: Monotonic simulated time
- EventRecord: One scheduled invocation with its causal source
- Continuation: Outcome holder for a suspended call site
- EntityReference / Entity: Capability the kernel invokes entities through
- EventQueue: Time-ordered, insertion-stable pending records
"""

from .clock import MAX_TIME, SimulationClock, check_time
from .continuation import Continuation
from .entity import BehaviorSlot, Entity, EntityReference, behavior
from .events import EventRecord
from .queue import EventQueue
from .errors import (
    CapabilityMismatch,
    CloneDefect,
    InvocationFailure,
    OrderingViolation,
    SimulationError,
)

__all__ = [
    "MAX_TIME",
    "SimulationClock",
    "check_time",
    "Continuation",
    "BehaviorSlot",
    "Entity",
    "EntityReference",
    "behavior",
    "EventRecord",
    "EventQueue",
    "CapabilityMismatch",
    "CloneDefect",
    "InvocationFailure",
    "OrderingViolation",
    "SimulationError",
]
