"""
simkernel - discrete-event simulation kernel.

Entity behaviors run in simulated-time order. A behavior can block on
another entity's behavior by yielding the continuation returned from
Controller.post_continuing_event(); the controller resumes it with the
callee's value or failure.
"""

from .config import FailurePolicy, KernelConfig
from .core import (
    MAX_TIME,
    CapabilityMismatch,
    CloneDefect,
    Continuation,
    Entity,
    EntityReference,
    EventQueue,
    EventRecord,
    InvocationFailure,
    OrderingViolation,
    SimulationClock,
    SimulationError,
    behavior,
)
from .runtime import Controller, ControllerState, SimulationStatistics

__version__ = "0.1.0"

__all__ = [
    "FailurePolicy",
    "KernelConfig",
    "MAX_TIME",
    "CapabilityMismatch",
    "CloneDefect",
    "Continuation",
    "Entity",
    "EntityReference",
    "EventQueue",
    "EventRecord",
    "InvocationFailure",
    "OrderingViolation",
    "SimulationClock",
    "SimulationError",
    "behavior",
    "Controller",
    "ControllerState",
    "SimulationStatistics",
]
