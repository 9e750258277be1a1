"""
Exception types for the simulation kernel.
"""


class SimulationError(Exception):
    """Base class for kernel failures."""
    pass


class OrderingViolation(SimulationError):
    """Raised when a dequeued record precedes the clock. Always fatal."""
    pass


class CloneDefect(SimulationError):
    """Raised when a record cannot be copied for rescheduling."""
    pass


class CapabilityMismatch(SimulationError):
    """
    Raised when a record does not fit its target.

    Covers unknown ordinals, argument arity mismatches and misuse of the
    suspend protocol by a behavior. Fatal for the offending record only.
    """
    pass


class InvocationFailure(SimulationError):
    """
    Raised from Controller.run() when an uncaught behavior failure aborts
    the simulation.

    Fields:
        record: Record whose behavior raised (origin of the failure)
        cause: The exception raised by the behavior
    """

    def __init__(self, record, cause: BaseException) -> None:
        super().__init__(f"Uncaught failure in {record}: {cause!r}")
        self.record = record
        self.cause = cause
