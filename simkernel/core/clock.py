"""
Simulation clock.

Holds the current simulated instant. Only the controller's dispatch loop
advances it, and only forward.
"""

from dataclasses import dataclass

from .errors import OrderingViolation

# Largest representable instant (signed 64-bit).
MAX_TIME = 2**63 - 1


def check_time(time: int) -> int:
    """
    Validate a simulated instant.

    Raises:
        TypeError: If time is not an integer
        ValueError: If time is outside [0, MAX_TIME]
    """
    if isinstance(time, bool) or not isinstance(time, int):
        raise TypeError(f"Simulated time must be an int, got {type(time).__name__}")
    if time < 0 or time > MAX_TIME:
        raise ValueError(f"Simulated time out of range: {time}")
    return time


@dataclass(frozen=True)
class SimulationClock:
    """
    Monotonic simulated time source.

    Since SimulationClock is immutable, advancing returns a new instance.
    The controller swaps its clock reference on every dispatch.
    """
    current: int = 0

    def now(self) -> int:
        """Get current simulated time without advancing."""
        return self.current

    def advance_to(self, time: int) -> "SimulationClock":
        """
        Move the clock to time.

        Raises:
            OrderingViolation: If time precedes the current instant
        """
        if time < self.current:
            raise OrderingViolation(
                f"Clock cannot move backwards: {time} < {self.current}"
            )
        return SimulationClock(time)
