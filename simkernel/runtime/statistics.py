"""
Run statistics collected by the controller.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class SimulationStatistics:
    """
    Counters for one controller.

    Fields:
        total_events: Records dispatched (resumptions included)
        spectrum: Dispatch count per behavior signature
        continuations_resumed: Suspended callers re-enqueued with an outcome
        uncaught_failures: Failures nothing was awaiting
        start_time: Simulated instant of the first dispatch
        end_time: Simulated instant of the last dispatch
    """
    total_events: int = 0
    spectrum: Counter = field(default_factory=Counter)
    continuations_resumed: int = 0
    uncaught_failures: int = 0
    start_time: Optional[int] = None
    end_time: Optional[int] = None

    def record_dispatch(self, signature: str, time: int) -> None:
        self.total_events += 1
        self.spectrum[signature] += 1
        if self.start_time is None:
            self.start_time = time
        self.end_time = time

    @property
    def simulated_duration(self) -> int:
        if self.start_time is None or self.end_time is None:
            return 0
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_events": self.total_events,
            "spectrum": dict(sorted(self.spectrum.items())),
            "continuations_resumed": self.continuations_resumed,
            "uncaught_failures": self.uncaught_failures,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }
