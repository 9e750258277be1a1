"""
Simulation runtime: the controller, its statistics and the kronos time API.
"""

from .controller import Controller, ControllerState
from .statistics import SimulationStatistics

__all__ = [
    "Controller",
    "ControllerState",
    "SimulationStatistics",
]
