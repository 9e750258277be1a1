"""
Time control for entity code.

Entities reach the controller driving the current thread through these
functions instead of holding a reference to it. The controller binds
itself for the duration of Controller.run().

Usage:
    from simkernel.runtime import kronos

    class Customer(Entity):
        @behavior
        def arrive(self, teller):
            kronos.advance(2)
            receipt = yield kronos.call(teller, Teller.ordinal_of("serve"), self.name)
            yield kronos.blocking_sleep(5)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator, Optional

from ..core.continuation import Continuation
from ..core.entity import EntityReference
from ..core.errors import SimulationError
from ..core.events import EventRecord

if TYPE_CHECKING:
    from .controller import Controller

_local = threading.local()


@contextmanager
def bound(controller: "Controller") -> Generator["Controller", None, None]:
    """Bind controller to the current thread, restoring the previous binding on exit."""
    previous: Optional["Controller"] = getattr(_local, "controller", None)
    _local.controller = controller
    try:
        yield controller
    finally:
        _local.controller = previous


def current_controller() -> "Controller":
    """
    Get the controller bound to this thread.

    Raises:
        SimulationError: If no controller is bound
    """
    controller = getattr(_local, "controller", None)
    if controller is None:
        raise SimulationError("No controller bound to this thread")
    return controller


def now() -> int:
    return current_controller().now


def advance(duration: int) -> None:
    current_controller().advance(duration)


def blocking_sleep(duration: int) -> Continuation:
    return current_controller().blocking_sleep(duration)


def post(target: EntityReference, ordinal: int, *arguments: Any) -> EventRecord:
    """Fire-and-forget invocation at the caller's current instant."""
    return current_controller().post_event(target, ordinal, arguments)


def call(target: EntityReference, ordinal: int, *arguments: Any) -> Continuation:
    """Blocking invocation; the caller must yield the returned continuation."""
    return current_controller().post_continuing_event(target, ordinal, arguments)


def call_later(delay: int, target: EntityReference, ordinal: int, *arguments: Any) -> EventRecord:
    return current_controller().post_event(target, ordinal, arguments, delay=delay)
