"""
Entity capability.

The kernel talks to simulated entities only through EntityReference:
invoke-by-ordinal and signature-lookup-by-ordinal. Entity is a base class
that builds both tables ahead of time from methods marked with @behavior.

Usage:
    class Teller(Entity):
        @behavior
        def serve(self, customer):
            ...

    ordinal = Teller.ordinal_of("serve")
    controller.post_event(teller, ordinal, ("alice",))
"""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .errors import CapabilityMismatch

_BEHAVIOR_MARK = "__simkernel_behavior__"


class EntityReference(ABC):
    """
    Capability every simulated entity implements.

    Implementations are normally produced ahead of time (by a code
    generator or by the Entity base class), never resolved dynamically by
    the kernel.
    """

    @abstractmethod
    def invoke(self, ordinal: int, arguments: Sequence[Any]) -> Any:
        """
        Run the behavior selected by ordinal.

        Returns the behavior's value. A behavior written as a generator
        returns the generator, which the controller drives.

        Raises:
            CapabilityMismatch: If ordinal or arity do not match
        """
        ...

    @abstractmethod
    def signature_for(self, ordinal: int) -> str:
        """Return the display signature of the behavior at ordinal."""
        ...


def behavior(fn: Callable) -> Callable:
    """Mark a method as a schedulable behavior of an Entity subclass."""
    setattr(fn, _BEHAVIOR_MARK, True)
    return fn


@dataclass(frozen=True)
class BehaviorSlot:
    """
    One row of an entity dispatch table.

    Fields:
        name: Method name
        signature: Display string, e.g. "Teller.serve(customer)"
        min_arity: Required positional arguments
        max_arity: Accepted positional arguments (None = variadic)
    """
    name: str
    signature: str
    min_arity: int
    max_arity: Optional[int]

    def accepts(self, count: int) -> bool:
        if count < self.min_arity:
            return False
        return self.max_arity is None or count <= self.max_arity


def _slot_for(owner: str, name: str, fn: Callable) -> BehaviorSlot:
    params = list(inspect.signature(fn).parameters.values())[1:]  # drop self
    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    required = [p for p in positional if p.default is inspect.Parameter.empty]
    variadic = any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params)
    shown = [p.name for p in positional]
    if variadic:
        shown.append("*" + next(p.name for p in params if p.kind == inspect.Parameter.VAR_POSITIONAL))
    return BehaviorSlot(
        name=name,
        signature=f"{owner}.{name}({', '.join(shown)})",
        min_arity=len(required),
        max_arity=None if variadic else len(positional),
    )


class Entity(EntityReference):
    """
    Base class for simulated entities.

    Subclasses mark behaviors with @behavior. Ordinals are assigned in
    definition order, inherited behaviors first; an override keeps the
    ordinal of the behavior it replaces.
    """

    _dispatch: Tuple[BehaviorSlot, ...] = ()
    _ordinals: Dict[str, int] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        names = [slot.name for slot in cls._dispatch]
        for name, member in cls.__dict__.items():
            if callable(member) and getattr(member, _BEHAVIOR_MARK, False) and name not in names:
                names.append(name)
        # Signatures are rebuilt so overrides show the subclass name and arity.
        cls._dispatch = tuple(_slot_for(cls.__name__, name, getattr(cls, name)) for name in names)
        cls._ordinals = {slot.name: i for i, slot in enumerate(cls._dispatch)}

    @classmethod
    def ordinal_of(cls, name: str) -> int:
        """
        Get the ordinal of a behavior by method name.

        Raises:
            CapabilityMismatch: If the class has no such behavior
        """
        try:
            return cls._ordinals[name]
        except KeyError:
            raise CapabilityMismatch(f"{cls.__name__} has no behavior {name!r}") from None

    @classmethod
    def behaviors(cls) -> Tuple[BehaviorSlot, ...]:
        return cls._dispatch

    def _slot(self, ordinal: int) -> BehaviorSlot:
        if isinstance(ordinal, bool) or not isinstance(ordinal, int) or not 0 <= ordinal < len(self._dispatch):
            raise CapabilityMismatch(f"{type(self).__name__} has no behavior with ordinal {ordinal!r}")
        return self._dispatch[ordinal]

    def invoke(self, ordinal: int, arguments: Sequence[Any]) -> Any:
        slot = self._slot(ordinal)
        if not slot.accepts(len(arguments)):
            raise CapabilityMismatch(
                f"{slot.signature} called with {len(arguments)} argument(s)"
            )
        return getattr(self, slot.name)(*arguments)

    def signature_for(self, ordinal: int) -> str:
        return self._slot(ordinal).signature
