"""
Continuation: the suspended state of a blocking call.

A Continuation is attached to the calling record when it issues a
continuing call. The caller's behavior yields it back to the controller,
which later resolves it with the outcome of the awaited record.
"""

from typing import Any, Optional


class Continuation:
    """
    Outcome holder for a suspended call site.

    Fields:
        awaiting: Record whose outcome is awaited (None for a timed sleep)
        wake_time: Resumption instant of a timed sleep
        result: Value produced by the awaited call
        error: Failure produced by the awaited call (exclusive with result)
        origin: Record where a propagated error was first raised
    """

    __slots__ = ("awaiting", "wake_time", "result", "error", "origin", "_resolved")

    def __init__(self, awaiting=None, wake_time: Optional[int] = None) -> None:
        self.awaiting = awaiting
        self.wake_time = wake_time
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.origin = None
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def set_return_state(
        self,
        result: Any,
        error: Optional[BaseException],
        origin=None,
    ) -> None:
        """
        Record the outcome of the awaited call.

        Raises:
            ValueError: If both result and error are given
            RuntimeError: If the continuation was already resolved
        """
        if error is not None and result is not None:
            raise ValueError("Continuation outcome is either a result or an error")
        if self._resolved:
            raise RuntimeError("Continuation already resolved")
        self.result = result
        self.error = error
        self.origin = origin
        self._resolved = True

    def __repr__(self) -> str:
        if not self._resolved:
            return f"Continuation(awaiting={self.awaiting})"
        if self.error is not None:
            return f"Continuation(error={self.error!r})"
        return f"Continuation(result={self.result!r})"
