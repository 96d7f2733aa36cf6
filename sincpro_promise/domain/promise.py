"""
Domain interface for promises.
"""

from enum import Enum
from typing import Any, Callable, Optional, Protocol, runtime_checkable


class PromiseState(str, Enum):
    """States a promise can be in. Only PENDING is not terminal."""

    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@runtime_checkable
class PromiseInterface(Protocol):
    """
    Interface for the Promise component.
    Defines the contract that every promise implementation must follow.

    A value is promise-like when it is an instance of this interface; every
    concrete promise subclasses it explicitly.
    """

    def then(
        self,
        on_fulfilled: Optional[Callable[[Any], Any]] = None,
        on_rejected: Optional[Callable[[Any], Any]] = None,
    ) -> "PromiseInterface":
        """
        Append fulfillment and rejection handlers.

        Args:
            on_fulfilled: Invoked with the value when the promise fulfills.
            on_rejected: Invoked with the reason when the promise is rejected.

        Returns:
            A new promise settled with the outcome of the called handler.
        """
        ...

    def otherwise(self, on_rejected: Callable[[Any], Any]) -> "PromiseInterface":
        """Append a rejection handler only."""
        ...

    def wait(self, unwrap: bool = True) -> Any:
        """
        Wait until the promise settles if possible.

        Args:
            unwrap: If True return the value or raise the rejection reason,
                otherwise return the promise itself.
        """
        ...

    def get_state(self) -> PromiseState:
        """Get the state of the promise."""
        ...

    def resolve(self, value: Any) -> "PromiseInterface":
        """Resolve the promise with the given value."""
        ...

    def reject(self, reason: Any) -> "PromiseInterface":
        """Reject the promise with the given reason."""
        ...

    def cancel(self) -> "PromiseInterface":
        """Cancel the promise if possible."""
        ...
