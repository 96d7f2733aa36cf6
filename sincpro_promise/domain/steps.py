"""
Step sequence abstractions used by the coroutine driver.
"""

from dataclasses import dataclass
from typing import Any, Protocol, Union


@dataclass(frozen=True)
class Yielded:
    """The sequence suspended and produced ``item``."""

    item: Any


@dataclass(frozen=True)
class Done:
    """The sequence finished and returned ``value``."""

    value: Any = None


Step = Union[Yielded, Done]


class StepSequence(Protocol):
    """
    A suspendable sequence of steps.

    Each call resumes the sequence and reports whether it suspended again
    or finished.
    """

    def start(self) -> Step:
        """Run the sequence up to its first suspension point."""
        ...

    def send(self, value: Any) -> Step:
        """Resume the sequence with ``value`` at the current suspension point."""
        ...

    def throw(self, error: BaseException) -> Step:
        """Raise ``error`` at the current suspension point."""
        ...
