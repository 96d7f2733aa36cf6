"""
Task queue domain abstractions.
"""

from typing import Callable, Protocol, runtime_checkable

Task = Callable[[], None]


@runtime_checkable
class TaskQueueInterface(Protocol):
    """Protocol defining the task queue interface."""

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        ...

    def add(self, task: Task) -> None:
        """Add a task to the tail of the queue."""
        ...

    def run(self) -> None:
        """Run queued tasks until the queue is empty."""
        ...


@runtime_checkable
class ListenableTaskQueueInterface(TaskQueueInterface, Protocol):
    """Task queue that notifies listeners whenever a task is added."""

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a callable invoked after every add."""
        ...

    def remove_listener(self, listener: Callable[[], None]) -> None:
        """Unregister a listener."""
        ...
