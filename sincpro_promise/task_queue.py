"""
Task queue implementation used to settle promises asynchronously.

Tasks run in FIFO order and every handler call goes through a queue, so the
stack stays flat however long a promise chain gets. Drain the shared queue
from your own loop with::

    sincpro_promise.get_queue().run()
"""

import atexit
import logging
import sys
from collections import deque
from typing import Callable, Deque, List

from sincpro_promise.domain.queue import ListenableTaskQueueInterface, Task

logger = logging.getLogger(__name__)


def _exiting_on_uncaught_exception() -> bool:
    """Check whether the interpreter is exiting because of an uncaught exception."""
    return (
        getattr(sys, "last_exc", None) is not None
        or getattr(sys, "last_value", None) is not None
    )


class TaskQueue(ListenableTaskQueueInterface):
    """FIFO queue of zero-argument tasks."""

    def __init__(self, with_shutdown: bool = True) -> None:
        """
        Initialize the task queue.

        Args:
            with_shutdown: If True the queue is drained when the interpreter
                exits, unless the exit is caused by an uncaught exception.
                The exit hook keeps the queue alive until disable_shutdown()
                is called, so pass False for short-lived queues.
        """
        self._queue: Deque[Task] = deque()
        self._listeners: List[Callable[[], None]] = []
        self._enable_shutdown = with_shutdown

        if with_shutdown:
            # Register cleanup at process termination
            atexit.register(self._shutdown)

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        return not self._queue

    def add(self, task: Task) -> None:
        """Add a task that will be executed the next time run is called."""
        self._queue.append(task)
        for listener in list(self._listeners):
            listener()

    def run(self) -> None:
        """
        Execute all of the pending tasks in the queue.

        Tasks added while draining are executed by the same call.
        """
        while self._queue:
            task = self._queue.popleft()
            task()

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register a callable invoked every time a task is added."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        """Unregister a listener added with add_listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def disable_shutdown(self) -> None:
        """
        Stop the queue from being drained when the interpreter exits.

        The exit hook is unregistered, so atexit no longer keeps the queue
        alive. If you disable it you MUST either run the queue yourself (from
        an event loop or by calling run()) or wait on each outstanding promise.
        """
        if self._enable_shutdown:
            atexit.unregister(self._shutdown)
        self._enable_shutdown = False

    def _shutdown(self) -> None:
        if not self._enable_shutdown or self.is_empty():
            return

        if _exiting_on_uncaught_exception():
            logger.debug("Skipping task queue drain after an uncaught exception")
            return

        logger.info(f"Draining {len(self._queue)} pending task(s) at exit")
        try:
            self.run()
        except Exception:
            logger.exception("Error while draining the task queue at exit")
