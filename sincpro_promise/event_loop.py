"""
EventLoop component that drains a task queue from an asyncio event loop.
"""

import asyncio
import logging
from typing import Any, Optional

import uvloop

from sincpro_promise.core import exception_for, get_queue
from sincpro_promise.domain.promise import PromiseInterface
from sincpro_promise.domain.queue import ListenableTaskQueueInterface, TaskQueueInterface
from sincpro_promise.exceptions import PromiseError

logger = logging.getLogger(__name__)


class EventLoop:
    """
    Runs a task queue from an asyncio event loop.
    Every task added to the queue schedules a drain on the next loop iteration.
    """

    def __init__(
        self,
        queue: Optional[TaskQueueInterface] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Initialize the EventLoop component.

        Args:
            queue: Queue to drain. Defaults to the shared queue.
            loop: Loop to drain it on. A uvloop loop is created when omitted.

        Raises:
            PromiseError: If the queue cannot notify listeners of added tasks.
        """
        queue = queue if queue is not None else get_queue()
        if not isinstance(queue, ListenableTaskQueueInterface):
            raise PromiseError(
                "EventLoop needs a queue with add_listener() and remove_listener(), "
                f"got {type(queue).__name__}"
            )

        self._queue: ListenableTaskQueueInterface = queue
        self._loop = loop
        self._owns_loop = False
        self._is_running = False
        self._drain_scheduled = False

    def setup(self) -> None:
        """Set up the event loop and start draining the queue on it."""
        if self._is_running:
            logger.warning("EventLoop is already set up")
            return

        if self._loop is None:
            self._loop = uvloop.new_event_loop()
            self._owns_loop = True
            logger.info("Created uvloop event loop")
        else:
            logger.info("Using existing event loop")

        self._queue.add_listener(self._schedule_drain)
        self._is_running = True

        if not self._queue.is_empty():
            self._schedule_drain()

    def get_loop(self) -> asyncio.AbstractEventLoop:
        """Get the event loop, setting it up if necessary."""
        if not self._is_running:
            self.setup()
        return self._loop

    def is_running(self) -> bool:
        """Check if the queue is being drained on the loop."""
        return self._is_running and self._loop is not None and not self._loop.is_closed()

    def to_future(self, promise: PromiseInterface) -> "asyncio.Future[Any]":
        """
        Create an asyncio future settled with the outcome of a promise.

        Args:
            promise: Promise to follow.

        Returns:
            Future bound to the event loop.
        """
        future = self.get_loop().create_future()

        def on_fulfilled(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        def on_rejected(reason: Any) -> None:
            if not future.done():
                future.set_exception(exception_for(reason))

        promise.then(on_fulfilled, on_rejected)
        return future

    def run_until_settled(self, promise: PromiseInterface) -> Any:
        """
        Run the event loop until a promise settles.

        Returns:
            The fulfilled value.

        Raises:
            Exception: The rejection reason.
        """
        loop = self.get_loop()
        return loop.run_until_complete(self.to_future(promise))

    def close(self) -> None:
        """Stop draining the queue and close the loop if we created it."""
        if not self._is_running:
            return

        self._queue.remove_listener(self._schedule_drain)
        try:
            if self._owns_loop and self._loop and not self._loop.is_closed():
                logger.info("Closing owned event loop")
                self._loop.close()
        finally:
            self._loop = None if self._owns_loop else self._loop
            self._owns_loop = False
            self._is_running = False
            self._drain_scheduled = False

    def _schedule_drain(self) -> None:
        if self._drain_scheduled or self._loop is None or self._loop.is_closed():
            return
        self._drain_scheduled = True
        self._loop.call_soon(self._drain)

    def _drain(self) -> None:
        self._drain_scheduled = False
        try:
            self._queue.run()
        finally:
            # Tasks left behind by a failing task still need a drain
            if not self._queue.is_empty():
                self._schedule_drain()
