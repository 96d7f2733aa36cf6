"""
Core helpers shared by every promise implementation.
"""

import logging
import types
from typing import Any, Callable, Optional

from sincpro_promise.domain.promise import PromiseInterface, PromiseState
from sincpro_promise.domain.queue import TaskQueueInterface
from sincpro_promise.exceptions import RejectionError
from sincpro_promise.task_queue import TaskQueue

logger = logging.getLogger(__name__)

_queue: Optional[TaskQueueInterface] = None


def get_queue() -> TaskQueueInterface:
    """
    Get the shared task queue used by promises created without an explicit queue.

    The queue is created on first use and drained when the interpreter exits.
    """
    global _queue

    if _queue is None:
        _queue = TaskQueue()
        logger.debug("Shared task queue created")

    return _queue


def set_queue(queue: TaskQueueInterface) -> None:
    """Replace the shared task queue."""
    global _queue

    _queue = queue


def shutdown() -> None:
    """
    Drain the shared task queue and disable its drain at interpreter exit.

    Call this from the host application's shutdown sequence.
    """
    if _queue is None:
        return

    _queue.run()
    if isinstance(_queue, TaskQueue):
        _queue.disable_shutdown()
    logger.debug("Shared task queue drained")


def is_promise(value: Any) -> bool:
    """Check if a value is promise-like."""
    # Promise classes themselves satisfy the protocol check
    return not isinstance(value, type) and isinstance(value, PromiseInterface)


def is_pending(promise: PromiseInterface) -> bool:
    return promise.get_state() is PromiseState.PENDING


def is_settled(promise: PromiseInterface) -> bool:
    return promise.get_state() is not PromiseState.PENDING


def is_fulfilled(promise: PromiseInterface) -> bool:
    return promise.get_state() is PromiseState.FULFILLED


def is_rejected(promise: PromiseInterface) -> bool:
    return promise.get_state() is PromiseState.REJECTED


def exception_for(reason: Any) -> BaseException:
    """
    Create an exception for a rejection reason.

    Exceptions are returned as they are; any other reason is wrapped in a
    RejectionError that keeps the original reason.
    """
    if isinstance(reason, BaseException):
        return reason
    return RejectionError(reason)


def bind(fn: Callable[..., Any], receiver: Any) -> Callable[..., Any]:
    """
    Bind a function to a receiver.

    Bound methods are rebound to the new receiver.

    Args:
        fn: Plain function or bound method whose first parameter is the receiver.
        receiver: Object passed as the first argument.

    Returns:
        The bound method.
    """
    return types.MethodType(getattr(fn, "__func__", fn), receiver)
