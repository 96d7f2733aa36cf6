"""
Promises/A+ promises, a FIFO task queue and generator-driven coroutines.
"""

from sincpro_promise.core import (
    bind,
    exception_for,
    get_queue,
    is_fulfilled,
    is_pending,
    is_promise,
    is_rejected,
    is_settled,
    set_queue,
    shutdown,
)
from sincpro_promise.coroutine import Coroutine, GeneratorSteps
from sincpro_promise.domain.promise import PromiseInterface, PromiseState
from sincpro_promise.domain.steps import Done, StepSequence, Yielded
from sincpro_promise.event_loop import EventLoop
from sincpro_promise.exceptions import (
    CancellationError,
    InvalidArgumentError,
    PromiseError,
    RejectionError,
    SettlementError,
    WaitError,
)
from sincpro_promise.promise import (
    FulfilledPromise,
    Promise,
    RejectedPromise,
    promise_for,
    rejection_for,
)
from sincpro_promise.task_queue import TaskQueue

__all__ = [
    "Promise",
    "FulfilledPromise",
    "RejectedPromise",
    "Coroutine",
    "GeneratorSteps",
    "EventLoop",
    "TaskQueue",
    "PromiseInterface",
    "PromiseState",
    "StepSequence",
    "Yielded",
    "Done",
    "PromiseError",
    "InvalidArgumentError",
    "SettlementError",
    "WaitError",
    "RejectionError",
    "CancellationError",
    "promise_for",
    "rejection_for",
    "exception_for",
    "get_queue",
    "set_queue",
    "shutdown",
    "bind",
    "is_promise",
    "is_pending",
    "is_settled",
    "is_fulfilled",
    "is_rejected",
]
