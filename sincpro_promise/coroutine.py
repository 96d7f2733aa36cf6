"""
Coroutine component that resolves a promise by stepping through a generator.

The generator yields values or promises. Control returns to the generator
when the yielded promise settles: the value is sent back in, or the rejection
reason is raised at the yield, so sequential asynchronous steps read like
straight-line code::

    def steps():
        value = yield FulfilledPromise("a")
        try:
            value = yield FulfilledPromise(value + "b")
        except RejectionError:
            pass  # The promise was rejected
        yield value + "c"

    Coroutine.of(steps).then(print)  # prints "abc" once the queue runs
"""

import inspect
import logging
from typing import Any, Callable, Generator, Optional, Union

from sincpro_promise.core import exception_for, get_queue, is_pending
from sincpro_promise.domain.promise import PromiseInterface, PromiseState
from sincpro_promise.domain.queue import TaskQueueInterface
from sincpro_promise.domain.steps import Done, Step, StepSequence, Yielded
from sincpro_promise.promise import Promise, promise_for

logger = logging.getLogger(__name__)

StepSource = Union[Generator[Any, Any, Any], StepSequence]


class GeneratorSteps(StepSequence):
    """Step sequence backed by a Python generator."""

    def __init__(self, generator: Generator[Any, Any, Any]) -> None:
        self._generator = generator

    def start(self) -> Step:
        return self._step(self._generator.send, None)

    def send(self, value: Any) -> Step:
        return self._step(self._generator.send, value)

    def throw(self, error: BaseException) -> Step:
        return self._step(self._generator.throw, error)

    @staticmethod
    def _step(resume: Callable[[Any], Any], argument: Any) -> Step:
        try:
            return Yielded(resume(argument))
        except StopIteration as stop:
            return Done(stop.value)


def as_step_sequence(source: StepSource) -> StepSequence:
    """Adapt a generator to a step sequence; step sequences are returned as is."""
    if inspect.isgenerator(source):
        return GeneratorSteps(source)
    return source


class Coroutine(PromiseInterface):
    """
    Promise for the outcome of a step sequence.

    The promise is fulfilled when the sequence finishes, with its return value
    or, when it returns nothing, with the last value sent back into it. It is
    rejected with any exception that escapes the sequence.
    """

    def __init__(
        self,
        generator_fn: Callable[[], StepSource],
        queue: Optional[TaskQueueInterface] = None,
    ) -> None:
        """
        Initialize the Coroutine and run the sequence to its first suspension point.

        Args:
            generator_fn: Called with no arguments; returns a generator or a
                StepSequence.
            queue: Task queue for every promise the coroutine creates.
                Defaults to the shared queue.
        """
        self._queue = queue if queue is not None else get_queue()
        self._current_promise: Optional[PromiseInterface] = None
        self._steps: Optional[StepSequence] = None
        self._result = Promise(wait_fn=self._wait_for_steps, queue=self._queue)

        try:
            self._steps = as_step_sequence(generator_fn())
            self._advance(self._steps.start(), None)
        except Exception as e:
            self._reject_result(e)

    @classmethod
    def of(
        cls,
        generator_fn: Callable[[], StepSource],
        queue: Optional[TaskQueueInterface] = None,
    ) -> "Coroutine":
        """Create a new coroutine."""
        return cls(generator_fn, queue=queue)

    def then(
        self,
        on_fulfilled: Optional[Callable[[Any], Any]] = None,
        on_rejected: Optional[Callable[[Any], Any]] = None,
    ) -> PromiseInterface:
        return self._result.then(on_fulfilled, on_rejected)

    def otherwise(self, on_rejected: Callable[[Any], Any]) -> PromiseInterface:
        return self._result.otherwise(on_rejected)

    def wait(self, unwrap: bool = True) -> Any:
        """
        Run the coroutine to completion.

        Args:
            unwrap: If True return the value or raise the rejection reason,
                otherwise return the result promise.
        """
        return self._result.wait(unwrap)

    def get_state(self) -> PromiseState:
        return self._result.get_state()

    @property
    def reason(self) -> Any:
        return self._result.reason

    def resolve(self, value: Any) -> "Coroutine":
        self._result.resolve(value)
        return self

    def reject(self, reason: Any) -> "Coroutine":
        self._result.reject(reason)
        return self

    def cancel(self) -> "Coroutine":
        """Cancel the outstanding promise and the coroutine's own result."""
        if self._current_promise is not None:
            current, self._current_promise = self._current_promise, None
            current.cancel()
        self._result.cancel()
        return self

    def _wait_for_steps(self) -> None:
        while self._current_promise is not None:
            self._current_promise.wait()

    def _advance(self, step: Step, resumed_value: Any) -> None:
        if not is_pending(self._result):
            return

        if isinstance(step, Done):
            final_value = step.value if step.value is not None else resumed_value
            self._result.resolve(final_value)
            return

        self._current_promise = promise_for(step.item, queue=self._queue).then(
            self._handle_success, self._handle_failure
        )

    def _handle_success(self, value: Any) -> None:
        self._current_promise = None
        try:
            self._advance(self._steps.send(value), value)
        except Exception as e:
            self._reject_result(e)

    def _handle_failure(self, reason: Any) -> None:
        self._current_promise = None
        try:
            # A caught exception keeps the sequence going
            self._advance(self._steps.throw(exception_for(reason)), None)
        except Exception as e:
            self._reject_result(e)

    def _reject_result(self, error: Exception) -> None:
        if is_pending(self._result):
            self._result.reject(error)
        else:
            logger.debug(f"Coroutine already settled, dropping error: {error}")
