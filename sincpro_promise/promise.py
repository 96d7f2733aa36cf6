"""
Promise implementations.

A promise represents the eventual result of an asynchronous operation. The
primary way of interacting with a promise is through its ``then`` method,
which registers callbacks to receive either the eventual value or the reason
why the promise cannot be fulfilled. Callbacks never run inside the caller's
stack frame: they are always added to a task queue and run when it is drained.

See https://promisesaplus.com/
"""

import functools
import logging
from typing import Any, Callable, List, Optional, Tuple

from sincpro_promise.core import exception_for, get_queue, is_pending, is_promise
from sincpro_promise.domain.promise import PromiseInterface, PromiseState
from sincpro_promise.domain.queue import TaskQueueInterface
from sincpro_promise.exceptions import (
    CancellationError,
    InvalidArgumentError,
    SettlementError,
    WaitError,
)

logger = logging.getLogger(__name__)

Handler = Optional[Callable[[Any], Any]]
Waiter = Tuple[Handler, Handler, "Promise"]


def _same_outcome(first: Any, second: Any) -> bool:
    return first is second or first == second


class Promise(PromiseInterface):
    """
    Promise that can be settled once, from outside, with resolve or reject.

    The optional wait function is called by wait() to drive the promise to
    settlement when nothing else is draining its queue. The optional cancel
    function is called by cancel() to stop the underlying operation.
    """

    def __init__(
        self,
        wait_fn: Optional[Callable[[], Any]] = None,
        cancel_fn: Optional[Callable[[], Any]] = None,
        queue: Optional[TaskQueueInterface] = None,
    ) -> None:
        """
        Initialize the Promise.

        Args:
            wait_fn: Called with no arguments to settle the promise on wait().
            cancel_fn: Called with no arguments when the promise is cancelled.
            queue: Task queue for handler calls. Defaults to the shared queue.
        """
        self._queue = queue if queue is not None else get_queue()
        self._state = PromiseState.PENDING
        self._value: Any = None
        self._reason: Any = None
        self._waiters: List[Waiter] = []
        self._wait_fn = wait_fn
        self._cancel_fn = cancel_fn
        self._wait_parent: Optional["Promise"] = None
        self._forwarded: Optional[PromiseInterface] = None

    def then(
        self,
        on_fulfilled: Handler = None,
        on_rejected: Handler = None,
    ) -> PromiseInterface:
        """
        Append fulfillment and rejection handlers to the promise.

        Args:
            on_fulfilled: Invoked with the value when the promise fulfills.
            on_rejected: Invoked with the reason when the promise is rejected.

        Returns:
            A new promise resolved with the return value of the called handler,
            or rejected with the exception it raised. When the relevant handler
            is missing the outcome passes through unchanged.
        """
        if self._state is PromiseState.PENDING:
            downstream = Promise(cancel_fn=self.cancel, queue=self._queue)
            self._waiters.append((on_fulfilled, on_rejected, downstream))
            downstream._wait_parent = self
            return downstream

        if self._state is PromiseState.FULFILLED:
            fulfilled = FulfilledPromise(self._value, queue=self._queue)
            return fulfilled.then(on_fulfilled) if on_fulfilled is not None else fulfilled

        rejected = RejectedPromise(self._reason, queue=self._queue)
        return rejected.then(None, on_rejected) if on_rejected is not None else rejected

    def otherwise(self, on_rejected: Callable[[Any], Any]) -> PromiseInterface:
        """Append a rejection handler. Same as then(None, on_rejected)."""
        return self.then(None, on_rejected)

    def wait(self, unwrap: bool = True) -> Any:
        """
        Wait until the promise settles.

        Args:
            unwrap: If True return the value or raise the rejection reason,
                otherwise return the promise itself.

        Returns:
            The fulfilled value, or the promise when unwrap is False.

        Raises:
            WaitError: If the promise could not be settled by waiting.
            Exception: The rejection reason, when unwrap is True.
        """
        self._wait_if_pending()

        if not unwrap:
            return self
        if self._state is PromiseState.FULFILLED:
            return self._value
        raise exception_for(self._reason)

    def get_state(self) -> PromiseState:
        """Get the state of the promise."""
        return self._state

    @property
    def value(self) -> Any:
        """Fulfillment value, None until the promise is fulfilled."""
        return self._value

    @property
    def reason(self) -> Any:
        """Rejection reason, None until the promise is rejected."""
        return self._reason

    def resolve(self, value: Any) -> "Promise":
        """
        Resolve the promise with the given value.

        Resolving with another promise locks this promise onto it: it stays
        pending until the other promise settles and then takes its outcome.

        Raises:
            SettlementError: If the promise already has a different outcome.
        """
        if value is self:
            raise SettlementError("Cannot fulfill or reject a promise with itself")

        if self._forwarded is not None:
            if value is self._forwarded:
                return self
            raise SettlementError("The promise is already resolved with another promise")

        if is_promise(value):
            if self._state is not PromiseState.PENDING:
                raise SettlementError(f"Cannot resolve a {self._state.value} promise")
            self._forward(value)
            return self

        self._settle(PromiseState.FULFILLED, value)
        return self

    def reject(self, reason: Any) -> "Promise":
        """
        Reject the promise with the given reason.

        Raises:
            InvalidArgumentError: If the reason is a promise.
            SettlementError: If the promise already has a different outcome.
        """
        if is_promise(reason):
            raise InvalidArgumentError("Cannot reject a promise with another promise")

        if self._forwarded is not None:
            raise SettlementError("The promise is already resolved with another promise")

        self._settle(PromiseState.REJECTED, reason)
        return self

    def cancel(self) -> "Promise":
        """
        Cancel the promise if it is still pending.

        The cancel function is called once; the promise is then rejected with
        a CancellationError unless the cancel function settled it.
        Cancelling a settled promise does nothing.
        """
        if self._state is not PromiseState.PENDING:
            return self

        logger.debug("Cancelling pending promise")
        self._wait_fn = None
        self._wait_parent = None

        if self._cancel_fn is not None:
            cancel_fn, self._cancel_fn = self._cancel_fn, None
            try:
                cancel_fn()
            except Exception as e:
                if self._state is PromiseState.PENDING:
                    self._settle(PromiseState.REJECTED, e)

        # Only reject if the cancel function did not settle the promise
        if self._state is PromiseState.PENDING:
            self._settle(PromiseState.REJECTED, CancellationError())

        return self

    def _forward(self, inner: PromiseInterface) -> None:
        self._forwarded = inner
        inner.then(self._adopt_value, self._adopt_reason)

    def _adopt_value(self, value: Any) -> None:
        if self._state is PromiseState.PENDING:
            self._settle(PromiseState.FULFILLED, value)

    def _adopt_reason(self, reason: Any) -> None:
        if self._state is PromiseState.PENDING:
            self._settle(PromiseState.REJECTED, reason)

    def _settle(self, state: PromiseState, payload: Any) -> None:
        if self._state is not PromiseState.PENDING:
            current = self._value if self._state is PromiseState.FULFILLED else self._reason
            # Ignore calls with the same resolution
            if state is self._state and _same_outcome(payload, current):
                return
            if state is self._state:
                raise SettlementError(f"The promise is already {state.value}")
            raise SettlementError(
                f"Cannot change a {self._state.value} promise to {state.value}"
            )

        self._state = state
        if state is PromiseState.FULFILLED:
            self._value = payload
        else:
            self._reason = payload

        waiters, self._waiters = self._waiters, []
        self._wait_fn = None
        self._cancel_fn = None
        self._wait_parent = None
        self._forwarded = None

        for waiter in waiters:
            self._queue.add(functools.partial(self._call_waiter, state, payload, waiter))

    @staticmethod
    def _call_waiter(state: PromiseState, payload: Any, waiter: Waiter) -> None:
        on_fulfilled, on_rejected, downstream = waiter
        # Cancelled or otherwise settled while the task was queued
        if not is_pending(downstream):
            return

        handler = on_fulfilled if state is PromiseState.FULFILLED else on_rejected
        try:
            if handler is not None:
                downstream.resolve(handler(payload))
            elif state is PromiseState.FULFILLED:
                downstream.resolve(payload)
            else:
                downstream.reject(payload)
        except Exception as e:
            if is_pending(downstream):
                downstream._settle(PromiseState.REJECTED, e)
            else:
                logger.debug(f"Discarding error from handler of a settled promise: {e}")

    def _wait_if_pending(self) -> None:
        if self._state is not PromiseState.PENDING:
            return

        can_wait = (
            self._forwarded is not None
            or self._wait_fn is not None
            or self._wait_parent is not None
        )
        if self._forwarded is not None:
            self._wait_for_forwarded()
        elif self._wait_fn is not None:
            self._invoke_wait_fn()
        elif self._wait_parent is not None:
            self._invoke_wait_parents()

        # Tasks already queued may settle the promise
        self._queue.run()

        if self._state is not PromiseState.PENDING:
            return

        if not can_wait:
            logger.warning("Waiting on a promise that has no wait function")
            self._settle(
                PromiseState.REJECTED,
                WaitError(
                    "Cannot wait on a promise that has no internal wait function. "
                    "You must provide a wait function when constructing the "
                    "promise to be able to wait on a promise."
                ),
            )
        else:
            logger.warning("Wait function did not settle the promise")
            self._settle(
                PromiseState.REJECTED,
                WaitError("Invoking the wait callback did not resolve the promise"),
            )

    def _wait_for_forwarded(self) -> None:
        inner = self._forwarded
        inner.wait(unwrap=False)

        # Adopt directly: the inner promise may be drained by another queue
        state = inner.get_state()
        if state is PromiseState.FULFILLED:
            self._adopt_value(inner.wait())
        elif state is PromiseState.REJECTED:
            try:
                inner.wait()
            except Exception as e:
                self._adopt_reason(getattr(inner, "reason", e))

    def _invoke_wait_fn(self) -> None:
        wait_fn, self._wait_fn = self._wait_fn, None
        try:
            wait_fn()
        except Exception as e:
            if self._state is not PromiseState.PENDING:
                raise
            # The wait function failed before it could settle the promise
            self._settle(PromiseState.REJECTED, e)

    def _invoke_wait_parents(self) -> None:
        ancestors: List[Promise] = []
        parent, self._wait_parent = self._wait_parent, None
        while parent is not None:
            ancestors.append(parent)
            parent = parent._wait_parent

        # Oldest first: settling the root usually settles the whole chain
        for ancestor in reversed(ancestors):
            ancestor._wait_if_pending()


class SettledPromise(PromiseInterface):
    """Base for promises created already settled."""

    def __init__(self, queue: Optional[TaskQueueInterface] = None) -> None:
        self._queue = queue if queue is not None else get_queue()

    def otherwise(self, on_rejected: Callable[[Any], Any]) -> PromiseInterface:
        return self.then(None, on_rejected)

    def cancel(self) -> "SettledPromise":
        return self

    def _queue_handler(self, handler: Callable[[Any], Any], payload: Any) -> Promise:
        """Queue one call of ``handler`` that settles a new downstream promise."""
        queue = self._queue
        downstream = Promise(wait_fn=queue.run, queue=queue)

        def settle_downstream() -> None:
            if not is_pending(downstream):
                return
            try:
                downstream.resolve(handler(payload))
            except Exception as e:
                if is_pending(downstream):
                    downstream._settle(PromiseState.REJECTED, e)

        queue.add(settle_downstream)
        return downstream


class FulfilledPromise(SettledPromise):
    """
    A promise that has been fulfilled.

    Thenning off of this promise queues the on_fulfilled callback and ignores
    on_rejected.
    """

    def __init__(self, value: Any, queue: Optional[TaskQueueInterface] = None) -> None:
        """
        Initialize the FulfilledPromise.

        Raises:
            InvalidArgumentError: If the value is a promise.
        """
        if is_promise(value):
            raise InvalidArgumentError("You cannot create a FulfilledPromise with a promise.")

        super().__init__(queue)
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    def then(
        self,
        on_fulfilled: Handler = None,
        on_rejected: Handler = None,
    ) -> PromiseInterface:
        # Return itself if there is no on_fulfilled function
        if on_fulfilled is None:
            return self
        return self._queue_handler(on_fulfilled, self._value)

    def wait(self, unwrap: bool = True) -> Any:
        return self._value if unwrap else self

    def get_state(self) -> PromiseState:
        return PromiseState.FULFILLED

    def resolve(self, value: Any) -> "FulfilledPromise":
        if not _same_outcome(value, self._value):
            raise SettlementError("Cannot resolve a fulfilled promise")
        return self

    def reject(self, reason: Any) -> "FulfilledPromise":
        raise SettlementError("Cannot reject a fulfilled promise")


class RejectedPromise(SettledPromise):
    """
    A promise that has been rejected.

    Thenning off of this promise queues the on_rejected callback and ignores
    on_fulfilled.
    """

    def __init__(self, reason: Any, queue: Optional[TaskQueueInterface] = None) -> None:
        """
        Initialize the RejectedPromise.

        Raises:
            InvalidArgumentError: If the reason is a promise.
        """
        if is_promise(reason):
            raise InvalidArgumentError("You cannot create a RejectedPromise with a promise.")

        super().__init__(queue)
        self._reason = reason

    @property
    def reason(self) -> Any:
        return self._reason

    def then(
        self,
        on_fulfilled: Handler = None,
        on_rejected: Handler = None,
    ) -> PromiseInterface:
        # If there's no on_rejected callback then just return self
        if on_rejected is None:
            return self
        # A handler that returns recovers the chain; one that raises rejects it
        return self._queue_handler(on_rejected, self._reason)

    def wait(self, unwrap: bool = True) -> Any:
        if unwrap:
            raise exception_for(self._reason)
        return self

    def get_state(self) -> PromiseState:
        return PromiseState.REJECTED

    def resolve(self, value: Any) -> "RejectedPromise":
        raise SettlementError("Cannot resolve a rejected promise")

    def reject(self, reason: Any) -> "RejectedPromise":
        if not _same_outcome(reason, self._reason):
            raise SettlementError("Cannot reject a rejected promise")
        return self


def promise_for(value: Any, queue: Optional[TaskQueueInterface] = None) -> PromiseInterface:
    """
    Create a promise for a value.

    Promises are returned unchanged; any other value is wrapped in a
    FulfilledPromise.
    """
    if is_promise(value):
        return value
    return FulfilledPromise(value, queue=queue)


def rejection_for(reason: Any, queue: Optional[TaskQueueInterface] = None) -> PromiseInterface:
    """
    Create a rejected promise for a reason.

    Promises are returned unchanged; any other reason is wrapped in a
    RejectedPromise.
    """
    if is_promise(reason):
        return reason
    return RejectedPromise(reason, queue=queue)
