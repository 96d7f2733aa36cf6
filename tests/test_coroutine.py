"""
Tests for the Coroutine component.

The Coroutine should:
1. Resume the generator with the value of each yielded promise
2. Raise rejections at the yield so the generator can catch them
3. Settle its own promise when the generator finishes or fails
4. Run to completion when waited on
5. Cancel the outstanding promise when cancelled
"""

import pytest

from sincpro_promise.coroutine import Coroutine, GeneratorSteps, as_step_sequence
from sincpro_promise.domain.promise import PromiseState
from sincpro_promise.domain.steps import Done, Yielded
from sincpro_promise.exceptions import CancellationError, RejectionError
from sincpro_promise.promise import FulfilledPromise, Promise, RejectedPromise
from sincpro_promise.task_queue import TaskQueue


@pytest.fixture
def queue_fixture():
    """Fixture that provides an isolated TaskQueue."""
    return TaskQueue(with_shutdown=False)


def test_should_chain_yielded_values(queue_fixture):
    """Test that each yield receives the value of the previous promise."""

    def steps():
        value = yield FulfilledPromise("a", queue=queue_fixture)
        value = yield FulfilledPromise(value + "b", queue=queue_fixture)
        yield value + "c"

    coroutine = Coroutine(steps, queue=queue_fixture)
    queue_fixture.run()

    assert coroutine.get_state() is PromiseState.FULFILLED
    assert coroutine.wait() == "abc"


def test_should_let_generator_catch_rejections(queue_fixture):
    """Test that a rejection is raised at the yield and can be caught."""
    caught = []

    def steps():
        try:
            yield RejectedPromise("boom", queue=queue_fixture)
        except RejectionError as e:
            caught.append(e.reason)
        yield "recovered"

    coroutine = Coroutine(steps, queue=queue_fixture)
    queue_fixture.run()

    assert caught == ["boom"]
    assert coroutine.wait() == "recovered"


def test_should_raise_exception_reasons_unchanged(queue_fixture):
    """Test that an exception reason is thrown into the generator as is."""
    error = ValueError("Test error")
    caught = []

    def steps():
        try:
            yield RejectedPromise(error, queue=queue_fixture)
        except ValueError as e:
            caught.append(e)
        yield "done"

    Coroutine(steps, queue=queue_fixture)
    queue_fixture.run()

    assert caught == [error]


def test_uncaught_rejection_should_reject_result(queue_fixture):
    """Test that an escaping rejection rejects the coroutine."""

    def steps():
        yield RejectedPromise("boom", queue=queue_fixture)
        yield "unreachable"

    coroutine = Coroutine(steps, queue=queue_fixture)
    queue_fixture.run()

    assert coroutine.get_state() is PromiseState.REJECTED
    with pytest.raises(RejectionError, match="boom"):
        coroutine.wait()


def test_generator_error_should_reject_result(queue_fixture):
    """Test that an exception raised after resuming rejects the coroutine."""

    def steps():
        yield "a"
        raise ValueError("Test error")

    coroutine = Coroutine(steps, queue=queue_fixture)
    queue_fixture.run()

    with pytest.raises(ValueError, match="Test error"):
        coroutine.wait()


def test_error_before_first_yield_should_reject_result(queue_fixture):
    """Test that an exception while starting rejects the coroutine."""

    def steps():
        raise ValueError("Test error")
        yield "unreachable"

    coroutine = Coroutine(steps, queue=queue_fixture)

    assert coroutine.get_state() is PromiseState.REJECTED


def test_plain_values_should_still_be_deferred(queue_fixture):
    """Test that yielding a plain value goes through the queue."""
    resumed = []

    def steps():
        resumed.append((yield "a"))

    coroutine = Coroutine(steps, queue=queue_fixture)

    assert resumed == []
    assert coroutine.get_state() is PromiseState.PENDING
    queue_fixture.run()
    assert resumed == ["a"]
    assert coroutine.wait() == "a"


def test_generator_that_never_yields_should_resolve_immediately(queue_fixture):
    """Test that a generator finishing on its first step resolves with its return value."""

    def steps():
        return "done"
        yield  # pragma: no cover

    coroutine = Coroutine(steps, queue=queue_fixture)

    assert coroutine.get_state() is PromiseState.FULFILLED
    assert coroutine.wait() == "done"
    assert queue_fixture.is_empty()


def test_return_value_should_take_precedence(queue_fixture):
    """Test that an explicit return value settles the coroutine."""

    def steps():
        value = yield FulfilledPromise(20, queue=queue_fixture)
        return value + 22

    coroutine = Coroutine(steps, queue=queue_fixture)

    assert coroutine.wait() == 42


def test_wait_should_drive_pending_promises():
    """Test that wait() runs the coroutine through promises with wait functions."""
    queue = TaskQueue(with_shutdown=False)
    first = Promise(wait_fn=lambda: first.resolve(1), queue=queue)
    second = Promise(wait_fn=lambda: second.resolve(2), queue=queue)

    def steps():
        a = yield first
        b = yield second
        yield a + b

    coroutine = Coroutine.of(steps, queue=queue)

    assert coroutine.get_state() is PromiseState.PENDING
    assert coroutine.wait() == 3


def test_wait_should_run_to_completion_on_shared_queue():
    """Test that a coroutine built on the shared queue completes when waited on."""

    def steps():
        value = yield FulfilledPromise("a")
        value = yield FulfilledPromise(value + "b")
        yield value + "c"

    assert Coroutine(steps).wait() == "abc"


def test_then_should_observe_result(queue_fixture):
    """Test that handlers attached to the coroutine receive its value."""
    received = []

    def steps():
        yield FulfilledPromise("foo", queue=queue_fixture)

    Coroutine(steps, queue=queue_fixture).then(received.append)
    queue_fixture.run()

    assert received == ["foo"]


def test_otherwise_should_observe_rejection(queue_fixture):
    """Test that rejection handlers attached to the coroutine receive the error."""
    received = []

    def steps():
        yield RejectedPromise("boom", queue=queue_fixture)

    Coroutine(steps, queue=queue_fixture).otherwise(
        lambda reason: received.append(reason.reason)
    )
    queue_fixture.run()

    assert received == ["boom"]


def test_cancel_should_cancel_outstanding_promise(queue_fixture):
    """Test that cancel() cancels the pending promise and the result."""
    pending = Promise(queue=queue_fixture)
    resumed = []

    def steps():
        resumed.append((yield pending))

    coroutine = Coroutine(steps, queue=queue_fixture)
    coroutine.cancel()
    queue_fixture.run()

    assert pending.get_state() is PromiseState.REJECTED
    assert coroutine.get_state() is PromiseState.REJECTED
    assert resumed == []
    with pytest.raises(CancellationError):
        coroutine.wait()


def test_cancel_settled_coroutine_should_be_noop(queue_fixture):
    """Test that cancelling a finished coroutine keeps its value."""

    def steps():
        yield "foo"

    coroutine = Coroutine(steps, queue=queue_fixture)
    queue_fixture.run()

    coroutine.cancel()

    assert coroutine.wait() == "foo"


def test_resolve_should_settle_result(queue_fixture):
    """Test that resolve() settles the coroutine from outside."""
    pending = Promise(queue=queue_fixture)

    def steps():
        yield pending

    coroutine = Coroutine(steps, queue=queue_fixture)

    assert coroutine.resolve("external") is coroutine
    assert coroutine.wait() == "external"

    pending.resolve("late")
    queue_fixture.run()
    assert coroutine.wait() == "external"


class FakeSteps:
    """Hand-written step sequence that counts down."""

    def __init__(self, start: int) -> None:
        self.remaining = start
        self.thrown = []

    def start(self):
        return Yielded(self.remaining)

    def send(self, value):
        self.remaining = value - 1
        if self.remaining <= 0:
            return Done("finished")
        return Yielded(self.remaining)

    def throw(self, error):
        self.thrown.append(error)
        return Done(None)


def test_should_drive_custom_step_sequences(queue_fixture):
    """Test that any StepSequence can be driven, not only generators."""
    steps = FakeSteps(3)

    coroutine = Coroutine(lambda: steps, queue=queue_fixture)
    queue_fixture.run()

    assert coroutine.wait() == "finished"
    assert steps.remaining == 0


def test_as_step_sequence_should_wrap_generators():
    """Test that generators are adapted and step sequences pass through."""

    def steps():
        yield 1

    steps_sequence = FakeSteps(1)

    assert isinstance(as_step_sequence(steps()), GeneratorSteps)
    assert as_step_sequence(steps_sequence) is steps_sequence


def test_generator_steps_should_report_yields_and_completion():
    """Test the tagged step results produced by GeneratorSteps."""

    def steps():
        received = yield "first"
        try:
            yield received
        except KeyError:
            return "caught"

    sequence = GeneratorSteps(steps())

    assert sequence.start() == Yielded("first")
    assert sequence.send("second") == Yielded("second")
    assert sequence.throw(KeyError("missing")) == Done("caught")
