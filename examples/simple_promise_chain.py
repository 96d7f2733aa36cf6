"""
Example demonstrating promise chains, coroutines and the event loop bridge.
"""

import logging

from sincpro_promise import Coroutine, EventLoop, FulfilledPromise, Promise, RejectionError, shutdown

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def fetch_user(user_id: int) -> Promise:
    """
    Example operation that settles later.

    Args:
        user_id: Identifier of the user to load.

    Returns:
        Promise: Settled with the user name when waited on.
    """
    promise = Promise(wait_fn=lambda: promise.resolve(f"user-{user_id}"))
    return promise


def greet_steps():
    name = yield fetch_user(7)
    try:
        yield Promise().reject("profile service unavailable")
    except RejectionError as e:
        logger.warning(f"Continuing without profile: {e.reason}")
    yield FulfilledPromise(f"Hello, {name}")


def main():
    try:
        # Example 1: Chained handlers, forced to completion with wait()
        logger.info("Running a promise chain")
        total = FulfilledPromise(20).then(lambda v: v + 1).then(lambda v: v * 2).wait()
        logger.info(f"Got result: {total}")

        # Example 2: Coroutine stepping through several promises
        logger.info("Running a coroutine")
        greeting = Coroutine.of(greet_steps).wait()
        logger.info(f"Got result: {greeting}")

        # Example 3: Draining the queue from an event loop
        logger.info("Running on an event loop")
        event_loop = EventLoop()
        pending = Promise()
        event_loop.get_loop().call_soon(pending.resolve, "settled on the loop")
        logger.info(f"Got result: {event_loop.run_until_settled(pending)}")
        event_loop.close()

    finally:
        # Clean shutdown
        shutdown()


if __name__ == "__main__":
    main()
