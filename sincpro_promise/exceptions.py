"""
Exception module for sincpro_promise.

This module defines specific exceptions that may be raised by the component.
"""

from typing import Any


class PromiseError(Exception):
    """Base exception for errors raised by promises."""


class InvalidArgumentError(PromiseError, ValueError):
    """Raised when a promise is given a payload it cannot hold."""


class SettlementError(PromiseError, RuntimeError):
    """Raised when settling a promise that already has a different outcome."""


class WaitError(PromiseError):
    """Raised when waiting could not settle a promise."""


class RejectionError(PromiseError):
    """
    Raised when unwrapping a promise rejected with a reason that is not an
    exception. The original reason is kept in ``reason``.
    """

    def __init__(self, reason: Any, description: str = "") -> None:
        self.reason = reason
        message = "The promise was rejected"
        if description:
            message += f" with reason: {description}"
        elif isinstance(reason, str):
            message += f" with reason: {reason}"
        super().__init__(message)


class CancellationError(RejectionError):
    """Rejection reason used when a pending promise is cancelled."""

    def __init__(self, reason: Any = "Promise has been cancelled") -> None:
        super().__init__(reason)
