from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Classification for error logging."""

    REGISTRATION = "registration"
    MIDDLEWARE = "middleware"
    HANDLER = "handler"
    FANOUT = "fanout"


class EventRouterError(Exception):
    """Base class for errors raised by the router itself."""


class RegistrationError(EventRouterError, ValueError):
    """Raised synchronously when a registration call is invalid."""


class InvalidEventType(RegistrationError):
    pass


class InvalidPrefix(RegistrationError):
    pass


class NextCalledMultipleTimes(EventRouterError, RuntimeError):
    """A middleware invoked its ``next`` continuation more than once."""

    def __init__(self, message: str = "Middleware next() function called multiple times") -> None:
        super().__init__(message)


class HandlerError(EventRouterError):
    """Wraps a failure value that was not an exception instance."""

    def __init__(self, value: Any) -> None:
        super().__init__(str(value))
        self.value = value


def as_exception(value: Any) -> Exception:
    """Return ``value`` if it is already an exception, otherwise wrap it."""
    if isinstance(value, Exception):
        return value
    return HandlerError(value)
