"""Type-indexed async event router.

Register handlers and middleware against string event types, then
``await router.dispatch(event)``. Modules are lightweight and perform no I/O
on import.
"""

from .errors import (
    ErrorCategory,
    EventRouterError,
    HandlerError,
    InvalidEventType,
    InvalidPrefix,
    NextCalledMultipleTimes,
    RegistrationError,
)
from .events import (
    EventData,
    EventHandler,
    FanoutOptions,
    FanoutStrategy,
    Middleware,
    Next,
    WebhookEvent,
)
from .fanout import make_fanout_handler, wait_background
from .middleware import MiddlewareChain
from .registry import HandlerRegistry
from .router import PrefixedRouter, Router

__all__ = [
    "__version__",
    "ErrorCategory",
    "EventData",
    "EventHandler",
    "EventRouterError",
    "FanoutOptions",
    "FanoutStrategy",
    "HandlerError",
    "HandlerRegistry",
    "InvalidEventType",
    "InvalidPrefix",
    "Middleware",
    "MiddlewareChain",
    "Next",
    "NextCalledMultipleTimes",
    "PrefixedRouter",
    "RegistrationError",
    "Router",
    "WebhookEvent",
    "make_fanout_handler",
    "wait_background",
]

__version__ = "0.1.0"
