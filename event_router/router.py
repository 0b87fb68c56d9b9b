from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from . import metrics
from .errors import ErrorCategory, NextCalledMultipleTimes
from .events import (
    EventHandler,
    FanoutOptions,
    FanoutStrategy,
    Middleware,
    call_maybe_async,
    get_id,
    get_type,
)
from .fanout import make_fanout_handler
from .middleware import MiddlewareChain
from .registry import HandlerRegistry, normalize_event_types, validate_prefix

logger = logging.getLogger(__name__)


class Router:
    """Type-indexed async event router.

    Handlers are registered per event type and run sequentially in
    registration order. Middleware wraps the handler step in an onion: the
    first middleware registered is the outermost.

    :meth:`on` can be used either as a decorator::

        router = Router()


        @router.on("invoice.paid")
        async def handler(event): ...

    or called directly, in which case it returns the router for chaining::

        router.on("invoice.paid", handler).on("invoice.voided", other)

    Events whose type has no handlers are ignored.
    """

    def __init__(self) -> None:
        self._registry = HandlerRegistry()
        self._middleware = MiddlewareChain()

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def middleware_count(self) -> int:
        return len(self._middleware)

    # Registration -------------------------------------------------------------

    def on(
        self, event_types: str | Sequence[str], handler: EventHandler | None = None
    ) -> Router | Callable[[EventHandler], EventHandler]:
        """Register ``handler`` for one or more event types.

        If ``handler`` is ``None`` this functions as a decorator factory.
        """

        if handler is not None:
            self._registry.register(event_types, handler)
            return self

        # validate eagerly so a bad type fails at the decorator line
        normalize_event_types(event_types)

        def decorator(func: EventHandler) -> EventHandler:
            self._registry.register(event_types, func)
            return func

        return decorator

    # Backwards compatible alias
    register = on

    def use(
        self, middleware: Middleware | None = None
    ) -> Router | Callable[[Middleware], Middleware]:
        """Append ``middleware`` to the global chain.

        Middleware receives ``(event, next)`` and must ``await next()`` at most
        once. Not calling it at all stops the dispatch without an error.
        """

        if middleware is not None:
            self._middleware.use(middleware)
            return self

        def decorator(func: Middleware) -> Middleware:
            self._middleware.use(func)
            return func

        return decorator

    def group(self, prefix: str, builder: Callable[[PrefixedRouter], Any]) -> Router:
        validate_prefix(prefix, kind="Group")
        builder(PrefixedRouter(prefix, self))
        return self

    def mount(self, prefix: str, other: Router | HandlerRegistry) -> Router:
        """Copy the handlers of ``other`` under ``prefix``.

        Only handlers are copied, never middleware, and only those registered
        at the time of the call.
        """
        source = other.registry if isinstance(other, Router) else other
        self._registry.mount(prefix, source)
        return self

    # Backwards compatible alias
    route = mount

    def fanout(
        self,
        event_types: str | Sequence[str],
        handlers: Sequence[EventHandler],
        options: FanoutOptions | None = None,
        *,
        strategy: FanoutStrategy | str | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> Router:
        """Register ``handlers`` to run concurrently as a single handler.

        ``strategy`` and ``on_error`` override the matching ``options`` fields.
        The default strategy is all-or-nothing.
        """
        options = options or FanoutOptions()
        composite = make_fanout_handler(
            handlers,
            strategy if strategy is not None else options.strategy,
            on_error if on_error is not None else options.on_error,
        )
        self._registry.register(event_types, composite)
        return self

    # Dispatch -----------------------------------------------------------------

    async def dispatch(self, event: Any) -> None:
        """Run ``event`` through the middleware chain and its handlers.

        Errors raised by middleware or handlers propagate unchanged. Handlers
        that already ran before a failure are not rolled back.
        """

        event_type = get_type(event)
        handlers = self._registry.handlers_for(event_type)
        reached_handlers = False
        failed_handler: EventHandler | None = None

        async def run_handlers() -> None:
            nonlocal reached_handlers, failed_handler
            reached_handlers = True
            for handler in handlers:
                metrics.handlers_invoked_total.inc()
                try:
                    await call_maybe_async(handler, event)
                except Exception:
                    failed_handler = handler
                    raise

        chain = self._middleware.compose(event, run_handlers)
        extra = {
            "event_id": get_id(event),
            "event_type": event_type,
            "handler_count": len(handlers),
            "middleware_count": len(self._middleware),
        }

        metrics.dispatches_total.inc()
        logger.debug("dispatch_start", extra=extra)
        start = time.perf_counter()
        try:
            await chain()
        except Exception as exc:
            metrics.dispatch_failures_total.inc()
            strategy = getattr(failed_handler, "fanout_strategy", None)
            logger.debug(
                "dispatch_failed error=%r",
                exc,
                extra={
                    **extra,
                    "error_category": _categorize(exc, failed_handler).value,
                    "strategy": strategy.value if strategy is not None else None,
                },
            )
            raise
        finally:
            latency_ms = (time.perf_counter() - start) * 1000
            metrics.dispatch_latency_ms.observe(latency_ms)

        if not reached_handlers:
            metrics.short_circuits_total.inc()
        logger.debug(
            "dispatch_complete",
            extra={**extra, "latency_ms": latency_ms, "short_circuited": not reached_handlers},
        )


def _categorize(exc: Exception, failed_handler: EventHandler | None) -> ErrorCategory:
    if failed_handler is None or isinstance(exc, NextCalledMultipleTimes):
        return ErrorCategory.MIDDLEWARE
    if getattr(failed_handler, "fanout_strategy", None) is not None:
        return ErrorCategory.FANOUT
    return ErrorCategory.HANDLER


class PrefixedRouter:
    """Registration proxy handed to :meth:`Router.group`.

    Event types passed to :meth:`on` and :meth:`fanout` are rewritten to
    ``prefix + "." + type`` before reaching the parent router.

    :meth:`use` is not scoped: middleware registered through a group is
    appended to the parent's global chain and runs for every event.
    """

    def __init__(self, prefix: str, parent: Router) -> None:
        self.prefix = validate_prefix(prefix, kind="Group")
        self.parent = parent

    def _prefixed(self, event_types: str | Sequence[str]) -> list[str]:
        return [f"{self.prefix}.{t}" for t in normalize_event_types(event_types)]

    def on(
        self, event_types: str | Sequence[str], handler: EventHandler | None = None
    ) -> PrefixedRouter | Callable[[EventHandler], EventHandler]:
        full_types = self._prefixed(event_types)

        if handler is not None:
            self.parent.on(full_types, handler)
            return self

        def decorator(func: EventHandler) -> EventHandler:
            self.parent.on(full_types, func)
            return func

        return decorator

    register = on

    def use(
        self, middleware: Middleware | None = None
    ) -> PrefixedRouter | Callable[[Middleware], Middleware]:
        if middleware is not None:
            self.parent.use(middleware)
            return self

        def decorator(func: Middleware) -> Middleware:
            self.parent.use(func)
            return func

        return decorator

    def fanout(
        self,
        event_types: str | Sequence[str],
        handlers: Sequence[EventHandler],
        options: FanoutOptions | None = None,
        *,
        strategy: FanoutStrategy | str | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> PrefixedRouter:
        self.parent.fanout(
            self._prefixed(event_types), handlers, options, strategy=strategy, on_error=on_error
        )
        return self

    def group(self, prefix: str, builder: Callable[[PrefixedRouter], Any]) -> PrefixedRouter:
        validate_prefix(prefix, kind="Group")
        builder(PrefixedRouter(f"{self.prefix}.{prefix}", self.parent))
        return self
