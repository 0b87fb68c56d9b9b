from __future__ import annotations

import inspect
from collections.abc import Awaitable, Coroutine
from typing import Any

from .errors import NextCalledMultipleTimes
from .events import Middleware, Next, call_maybe_async


class MiddlewareChain:
    """Ordered middleware composed around a terminal step.

    The first middleware registered is the outermost layer: code before
    ``await next()`` runs in registration order and code after it runs in
    reverse order.

    A plain-function middleware may call ``next()`` without awaiting it; the
    rest of the chain then runs after the function returns.
    """

    def __init__(self) -> None:
        self._middlewares: list[Middleware] = []

    def use(self, middleware: Middleware) -> None:
        if not callable(middleware):
            raise TypeError("middleware must be callable")
        self._middlewares.append(middleware)

    def __len__(self) -> int:
        return len(self._middlewares)

    def compose(self, event: Any, terminal: Next) -> Next:
        """Return a zero-argument coroutine function running the whole chain."""
        chain = terminal
        for middleware in reversed(list(self._middlewares)):
            chain = _wrap(middleware, event, chain)
        return chain


def _wrap(middleware: Middleware, event: Any, next_stage: Next) -> Next:
    async def run() -> None:
        # fresh per invocation
        called = False
        pending: Coroutine[Any, Any, None] | None = None

        def guarded_next() -> Awaitable[None]:
            nonlocal called, pending
            if called:
                raise NextCalledMultipleTimes()
            called = True
            pending = next_stage()
            return pending

        try:
            await call_maybe_async(middleware, event, guarded_next)
        except BaseException:
            if pending is not None and inspect.getcoroutinestate(pending) == inspect.CORO_CREATED:
                pending.close()
            raise

        # a plain-function middleware calls next() without awaiting it
        if pending is not None and inspect.getcoroutinestate(pending) == inspect.CORO_CREATED:
            await pending

    return run
