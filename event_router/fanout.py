"""Concurrent execution of sibling handlers for one event type."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

from . import metrics
from .errors import ErrorCategory, as_exception
from .events import EventHandler, FanoutStrategy, call_maybe_async, get_id, get_type

logger = logging.getLogger(__name__)

# strong references to fan-out tasks; the loop only keeps weak ones
_background: set[asyncio.Task[None]] = set()


def _spawn(coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
    task = asyncio.ensure_future(coro)
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task


async def wait_background() -> None:
    """Wait for fan-out tasks still running on the current loop.

    An all-or-nothing group reports its first failure while its other members
    keep running. Call this before closing the loop (``asyncio.run`` cancels
    whatever is left) so those members finish.
    """
    loop = asyncio.get_running_loop()
    while True:
        pending = [t for t in _background if t.get_loop() is loop and not t.done()]
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)


def make_fanout_handler(
    handlers: Sequence[EventHandler],
    strategy: FanoutStrategy | str = FanoutStrategy.ALL_OR_NOTHING,
    on_error: Callable[[Exception], None] | None = None,
) -> EventHandler:
    """Build one composite handler that runs ``handlers`` concurrently.

    Every handler is scheduled as a task before any of them is awaited.

    * ``all-or-nothing``: the composite fails with the first error to
      complete. The remaining tasks are not cancelled and finish in the
      background; their own errors are not reported.
    * ``best-effort``: the composite never fails. Each error is handed to
      ``on_error`` (if given) in completion order.

    ``on_error`` is ignored under ``all-or-nothing``.
    """
    strategy = FanoutStrategy(strategy)
    members = tuple(handlers)

    async def all_or_nothing(event: Any) -> None:
        if not members:
            return
        tasks = [_spawn(call_maybe_async(h, event)) for h in members]
        try:
            await asyncio.gather(*tasks)
        except Exception:
            metrics.fanout_failures_total.inc()
            raise

    async def best_effort(event: Any) -> None:
        if not members:
            return

        async def guarded(handler: EventHandler) -> None:
            try:
                await call_maybe_async(handler, event)
            except Exception as exc:
                metrics.fanout_failures_total.inc()
                _report(event, as_exception(exc), on_error)

        await asyncio.gather(*(_spawn(guarded(h)) for h in members))

    composite = all_or_nothing if strategy is FanoutStrategy.ALL_OR_NOTHING else best_effort
    composite.fanout_strategy = strategy  # type: ignore[attr-defined]
    return composite


def _report(
    event: Any, error: Exception, on_error: Callable[[Exception], None] | None
) -> None:
    extra = {
        "event_id": get_id(event),
        "event_type": get_type(event),
        "strategy": FanoutStrategy.BEST_EFFORT.value,
        "error_category": ErrorCategory.FANOUT.value,
    }
    if on_error is None:
        logger.debug("fanout_handler_failed error=%s", error, extra=extra)
        return
    try:
        on_error(error)
    except Exception:
        # best-effort never fails, not even on a broken observer
        logger.exception("fanout_on_error_failed", extra=extra)
