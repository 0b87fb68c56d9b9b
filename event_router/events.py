from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class EventData(BaseModel):
    """Payload container holding the event's opaque ``object``."""

    model_config = ConfigDict(extra="allow")

    object: Any = None


class WebhookEvent(BaseModel):
    """A single event to dispatch.

    Instances are mutable on purpose: middleware may enrich or rewrite an event
    in place and every later stage of the same dispatch sees the change.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    data: EventData


EventHandler = Callable[[Any], Awaitable[None] | None]
Next = Callable[[], Awaitable[None]]
Middleware = Callable[[Any, Next], Awaitable[None] | None]


class FanoutStrategy(str, Enum):
    ALL_OR_NOTHING = "all-or-nothing"
    BEST_EFFORT = "best-effort"


@dataclass
class FanoutOptions:
    strategy: FanoutStrategy = FanoutStrategy.ALL_OR_NOTHING
    on_error: Callable[[Exception], None] | None = None


def get_type(ev: Any) -> str:
    """Return the routing key of ``ev``.

    Works for ``WebhookEvent`` instances, any object with a ``type`` attribute
    and plain mappings. Events without a usable type route to ``""``.
    """
    if isinstance(ev, Mapping):
        etype = ev.get("type", "")
    else:
        etype = getattr(ev, "type", "")
    return etype if isinstance(etype, str) else ""


def get_id(ev: Any) -> str | None:
    if isinstance(ev, Mapping):
        return ev.get("id")
    return getattr(ev, "id", None)


async def call_maybe_async(func: Callable[..., Any], *args: Any) -> None:
    """Call ``func`` and await the result when it is awaitable."""
    result = func(*args)
    if inspect.isawaitable(result):
        await result
