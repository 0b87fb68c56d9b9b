"""Handler registry keyed by event type."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from .errors import ErrorCategory, InvalidEventType, InvalidPrefix
from .events import EventHandler

logger = logging.getLogger(__name__)


def validate_event_type(event_type: object) -> str:
    if not isinstance(event_type, str):
        raise InvalidEventType(f"Event type must be a string, got {type(event_type).__name__}")
    if event_type.strip() == "":
        raise InvalidEventType("Event type cannot be an empty string or whitespace")
    return event_type


def validate_prefix(prefix: object, kind: str = "Route") -> str:
    if not isinstance(prefix, str) or prefix.strip() == "":
        raise InvalidPrefix(f"{kind} prefix cannot be an empty string or whitespace")
    return prefix


def normalize_event_types(event_types: str | Sequence[str]) -> list[str]:
    """Return ``event_types`` as a validated list.

    A single string becomes a one-element list. Every entry is validated
    before the caller mutates anything, so a bad entry never leaves a
    partial registration behind.
    """
    if isinstance(event_types, str):
        return [validate_event_type(event_types)]
    return [validate_event_type(t) for t in event_types]


class HandlerRegistry:
    """Maps event types to handlers in registration order.

    Lookups are exact and case-sensitive. Entries are created lazily and never
    removed.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def register(self, event_types: str | Sequence[str], handler: EventHandler) -> None:
        types = normalize_event_types(event_types)
        if not types:
            logger.warning(
                "register_empty_event_types",
                extra={"error_category": ErrorCategory.REGISTRATION.value},
            )
            return
        for event_type in types:
            self._handlers.setdefault(event_type, []).append(handler)

    def handlers_for(self, event_type: str) -> tuple[EventHandler, ...]:
        return tuple(self._handlers.get(event_type, ()))

    def mount(self, prefix: str, other: HandlerRegistry) -> None:
        """Copy every entry of ``other`` under ``prefix``.

        This is a snapshot: handlers added to ``other`` afterwards are not
        seen by this registry.
        """
        validate_prefix(prefix)
        for event_type, handlers in list(other.items()):
            self._handlers.setdefault(f"{prefix}.{event_type}", []).extend(handlers)

    def event_types(self) -> list[str]:
        return list(self._handlers)

    def items(self) -> Iterator[tuple[str, tuple[EventHandler, ...]]]:
        for event_type, handlers in self._handlers.items():
            yield event_type, tuple(handlers)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
