from __future__ import annotations

import json
import logging
import os


class JsonFormatter(logging.Formatter):
    """Very small JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short
        payload = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "event_id": getattr(record, "event_id", None),
            "event_type": getattr(record, "event_type", None),
            "handler_count": getattr(record, "handler_count", None),
            "middleware_count": getattr(record, "middleware_count", None),
            "latency_ms": getattr(record, "latency_ms", None),
            "strategy": getattr(record, "strategy", None),
            "error_category": getattr(record, "error_category", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int | None = None, fmt: str | None = None) -> None:
    """Configure logging.

    Default format is human friendly, but when ``LOG_FORMAT=json`` is set the
    output becomes structured JSON containing the dispatch fields.
    """

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    elif isinstance(level, str):
        level = level.upper()

    if fmt is None:
        fmt = os.getenv("LOG_FORMAT", "plain")
    if fmt.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )
