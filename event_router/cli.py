from __future__ import annotations

import asyncio
import importlib
import json
import sys
from pathlib import Path

import typer
from pydantic import ValidationError

from .config import Settings
from .events import WebhookEvent
from .fanout import wait_background
from .logging import configure_logging
from .router import Router

app = typer.Typer(help="Event router utility")


def load_router(path: str) -> Router:
    """Import a router from a ``module:attribute`` path.

    The attribute may also be a zero-argument factory returning a router.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"expected 'module:attribute', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        obj = getattr(module, attr)
    except AttributeError as exc:
        raise typer.BadParameter(f"{module_name!r} has no attribute {attr!r}") from exc
    if not isinstance(obj, Router) and callable(obj):
        obj = obj()
    if not isinstance(obj, Router):
        raise typer.BadParameter(f"{path!r} is not a Router")
    return obj


def _resolve(app_path: str | None, settings: Settings) -> Router:
    path = app_path or settings.app
    if not path:
        raise typer.BadParameter("no router given; pass APP or set EVENT_ROUTER_APP")
    return load_router(path)


def _read_event(source: str) -> WebhookEvent:
    raw = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    try:
        return WebhookEvent.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise typer.BadParameter(f"invalid event: {exc}") from exc


async def _dispatch_and_drain(router: Router, event: WebhookEvent) -> None:
    try:
        await router.dispatch(event)
    finally:
        # let fan-out members outlive a failed group before the loop closes
        await wait_background()


@app.command()
def routes(
    app_path: str | None = typer.Argument(None, metavar="APP", help="module:attribute"),
    verbose: bool = typer.Option(False, help="Print effective settings"),
) -> None:
    """List the event types a router handles."""
    settings = Settings()
    if verbose:
        typer.echo(settings.model_dump_json(indent=2))
    router = _resolve(app_path, settings)
    for event_type, handlers in sorted(router.registry.items()):
        typer.echo(f"{event_type}\t{len(handlers)}")
    typer.echo(f"middleware: {router.middleware_count}")


@app.command()
def dispatch(
    event_file: str = typer.Argument(..., help="JSON event file, or '-' for stdin"),
    app_path: str | None = typer.Option(None, "--app", help="module:attribute"),
    log_level: str | None = typer.Option(None, help="Override the log level"),
    verbose: bool = typer.Option(False, help="Print effective settings"),
) -> None:
    """Dispatch a single JSON event through a router."""
    overrides: dict[str, object] = {}
    if log_level is not None:
        overrides["log_level"] = log_level
    settings = Settings(**overrides)
    if verbose:
        typer.echo(settings.model_dump_json(indent=2))
    configure_logging(settings.log_level, settings.log_format)

    router = _resolve(app_path, settings)
    event = _read_event(event_file)
    try:
        asyncio.run(_dispatch_and_drain(router, event))
    except Exception as exc:
        typer.echo(f"dispatch failed: {type(exc).__name__}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"dispatched {event.id} ({event.type})")


if __name__ == "__main__":  # pragma: no cover
    app()
