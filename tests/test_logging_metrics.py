import asyncio
import json
import logging
import sys
import time
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from event_router import Router, metrics  # noqa: E402
from event_router.logging import configure_logging  # noqa: E402
from event_router.metrics import Timer  # noqa: E402
from tests.fakes.events import make_event  # noqa: E402


def test_json_logging_structure(monkeypatch, capsys):
    monkeypatch.setenv("LOG_FORMAT", "json")
    configure_logging()
    logging.getLogger(__name__).info(
        "sample",
        extra={
            "event_id": "evt_1",
            "event_type": "invoice.paid",
            "handler_count": 2,
            "middleware_count": 1,
            "latency_ms": 1.2,
            "error_category": "handler",
        },
    )
    captured = capsys.readouterr().err.strip().splitlines()[-1]
    data = json.loads(captured)
    assert data["message"] == "sample"
    assert data["event_type"] == "invoice.paid"
    for key in [
        "event_id",
        "handler_count",
        "middleware_count",
        "latency_ms",
        "strategy",
        "error_category",
    ]:
        assert key in data


def test_plain_logging_with_explicit_level(capsys):
    configure_logging("debug", "plain")
    logging.getLogger("event_router.test").debug("plain message")
    assert "plain message" in capsys.readouterr().err


def test_timer_observes_block():
    timer = Timer()
    with timer.time():
        time.sleep(0.001)
    assert timer.last_ms is not None and timer.last_ms > 0
    assert timer.count == 1


def test_dispatch_updates_metrics():
    metrics.reset()

    async def main():
        async def ok(event):
            return None

        async def bad(event):
            raise RuntimeError("x")

        async def gate(event, next):
            if event.type != "blocked":
                await next()

        router = Router().use(gate).on("ok", ok).on("ok", ok).on("bad", bad)
        await router.dispatch(make_event("ok"))
        await router.dispatch(make_event("blocked"))
        with pytest.raises(RuntimeError):
            await router.dispatch(make_event("bad"))

    asyncio.run(main())

    assert metrics.dispatches_total.value == 3
    assert metrics.dispatch_failures_total.value == 1
    assert metrics.short_circuits_total.value == 1
    assert metrics.handlers_invoked_total.value == 3
    assert metrics.dispatch_latency_ms.count == 3


def test_fanout_failures_counted():
    metrics.reset()

    async def main():
        async def bad(event):
            raise RuntimeError("x")

        router = Router().fanout("x", [bad, bad], strategy="best-effort")
        await router.dispatch(make_event("x"))

    asyncio.run(main())
    assert metrics.fanout_failures_total.value == 2
