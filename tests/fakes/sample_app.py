"""Router used by the CLI tests."""

from __future__ import annotations

import asyncio

from event_router import Router

received: list[str] = []

router = Router()


async def record(event) -> None:
    received.append(event.id)


async def boom(event) -> None:
    raise RuntimeError("payment provider unavailable")


async def slow_sibling(event) -> None:
    await asyncio.sleep(0.02)
    received.append(f"{event.id}:slow")


async def tag(event, next) -> None:
    await next()


router.use(tag)
router.on(["invoice.paid", "invoice.voided"], record)
router.on("invoice.failed", boom)
router.group("customer", lambda customer: customer.on("created", record))
router.fanout("report.generated", [boom, slow_sibling])


def make_router() -> Router:
    return Router().on("ping", record)


not_a_router = object()
