from __future__ import annotations

import time
from contextlib import contextmanager


class Counter:
    def __init__(self) -> None:
        self.value = 0

    def inc(self, n: int = 1) -> None:
        self.value += n


class Timer:
    """Records the duration of the most recent observation in milliseconds.

    Dispatches may overlap on the event loop, so callers measure their own
    span with :func:`time.perf_counter` and hand it to :meth:`observe`.
    """

    def __init__(self) -> None:
        self.last_ms: float | None = None
        self.count = 0

    def observe(self, ms: float) -> None:
        self.last_ms = ms
        self.count += 1

    @contextmanager
    def time(self):  # noqa: ANN201 (to keep it lightweight)
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe((time.perf_counter() - start) * 1000)


dispatches_total = Counter()
dispatch_failures_total = Counter()
short_circuits_total = Counter()
handlers_invoked_total = Counter()
fanout_failures_total = Counter()
dispatch_latency_ms = Timer()


def reset() -> None:
    """Zero every metric. Mostly useful in tests."""
    for counter in (
        dispatches_total,
        dispatch_failures_total,
        short_circuits_total,
        handlers_invoked_total,
        fanout_failures_total,
    ):
        counter.value = 0
    dispatch_latency_ms.last_ms = None
    dispatch_latency_ms.count = 0
