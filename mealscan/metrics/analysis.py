"""Instrumentation helpers for meal analysis.

Metrics:
* Counter analyze_requests_total{status}
* Counter analyze_upstream_errors_total{status}
* Counter analyze_items_total
* Histogram analyze_latency_ms

``status`` is one of: completed, invalid_input, upstream_error,
empty_response, non_json, failed.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from .core import registry, RegistrySnapshot


def record_request(status: str) -> None:
    registry.counter("analyze_requests_total", status=status).inc()


def record_upstream_error(status_code: int) -> None:
    registry.counter("analyze_upstream_errors_total", status=str(status_code)).inc()


def record_items(count: int) -> None:
    if count <= 0:
        return
    registry.counter("analyze_items_total").inc(count)


def record_latency_ms(ms: float) -> None:
    registry.histogram("analyze_latency_ms").observe(ms)


@contextmanager
def time_analysis() -> Iterator[None]:
    """Observe wall time of the wrapped block, whatever its outcome."""
    start = time.perf_counter()
    try:
        yield
    finally:
        record_latency_ms((time.perf_counter() - start) * 1000.0)


def snapshot() -> RegistrySnapshot:
    return registry.snapshot()


def reset_all() -> None:
    """Reset every metric (test utility)."""
    registry.reset()
