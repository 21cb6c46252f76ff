"""Tracing helpers for location lookups."""
from __future__ import annotations

import contextlib
import time
from typing import Iterator, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def _logger():
    return structlog.get_logger("bucketloc.trace")


def set_context(*, run_id: str) -> None:
    bind_contextvars(run_id=run_id)
    _logger().debug("trace_context", run_id=run_id)


def clear_context() -> None:
    clear_contextvars()


@contextlib.contextmanager
def span(*, name: str, bucket: Optional[str] = None) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        _logger().info("trace_span", span=name, bucket=bucket, elapsed_ms=elapsed_ms)


def log_location_result(*, bucket: str, url: str, status: int, bytes_read: int, elapsed_ms: int) -> None:
    _logger().info(
        "location_result",
        bucket=bucket,
        url=url,
        status=status,
        bytes=bytes_read,
        elapsed_ms=elapsed_ms,
    )
