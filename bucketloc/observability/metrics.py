"""Thread-safe counters for location lookups."""
from __future__ import annotations

import contextlib
import threading
import time
from pathlib import Path
from typing import Dict

import orjson
import structlog

LOGGER = structlog.get_logger(__name__)

# Counters reported even when a run never touches them.
LOOKUP_COUNTERS = (
    "location_requests",
    "location_cache_hits",
    "location_cache_misses",
    "anonymous_lookups",
    "decode_failures",
    "transport_errors",
)


class MetricsRegistry:
    """Counters shared by every resolver thread of a client."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = dict.fromkeys(LOOKUP_COUNTERS, 0)

    def incr(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def incr_status(self, status_code: int) -> None:
        """Count a response under its status class, e.g. `http_4xx`."""
        self.incr(f"http_{status_code // 100}xx")

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def export(self, *, path: Path) -> Path:
        """Write the counters as JSON, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "counters": self.snapshot(),
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS))
        return path


@contextlib.contextmanager
def record_duration(registry: MetricsRegistry, metric_name: str):
    """Add the block's wall time in milliseconds to `metric_name`."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        registry.incr(metric_name, elapsed_ms)
        LOGGER.info("timer_stop", metric=metric_name, duration_ms=elapsed_ms)
