import threading
from pathlib import Path
from typing import Dict, List, Tuple

import httpx
import pytest

from bucketloc.observability.log import configure_logging


@pytest.fixture(autouse=True, scope="session")
def _logging():
    configure_logging(Path("config/logging.yaml"))


class LocationService:
    """Fake storage endpoint answering `?location=` queries."""

    def __init__(self, responses: Dict[str, Tuple[int, str]]):
        self._responses = responses
        self._lock = threading.Lock()
        self.calls: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []
        self.sent: List[httpx.Response] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        bucket = request.url.path.lstrip("/")
        status, body = self._responses.get(bucket, (404, ""))
        response = httpx.Response(status, content=body.encode("utf-8"))
        with self._lock:
            self.calls[bucket] = self.calls.get(bucket, 0) + 1
            self.requests.append(request)
            self.sent.append(response)
        return response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def total_calls(self) -> int:
        return sum(self.calls.values())


def location_xml(constraint: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<LocationConstraint xmlns="http://s3.amazonaws.com/doc/2006-03-01/">{constraint}</LocationConstraint>'
    )
