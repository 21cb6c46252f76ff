"""Construction of bucket location queries."""
from __future__ import annotations

from urllib.parse import quote

import httpx

DEFAULT_REGION = "us-east-1"


def location_url(endpoint: httpx.URL, bucket: str) -> httpx.URL:
    """Return the path-style `?location=` URL for the bucket."""
    return endpoint.copy_with(path=f"/{quote(bucket, safe='')}", query=b"location=")


def build_location_request(http: httpx.Client, endpoint: httpx.URL, bucket: str) -> httpx.Request:
    """Build an unsigned GET request for the bucket's location constraint.

    Location queries always use path-style addressing because virtual-host
    style requires knowing the bucket's region first. The client's default
    headers (User-Agent) and timeout are applied.
    """
    return http.build_request("GET", location_url(endpoint, bucket))
