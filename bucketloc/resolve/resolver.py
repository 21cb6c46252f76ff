"""Bucket location discovery with an in-memory cache."""
from __future__ import annotations

import time
from typing import Optional
from xml.etree import ElementTree as ET

import httpx
import structlog

from bucketloc.cache.location_cache import LocationCache
from bucketloc.observability.metrics import MetricsRegistry
from bucketloc.observability.tracing import log_location_result, span
from bucketloc.resolve.errors import LocationDecodeError, http_response_to_error
from bucketloc.resolve.request import DEFAULT_REGION, build_location_request
from bucketloc.signing.signer import RequestSigner

LOGGER = structlog.get_logger(__name__)

# Legacy constraint some services still report for Ireland.
_LEGACY_EU_CONSTRAINT = "EU"
_LEGACY_EU_REGION = "eu-west-1"


def normalize_location(constraint: str) -> str:
    """Map a raw location constraint onto a region identifier."""
    if constraint == "":
        return DEFAULT_REGION
    if constraint == _LEGACY_EU_CONSTRAINT:
        return _LEGACY_EU_REGION
    return constraint


def decode_location_constraint(body: bytes, bucket: str) -> str:
    """Extract the text of the top-level XML element; empty bodies yield ''."""
    if not body.strip():
        return ""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise LocationDecodeError(bucket, str(exc)) from exc
    return (root.text or "").strip()


class LocationResolver:
    """Resolve and cache the region hosting each bucket.

    Concurrent misses on the same bucket are not coalesced: each caller
    issues its own query and writes the same normalized value.
    """

    def __init__(
        self,
        *,
        http: httpx.Client,
        endpoint: httpx.URL,
        signer: RequestSigner,
        cache: LocationCache,
        anonymous: bool = False,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._http = http
        self._endpoint = endpoint
        self._signer = signer
        self._cache = cache
        self._anonymous = anonymous
        self._metrics = metrics or MetricsRegistry()

    @property
    def cache(self) -> LocationCache:
        return self._cache

    def resolve(self, bucket: str) -> str:
        """Return the region for the bucket, querying the service on a cache miss."""
        if self._anonymous:
            self._metrics.incr("anonymous_lookups")
            return DEFAULT_REGION

        region, found = self._cache.get(bucket)
        if found:
            self._metrics.incr("location_cache_hits")
            LOGGER.debug("location_cache_hit", bucket=bucket, region=region)
            return region

        self._metrics.incr("location_cache_misses")
        with span(name="resolve_location", bucket=bucket):
            constraint = self._fetch_constraint(bucket)
        region = normalize_location(constraint)
        self._cache.set(bucket, region)
        LOGGER.info("location_resolved", bucket=bucket, constraint=constraint, region=region)
        return region

    def invalidate(self, bucket: str) -> None:
        """Drop the cached region so the next lookup queries the service."""
        self._cache.delete(bucket)
        LOGGER.info("location_invalidated", bucket=bucket)

    def location_request(self, bucket: str) -> httpx.Request:
        """Build the signed location query for the bucket.

        The bucket's region is still unknown here, so the query is always
        signed for the default region. Anonymous clients get it unsigned.
        """
        request = build_location_request(self._http, self._endpoint, bucket)
        if self._anonymous:
            return request
        return self._signer.sign(request, region=DEFAULT_REGION)

    def _fetch_constraint(self, bucket: str) -> str:
        request = self.location_request(bucket)
        self._metrics.incr("location_requests")
        start = time.perf_counter()
        try:
            response = self._http.send(request, stream=True)
        except httpx.TransportError as exc:
            self._metrics.incr("transport_errors")
            LOGGER.warning("location_transport_error", bucket=bucket, error=str(exc))
            raise
        try:
            try:
                body = response.read()
            except httpx.TransportError as exc:
                self._metrics.incr("transport_errors")
                LOGGER.warning("location_transport_error", bucket=bucket, error=str(exc))
                raise
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self._metrics.incr_status(response.status_code)
            log_location_result(
                bucket=bucket,
                url=str(request.url),
                status=response.status_code,
                bytes_read=len(body),
                elapsed_ms=elapsed_ms,
            )
            if not response.is_success:
                raise http_response_to_error(response, bucket)
            try:
                return decode_location_constraint(body, bucket)
            except LocationDecodeError:
                self._metrics.incr("decode_failures")
                raise
        finally:
            response.close()
