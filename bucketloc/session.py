"""Storage client owning the transport, signer and location cache."""
from __future__ import annotations

import contextlib
from typing import Iterator, Optional

import httpx
import structlog

from bucketloc.cache.location_cache import LocationCache
from bucketloc.observability.metrics import MetricsRegistry
from bucketloc.resolve.resolver import LocationResolver
from bucketloc.settings import DEFAULT_ENDPOINT, DEFAULT_USER_AGENT, ClientSettings
from bucketloc.signing.signer import SignatureVersion, create_signer

LOGGER = structlog.get_logger(__name__)


def _parse_endpoint(endpoint: str) -> httpx.URL:
    url = httpx.URL(endpoint)
    if url.scheme not in {"http", "https"}:
        raise ValueError(f"Endpoint must use http or https: {endpoint!r}")
    if not url.host:
        raise ValueError(f"Endpoint is missing a host: {endpoint!r}")
    return url


class StorageClient:
    """Entry point for bucket location lookups against one endpoint.

    The signer is chosen once here and never changes for the lifetime of
    the client. Without both credentials the client is anonymous and every
    bucket reports the default region.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        access_key: str = "",
        secret_key: str = "",
        signature_version: "str | SignatureVersion" = SignatureVersion.V4,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.endpoint = _parse_endpoint(endpoint)
        self.anonymous = not (access_key and secret_key)
        self.signature_version = SignatureVersion.parse(signature_version)
        self.metrics = metrics or MetricsRegistry()
        self.location_cache = LocationCache()
        self._signer = create_signer(self.signature_version, access_key, secret_key)
        self._http = httpx.Client(
            headers={"User-Agent": user_agent},
            timeout=timeout,
            transport=transport,
        )
        self._resolver = LocationResolver(
            http=self._http,
            endpoint=self.endpoint,
            signer=self._signer,
            cache=self.location_cache,
            anonymous=self.anonymous,
            metrics=self.metrics,
        )

    @classmethod
    def from_settings(cls, settings: ClientSettings, **kwargs) -> "StorageClient":
        return cls(
            settings.endpoint,
            access_key=settings.access_key,
            secret_key=settings.secret_key,
            signature_version=settings.signature_version,
            user_agent=settings.user_agent,
            timeout=settings.timeout_seconds,
            **kwargs,
        )

    def get_bucket_location(self, bucket: str) -> str:
        """Return the region hosting the bucket."""
        return self._resolver.resolve(bucket)

    def forget_bucket_location(self, bucket: str) -> None:
        """Drop the cached region, e.g. after the bucket was removed or recreated."""
        self._resolver.invalidate(bucket)

    def location_request(self, bucket: str) -> httpx.Request:
        """Return the signed location query without sending it."""
        return self._resolver.location_request(bucket)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "StorageClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@contextlib.contextmanager
def create_client(settings: ClientSettings, *, transport: Optional[httpx.BaseTransport] = None, metrics: Optional[MetricsRegistry] = None) -> Iterator[StorageClient]:
    """Yield a configured `StorageClient` for the duration of the context."""
    client = StorageClient.from_settings(settings, transport=transport, metrics=metrics)
    LOGGER.info(
        "client_created",
        endpoint=str(client.endpoint),
        signature_version=client.signature_version.value,
        anonymous=client.anonymous,
    )
    try:
        yield client
    finally:
        client.close()
