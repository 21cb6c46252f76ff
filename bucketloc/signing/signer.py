"""Request signing strategies for S3-compatible endpoints."""
from __future__ import annotations

import enum
import hashlib
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Protocol

import httpx
from botocore.auth import SIGV4_TIMESTAMP, HmacV1Auth, S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

CONTENT_SHA256_HEADER = "X-Amz-Content-Sha256"
EMPTY_SHA256 = hashlib.sha256(b"").hexdigest()

_SERVICE_NAME = "s3"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SignatureVersion(enum.Enum):
    """Signature protocols a client can be configured with."""

    V4 = "v4"
    V2 = "v2"

    @classmethod
    def parse(cls, value: "str | SignatureVersion") -> "SignatureVersion":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized in {"v4", "s3v4"}:
            return cls.V4
        if normalized in {"v2", "s3"}:
            return cls.V2
        raise ValueError(f"Unsupported signature version: {value!r}")


class RequestSigner(Protocol):
    """Attach authentication to an outbound request in place."""

    def sign(self, request: httpx.Request, *, region: str) -> httpx.Request:
        ...


def _replace_header(headers, name: str, value: str) -> None:
    # botocore headers append on assignment
    del headers[name]
    headers[name] = value


def _to_aws_request(request: httpx.Request, url: str | None = None) -> AWSRequest:
    headers = {name: value for name, value in request.headers.items() if name.lower() != "authorization"}
    return AWSRequest(
        method=request.method,
        url=url or str(request.url),
        headers=headers,
        data=request.content,
    )


class SignatureV4Signer:
    """AWS signature version 4, header based, computed by botocore."""

    def __init__(self, access_key: str, secret_key: str, *, clock: Clock = _utcnow) -> None:
        self._credentials = Credentials(access_key, secret_key)
        self._clock = clock

    def sign(self, request: httpx.Request, *, region: str) -> httpx.Request:
        if CONTENT_SHA256_HEADER not in request.headers:
            request.headers[CONTENT_SHA256_HEADER] = hashlib.sha256(request.content).hexdigest()
        amz_date = self._clock().astimezone(timezone.utc).strftime(SIGV4_TIMESTAMP)

        auth = S3SigV4Auth(self._credentials, _SERVICE_NAME, region)
        aws_request = _to_aws_request(request)
        aws_request.context["timestamp"] = amz_date
        _replace_header(aws_request.headers, "X-Amz-Date", amz_date)
        _replace_header(aws_request.headers, CONTENT_SHA256_HEADER, request.headers[CONTENT_SHA256_HEADER])

        canonical_request = auth.canonical_request(aws_request)
        string_to_sign = auth.string_to_sign(aws_request, canonical_request)
        signature = auth.signature(string_to_sign, aws_request)
        signed_headers = auth.signed_headers(auth.headers_to_sign(aws_request))

        request.headers["X-Amz-Date"] = amz_date
        request.headers["Authorization"] = (
            f"AWS4-HMAC-SHA256 Credential={auth.scope(aws_request)}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        return request


class _FixedDateHmacV1Auth(HmacV1Auth):
    """HmacV1Auth that takes the Date header from an injected clock."""

    def __init__(self, credentials: Credentials, clock: Clock) -> None:
        super().__init__(credentials)
        self._clock = clock

    def _get_date(self) -> str:
        return format_datetime(self._clock().astimezone(timezone.utc), usegmt=True)


def _v2_signing_url(request: httpx.Request) -> str:
    # S3 canonicalizes a sub-resource with an empty value as the bare key.
    query = request.url.query.decode("ascii")
    if not query:
        return str(request.url)
    pairs = [part[:-1] if part.endswith("=") else part for part in query.split("&")]
    return str(request.url.copy_with(query="&".join(pairs).encode("ascii")))


class SignatureV2Signer:
    """AWS signature version 2, computed by botocore. Region scoping does not apply."""

    def __init__(self, access_key: str, secret_key: str, *, clock: Clock = _utcnow) -> None:
        self._auth = _FixedDateHmacV1Auth(Credentials(access_key, secret_key), clock)

    def sign(self, request: httpx.Request, *, region: str) -> httpx.Request:
        aws_request = _to_aws_request(request, _v2_signing_url(request))
        self._auth.add_auth(aws_request)
        request.headers["Date"] = aws_request.headers["Date"]
        request.headers["Authorization"] = aws_request.headers["Authorization"]
        return request


def create_signer(
    version: "str | SignatureVersion",
    access_key: str,
    secret_key: str,
    *,
    clock: Clock = _utcnow,
) -> RequestSigner:
    """Return the signer for the configured signature version."""
    resolved = SignatureVersion.parse(version)
    if resolved is SignatureVersion.V4:
        return SignatureV4Signer(access_key, secret_key, clock=clock)
    return SignatureV2Signer(access_key, secret_key, clock=clock)
