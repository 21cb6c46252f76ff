"""Structured errors raised while talking to the storage service."""
from __future__ import annotations

from typing import Any, Dict, Optional
from xml.etree import ElementTree as ET

import httpx


class ErrorResponse(Exception):
    """Error document returned by the service for a non-2xx response."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int,
        bucket_name: str = "",
        key: str = "",
        request_id: str = "",
        host_id: str = "",
        region: str = "",
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.bucket_name = bucket_name
        self.key = key
        self.request_id = request_id
        self.host_id = host_id
        self.region = region
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "bucket_name": self.bucket_name,
            "key": self.key,
            "request_id": self.request_id,
            "host_id": self.host_id,
            "region": self.region,
        }


class LocationDecodeError(ValueError):
    """The location response body was not well-formed XML."""

    def __init__(self, bucket_name: str, reason: str) -> None:
        self.bucket_name = bucket_name
        self.reason = reason
        super().__init__(f"Unable to decode location for bucket {bucket_name!r}: {reason}")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse_error_document(body: bytes) -> Optional[Dict[str, str]]:
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return None
    if _local_name(root.tag) != "Error":
        return None
    return {_local_name(child.tag): (child.text or "").strip() for child in root}


def _synthesize(status_code: int, reason: str, bucket_name: str, object_name: str) -> Dict[str, str]:
    if status_code == httpx.codes.NOT_FOUND:
        if object_name:
            return {"Code": "NoSuchKey", "Message": "The specified key does not exist."}
        if bucket_name:
            return {"Code": "NoSuchBucket", "Message": "The specified bucket does not exist."}
        return {"Code": "NotFound", "Message": reason}
    if status_code == httpx.codes.FORBIDDEN:
        return {"Code": "AccessDenied", "Message": "Access Denied."}
    if status_code == httpx.codes.CONFLICT:
        return {"Code": "Conflict", "Message": "Bucket not empty."}
    return {"Code": reason.replace(" ", "") or str(status_code), "Message": reason}


def http_response_to_error(response: httpx.Response, bucket_name: str, object_name: str = "") -> ErrorResponse:
    """Convert a failed response into an `ErrorResponse`.

    The body must already have been read. When the service did not send an
    XML error document, a code is synthesized from the status.
    """
    fields = _parse_error_document(response.content) if response.content else None
    if fields is None:
        fields = _synthesize(response.status_code, response.reason_phrase, bucket_name, object_name)
    return ErrorResponse(
        fields.get("Code", ""),
        fields.get("Message", ""),
        status_code=response.status_code,
        bucket_name=fields.get("BucketName") or bucket_name,
        key=fields.get("Key") or object_name,
        request_id=fields.get("RequestId") or response.headers.get("x-amz-request-id", ""),
        host_id=fields.get("HostId") or response.headers.get("x-amz-id-2", ""),
        region=fields.get("Region") or response.headers.get("x-amz-bucket-region", ""),
    )
