"""Object-store adapters exposing the S3 calls the harness consumes."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from time import perf_counter
from typing import Any, Protocol, TypeVar, runtime_checkable

from s3_harness.client.builder import (
    ClientOptions,
    Credentials,
    build_client,
    build_minio_client,
)
from s3_harness.config.resources import ClientSettings
from s3_harness.errors import HarnessError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NOT_FOUND_CODES = {"NoSuchBucket", "NoSuchKey", "NotFound"}
_ALREADY_OWNED_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
_AUTH_CODES = {
    "AccessDenied",
    "ExpiredToken",
    "InvalidAccessKeyId",
    "InvalidToken",
    "SignatureDoesNotMatch",
    "Unauthorized",
}
_TRANSIENT_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


class StorageError(HarnessError):
    """Base exception for object-store operations."""

    def __init__(
        self,
        operation: str,
        bucket: str,
        key: str | None,
        message: str,
    ) -> None:
        self.operation = operation
        self.bucket = bucket
        self.key = key
        target = bucket if key is None else f"{bucket}/{key}"
        super().__init__(f"Storage {operation} failed for '{target}': {message}")


class StorageNotFoundError(StorageError):
    """Raised when a bucket or object does not exist."""


class StorageAuthError(StorageError):
    """Raised when credentials are rejected."""


class StorageTransientError(StorageError):
    """Raised for connection failures, timeouts and throttling."""


class StorageOperationError(StorageError):
    """Raised for every other service failure."""


class ListVariant(enum.Enum):
    V1 = "ListObjects"
    V2 = "ListObjectsV2"


@dataclass(frozen=True, slots=True)
class ObjectSummary:
    """One entry of a listing result."""

    key: str
    size: int
    etag: str | None = None
    last_modified: datetime | None = None


@dataclass(frozen=True, slots=True)
class BucketBootstrapResult:
    bucket: str
    exists: bool
    created: bool


@runtime_checkable
class ObjectStore(Protocol):
    """S3 operations used by listing scenarios.

    All methods raise typed ``StorageError`` subclasses for service failures.
    """

    def create_bucket(self, bucket: str) -> BucketBootstrapResult:
        """Create ``bucket``; succeed when it is already owned by the caller."""
        ...

    def put_object(self, bucket: str, key: str, path: Path) -> None:
        """Upload the file at ``path`` under ``key``."""
        ...

    def list_objects(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        """List every object under ``prefix`` with the V1 API."""
        ...

    def list_objects_v2(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        """List every object under ``prefix`` with the V2 API."""
        ...

    def close(self) -> None:
        """Release SDK connections."""
        ...


def list_with_variant(
    store: ObjectStore,
    bucket: str,
    prefix: str,
    variant: ListVariant,
) -> list[ObjectSummary]:
    if variant is ListVariant.V1:
        return store.list_objects(bucket, prefix)
    return store.list_objects_v2(bucket, prefix)


class Boto3ObjectStore:
    """``ObjectStore`` backed by a boto3 S3 client."""

    def __init__(self, client: Any, *, region: str) -> None:
        self._client = client
        self._region = region

    @property
    def client(self) -> Any:
        return self._client

    def create_bucket(self, bucket: str) -> BucketBootstrapResult:
        kwargs: dict[str, Any] = {"Bucket": bucket}
        # us-east-1 rejects an explicit location constraint.
        if self._region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}

        try:
            self._client.create_bucket(**kwargs)
        except Exception as exc:
            if _error_code(exc) in _ALREADY_OWNED_CODES:
                logger.info("Bucket already exists", extra={"bucket_name": bucket})
                return BucketBootstrapResult(bucket=bucket, exists=True, created=False)
            raise _translate_storage_error(
                operation="create_bucket", bucket=bucket, key=None, exc=exc
            ) from exc

        logger.info("Bucket created", extra={"bucket_name": bucket})
        return BucketBootstrapResult(bucket=bucket, exists=False, created=True)

    def put_object(self, bucket: str, key: str, path: Path) -> None:
        def upload() -> None:
            with Path(path).open("rb") as body:
                self._client.put_object(Bucket=bucket, Key=key, Body=body)

        _call("put_object", bucket, key, upload)

    def list_objects(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        return self._paginate("list_objects", bucket, prefix)

    def list_objects_v2(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        return self._paginate("list_objects_v2", bucket, prefix)

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()

    def _paginate(self, operation: str, bucket: str, prefix: str) -> list[ObjectSummary]:
        def collect() -> list[ObjectSummary]:
            paginator = self._client.get_paginator(operation)
            summaries: list[ObjectSummary] = []
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                summaries.extend(_summary_from_boto3(item) for item in page.get("Contents", []))
            return summaries

        return _call(operation, bucket, None, collect)


class MinioObjectStore:
    """``ObjectStore`` backed by a MinIO SDK client."""

    def __init__(self, client: Any, *, region: str) -> None:
        self._client = client
        self._region = region

    @property
    def client(self) -> Any:
        return self._client

    def create_bucket(self, bucket: str) -> BucketBootstrapResult:
        try:
            self._client.make_bucket(bucket, location=self._region)
        except Exception as exc:
            if _error_code(exc) in _ALREADY_OWNED_CODES:
                logger.info("Bucket already exists", extra={"bucket_name": bucket})
                return BucketBootstrapResult(bucket=bucket, exists=True, created=False)
            raise _translate_storage_error(
                operation="create_bucket", bucket=bucket, key=None, exc=exc
            ) from exc

        logger.info("Bucket created", extra={"bucket_name": bucket})
        return BucketBootstrapResult(bucket=bucket, exists=False, created=True)

    def put_object(self, bucket: str, key: str, path: Path) -> None:
        _call(
            "put_object",
            bucket,
            key,
            lambda: self._client.fput_object(bucket, key, str(path)),
        )

    def list_objects(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        return self._list("list_objects", bucket, prefix, use_api_v1=True)

    def list_objects_v2(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        return self._list("list_objects_v2", bucket, prefix, use_api_v1=False)

    def close(self) -> None:
        http_client = getattr(self._client, "_http", None)
        clear = getattr(http_client, "clear", None)
        if callable(clear):
            clear()

    def _list(
        self,
        operation: str,
        bucket: str,
        prefix: str,
        *,
        use_api_v1: bool,
    ) -> list[ObjectSummary]:
        def collect() -> list[ObjectSummary]:
            objects: Iterable[Any] = self._client.list_objects(
                bucket,
                prefix=prefix or None,
                recursive=True,
                use_api_v1=use_api_v1,
            )
            return [
                _summary_from_minio(item)
                for item in objects
                if not getattr(item, "is_dir", False)
            ]

        return _call(operation, bucket, None, collect)


def create_store(endpoint: str, settings: ClientSettings | None = None) -> ObjectStore:
    """Build a fresh client for ``endpoint`` and wrap it in an ``ObjectStore``."""
    settings = settings or ClientSettings()
    credentials = Credentials(access_key=settings.access_key, secret_key=settings.secret_key)
    options = ClientOptions(
        path_style=settings.path_style,
        chunked_encoding=settings.chunked_encoding,
        connect_timeout_seconds=settings.connect_timeout_seconds,
        read_timeout_seconds=settings.read_timeout_seconds,
        max_attempts=settings.max_attempts,
    )

    if settings.sdk == "minio":
        client = build_minio_client(endpoint, settings.region, credentials, options)
        return MinioObjectStore(client, region=settings.region)

    client = build_client(endpoint, settings.region, credentials, options)
    return Boto3ObjectStore(client, region=settings.region)


def _call(operation: str, bucket: str, key: str | None, func: Callable[[], T]) -> T:
    started = perf_counter()
    try:
        result = func()
    except Exception as exc:
        translated = _translate_storage_error(
            operation=operation, bucket=bucket, key=key, exc=exc
        )
        logger.warning(
            "Storage call failed",
            extra={
                "operation": operation,
                "bucket_name": bucket,
                "key": key,
                "error_type": type(translated).__name__,
            },
        )
        raise translated from exc

    logger.debug(
        "Storage call succeeded",
        extra={
            "operation": operation,
            "bucket_name": bucket,
            "key": key,
            "duration_ms": round((perf_counter() - started) * 1000, 3),
        },
    )
    return result


def _summary_from_boto3(item: dict[str, Any]) -> ObjectSummary:
    return ObjectSummary(
        key=item["Key"],
        size=int(item.get("Size", 0)),
        etag=_strip_etag(item.get("ETag")),
        last_modified=item.get("LastModified"),
    )


def _summary_from_minio(item: Any) -> ObjectSummary:
    return ObjectSummary(
        key=item.object_name,
        size=int(getattr(item, "size", None) or 0),
        etag=_strip_etag(getattr(item, "etag", None)),
        last_modified=getattr(item, "last_modified", None),
    )


def _strip_etag(etag: str | None) -> str | None:
    if etag is None:
        return None
    return etag.strip('"')


def _translate_storage_error(
    *,
    operation: str,
    bucket: str,
    key: str | None,
    exc: Exception,
) -> StorageError:
    message = str(exc)

    if _is_not_found_error(exc):
        return StorageNotFoundError(operation, bucket, key, message)
    if _is_auth_error(exc):
        return StorageAuthError(operation, bucket, key, message)
    if _is_transient_error(exc):
        return StorageTransientError(operation, bucket, key, message)
    return StorageOperationError(operation, bucket, key, message)


def _is_not_found_error(exc: Exception) -> bool:
    code = _error_code(exc)
    status = _error_status(exc)
    return code in _NOT_FOUND_CODES or status == 404


def _is_auth_error(exc: Exception) -> bool:
    code = _error_code(exc)
    status = _error_status(exc)
    return code in _AUTH_CODES or status in {401, 403}


def _is_transient_error(exc: Exception) -> bool:
    status = _error_status(exc)
    if status in _TRANSIENT_STATUS_CODES:
        return True

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True

    name = type(exc).__name__.lower()
    return "timeout" in name or "connection" in name


def _error_code(exc: Exception) -> str | None:
    # botocore ClientError keeps the code in ``response["Error"]``.
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        code = response.get("Error", {}).get("Code")
        if code is not None:
            return str(code)

    code = getattr(exc, "code", None) or getattr(exc, "error_code", None)
    if code is None:
        return None
    return str(code)


def _error_status(exc: Exception) -> int | None:
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    elif response is not None:
        status = getattr(response, "status", None)
    else:
        status = None

    if status is None:
        status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    if status is None:
        return None
    try:
        return int(status)
    except (TypeError, ValueError):
        return None
