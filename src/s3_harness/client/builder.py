"""Construction of S3 SDK clients bound to an emulator endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import boto3
from botocore.config import Config

from s3_harness.config.models import DEFAULT_ACCESS_KEY, DEFAULT_SECRET_KEY
from s3_harness.errors import ConfigurationError, MissingDependencyError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = {"http", "https"}


@dataclass(frozen=True, slots=True)
class Credentials:
    """Static credential pair. Emulators accept any non-empty values."""

    access_key: str = DEFAULT_ACCESS_KEY
    secret_key: str = DEFAULT_SECRET_KEY

    def __repr__(self) -> str:
        return f"Credentials(access_key={self.access_key!r}, secret_key='***')"


@dataclass(frozen=True, slots=True)
class ClientOptions:
    """Transport options required by most S3 emulators.

    ``path_style`` keeps the bucket in the URL path instead of the host name.
    ``chunked_encoding=False`` stops the SDK from sending ``aws-chunked``
    bodies, which many emulators cannot verify.
    """

    path_style: bool = True
    chunked_encoding: bool = False
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 30.0
    max_attempts: int = 1


@dataclass(frozen=True, slots=True)
class ParsedEndpoint:
    url: str
    scheme: str
    host: str
    port: int | None

    @property
    def netloc(self) -> str:
        return self.host if self.port is None else f"{self.host}:{self.port}"

    @property
    def secure(self) -> bool:
        return self.scheme == "https"


def parse_endpoint(endpoint: str) -> ParsedEndpoint:
    """Validate an ``http(s)://host[:port]`` endpoint URL."""
    if not isinstance(endpoint, str) or not endpoint.strip():
        raise ConfigurationError("endpoint must be a non-empty URL")

    url = endpoint.strip().rstrip("/")
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"malformed endpoint {endpoint!r}: {exc}") from exc

    if parts.scheme not in _ALLOWED_SCHEMES:
        raise ConfigurationError(
            f"malformed endpoint {endpoint!r}: scheme must be http or https"
        )
    if not parts.hostname:
        raise ConfigurationError(f"malformed endpoint {endpoint!r}: missing host")
    if parts.path or parts.query or parts.fragment:
        raise ConfigurationError(
            f"malformed endpoint {endpoint!r}: path, query and fragment are not allowed"
        )

    return ParsedEndpoint(url=url, scheme=parts.scheme, host=parts.hostname, port=port)


def _validate_common(region: str, credentials: Credentials, options: ClientOptions) -> None:
    if not region or not region.strip():
        raise ConfigurationError("region must be a non-empty string")
    if not credentials.access_key.strip() or not credentials.secret_key.strip():
        raise ConfigurationError("credentials must include non-empty access and secret keys")
    if options.max_attempts < 1:
        raise ConfigurationError("max_attempts must be >= 1")
    if options.connect_timeout_seconds <= 0 or options.read_timeout_seconds <= 0:
        raise ConfigurationError("timeouts must be positive")


def build_boto3_config(region: str, options: ClientOptions) -> Config:
    """Translate ``ClientOptions`` into a botocore ``Config``."""
    checksum_mode = "when_supported" if options.chunked_encoding else "when_required"
    return Config(
        region_name=region,
        signature_version="s3v4",
        s3={
            "addressing_style": "path" if options.path_style else "virtual",
            # Sign the full body when chunked uploads are disabled.
            "payload_signing_enabled": not options.chunked_encoding,
        },
        request_checksum_calculation=checksum_mode,
        response_checksum_validation="when_required",
        connect_timeout=options.connect_timeout_seconds,
        read_timeout=options.read_timeout_seconds,
        retries={"max_attempts": options.max_attempts, "mode": "standard"},
    )


def build_client(
    endpoint: str,
    region: str,
    credentials: Credentials | None = None,
    options: ClientOptions | None = None,
) -> Any:
    """Build a boto3 S3 client bound to ``endpoint``.

    No request is sent while building. Raises ``ConfigurationError`` when the
    endpoint, region or credentials are unusable.
    """
    credentials = credentials or Credentials()
    options = options or ClientOptions()
    parsed = parse_endpoint(endpoint)
    _validate_common(region, credentials, options)

    try:
        client = boto3.session.Session().client(
            "s3",
            endpoint_url=parsed.url,
            region_name=region,
            aws_access_key_id=credentials.access_key,
            aws_secret_access_key=credentials.secret_key,
            config=build_boto3_config(region, options),
        )
    except ValueError as exc:
        raise ConfigurationError(f"invalid client configuration: {exc}") from exc

    logger.debug(
        "Built boto3 S3 client",
        extra={"endpoint": parsed.url, "region": region, "path_style": options.path_style},
    )
    return client


def build_minio_client(
    endpoint: str,
    region: str,
    credentials: Credentials | None = None,
    options: ClientOptions | None = None,
) -> Any:
    """Build a MinIO SDK client bound to ``endpoint``.

    MinIO signs the whole payload and never sends ``aws-chunked`` bodies, so
    requesting chunked encoding is rejected.
    """
    credentials = credentials or Credentials()
    options = options or ClientOptions()
    parsed = parse_endpoint(endpoint)
    _validate_common(region, credentials, options)
    if options.chunked_encoding:
        raise ConfigurationError("the MinIO client does not support chunked encoding")

    try:
        from minio import Minio
    except ImportError as exc:  # pragma: no cover - depends on optional extras
        raise MissingDependencyError(
            "MinIO support requires optional dependency 'minio'. "
            "Install with `s3-emulator-harness[minio]`."
        ) from exc

    try:
        client = Minio(
            endpoint=parsed.netloc,
            access_key=credentials.access_key,
            secret_key=credentials.secret_key,
            secure=parsed.secure,
            region=region,
        )
    except ValueError as exc:
        raise ConfigurationError(f"invalid client configuration: {exc}") from exc

    if not options.path_style:
        client.enable_virtual_style_endpoint()

    logger.debug(
        "Built MinIO client",
        extra={"endpoint": parsed.url, "region": region, "path_style": options.path_style},
    )
    return client
