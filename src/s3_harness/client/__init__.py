"""S3 client configuration and object-store adapters."""

from s3_harness.client.builder import (
    ClientOptions,
    Credentials,
    ParsedEndpoint,
    build_boto3_config,
    build_client,
    build_minio_client,
    parse_endpoint,
)
from s3_harness.client.store import (
    Boto3ObjectStore,
    BucketBootstrapResult,
    ListVariant,
    MinioObjectStore,
    ObjectStore,
    ObjectSummary,
    StorageAuthError,
    StorageError,
    StorageNotFoundError,
    StorageOperationError,
    StorageTransientError,
    create_store,
    list_with_variant,
)

__all__ = [
    "Boto3ObjectStore",
    "BucketBootstrapResult",
    "ClientOptions",
    "Credentials",
    "ListVariant",
    "MinioObjectStore",
    "ObjectStore",
    "ObjectSummary",
    "ParsedEndpoint",
    "StorageAuthError",
    "StorageError",
    "StorageNotFoundError",
    "StorageOperationError",
    "StorageTransientError",
    "build_boto3_config",
    "build_client",
    "build_minio_client",
    "create_store",
    "list_with_variant",
    "parse_endpoint",
]
