"""Per-test listing scenarios: create bucket, upload fixtures, verify listings."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from uuid import uuid4

from s3_harness.client.store import (
    ListVariant,
    ObjectStore,
    ObjectSummary,
    list_with_variant,
)
from s3_harness.errors import ConfigurationError, ListingMismatchError, ScenarioStateError

logger = logging.getLogger(__name__)

FIXTURE_FILE_NAME = "test.txt"
DEFAULT_FIXTURE_CONTENT = b"localstack"

_BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_IP_ADDRESS_PATTERN = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def validate_bucket_name(name: str) -> str:
    """Check ``name`` against S3 bucket naming rules."""
    if (
        not _BUCKET_NAME_PATTERN.match(name)
        or ".." in name
        or _IP_ADDRESS_PATTERN.match(name)
    ):
        raise ConfigurationError(f"invalid bucket name: {name!r}")
    return name


def unique_bucket_name(base: str = "test-bucket") -> str:
    """Return ``<base>-<8 hex chars>`` so each test case owns its bucket."""
    normalized = base.strip().lower()
    return validate_bucket_name(f"{normalized[:54]}-{uuid4().hex[:8]}")


class ScenarioRunner:
    """Drive one listing scenario against an injected store and bucket.

    A runner belongs to a single test case: it writes its fixture file into
    ``workdir`` and remembers every key it uploads, grouped by prefix, so
    that listings can be checked for completeness.
    """

    def __init__(
        self,
        store: ObjectStore,
        bucket: str,
        workdir: Path,
        *,
        content: bytes = DEFAULT_FIXTURE_CONTENT,
    ) -> None:
        self._store = store
        self._bucket = validate_bucket_name(bucket)
        self._workdir = Path(workdir)
        self._content = content
        self._fixture_path: Path | None = None
        self._uploaded: dict[str, list[str]] = {}

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def fixture_path(self) -> Path | None:
        return self._fixture_path

    def uploaded_keys(self, prefix: str) -> list[str]:
        return list(self._uploaded.get(prefix, []))

    def setup(self) -> Path:
        """Create the bucket and write the fixture file."""
        result = self._store.create_bucket(self._bucket)
        logger.info(
            "Test bucket ready",
            extra={"bucket_name": result.bucket, "bucket_created": result.created},
        )

        self._workdir.mkdir(parents=True, exist_ok=True)
        path = self._workdir / FIXTURE_FILE_NAME
        path.write_bytes(self._content)
        self._fixture_path = path
        logger.info("Test file created", extra={"path": str(path.resolve())})
        return path

    def upload_fixtures(self, prefix: str, count: int) -> list[str]:
        """Upload ``count`` copies of the fixture file under ``prefix``."""
        if count < 0:
            raise ValueError("count must be >= 0")
        if self._fixture_path is None:
            raise ScenarioStateError("setup() must run before upload_fixtures()")

        recorded = self._uploaded.setdefault(prefix, [])
        keys: list[str] = []
        for _ in range(count):
            key = f"{prefix}{uuid4()}.txt"
            if key in recorded:
                raise ScenarioStateError(f"generated key collided: {key}")
            self._store.put_object(self._bucket, key, self._fixture_path)
            recorded.append(key)
            keys.append(key)
            logger.info("File uploaded", extra={"key": key})
        return keys

    def list_keys(self, prefix: str, variant: ListVariant) -> list[str]:
        return [summary.key for summary in self._list(prefix, variant)]

    def list_and_verify(self, prefix: str, variant: ListVariant) -> list[ObjectSummary]:
        """List ``prefix`` and require every key uploaded under it."""
        summaries = self._list(prefix, variant)
        expected = set(self._uploaded.get(prefix, []))
        actual = {summary.key for summary in summaries}

        if not expected <= actual:
            raise ListingMismatchError(
                bucket=self._bucket,
                prefix=prefix,
                variant=variant.value,
                expected=expected,
                actual=actual,
            )
        return summaries

    def verify_variants_agree(self, prefix: str) -> set[str]:
        """Require V1 and V2 listings of ``prefix`` to return the same key set."""
        v1_keys = set(self.list_keys(prefix, ListVariant.V1))
        v2_keys = set(self.list_keys(prefix, ListVariant.V2))
        if v1_keys != v2_keys:
            raise ListingMismatchError(
                bucket=self._bucket,
                prefix=prefix,
                variant=f"{ListVariant.V2.value} vs {ListVariant.V1.value}",
                expected=v1_keys,
                actual=v2_keys,
            )
        return v1_keys

    def _list(self, prefix: str, variant: ListVariant) -> list[ObjectSummary]:
        summaries = list_with_variant(self._store, self._bucket, prefix, variant)
        logger.info(
            "Objects listed",
            extra={"variant": variant.value, "prefix": prefix, "count": len(summaries)},
        )
        return summaries
