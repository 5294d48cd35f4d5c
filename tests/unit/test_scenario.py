"""Tests for the listing scenario runner."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import pytest

from s3_harness.client import (
    BucketBootstrapResult,
    ListVariant,
    ObjectStore,
    ObjectSummary,
    StorageTransientError,
)
from s3_harness.errors import ConfigurationError, ListingMismatchError, ScenarioStateError
from s3_harness.scenario import (
    FIXTURE_FILE_NAME,
    ScenarioRunner,
    unique_bucket_name,
    validate_bucket_name,
)

_KEY_PATTERN = re.compile(
    r"^folder/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\.txt$"
)


class InMemoryStore:
    """Minimal ``ObjectStore`` keeping objects in dictionaries."""

    def __init__(self) -> None:
        self.buckets: dict[str, dict[str, bytes]] = {}
        self.calls: list[str] = []

    def create_bucket(self, bucket: str) -> BucketBootstrapResult:
        self.calls.append("create_bucket")
        if bucket in self.buckets:
            return BucketBootstrapResult(bucket=bucket, exists=True, created=False)
        self.buckets[bucket] = {}
        return BucketBootstrapResult(bucket=bucket, exists=False, created=True)

    def put_object(self, bucket: str, key: str, path: Path) -> None:
        self.calls.append("put_object")
        self.buckets[bucket][key] = Path(path).read_bytes()

    def list_objects(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        self.calls.append("list_objects")
        return self._summaries(bucket, prefix)

    def list_objects_v2(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        self.calls.append("list_objects_v2")
        return self._summaries(bucket, prefix)

    def close(self) -> None:
        self.calls.append("close")

    def _summaries(self, bucket: str, prefix: str) -> list[ObjectSummary]:
        return [
            ObjectSummary(key=key, size=len(data))
            for key, data in sorted(self.buckets[bucket].items())
            if key.startswith(prefix)
        ]


class DroppingStore(InMemoryStore):
    """Store whose V2 listing loses the first key."""

    def list_objects_v2(self, bucket: str, prefix: str = "") -> list[ObjectSummary]:
        return super().list_objects_v2(bucket, prefix)[1:]


class FailingUploadStore(InMemoryStore):
    def put_object(self, bucket: str, key: str, path: Path) -> None:
        raise StorageTransientError("put_object", bucket, key, "connection reset")


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def runner(store: InMemoryStore, tmp_path: Path) -> ScenarioRunner:
    scenario = ScenarioRunner(store, "test-bucket", tmp_path)
    scenario.setup()
    return scenario


def test_in_memory_store_satisfies_protocol(store: InMemoryStore) -> None:
    assert isinstance(store, ObjectStore)


class TestSetup:
    def test_creates_bucket_and_fixture_file(self, store: InMemoryStore, tmp_path: Path) -> None:
        scenario = ScenarioRunner(store, "test-bucket", tmp_path / "work")

        path = scenario.setup()

        assert "test-bucket" in store.buckets
        assert path == tmp_path / "work" / FIXTURE_FILE_NAME
        assert path.read_bytes() == b"localstack"
        assert scenario.fixture_path == path

    def test_setup_logs_bucket_and_fixture_at_info(
        self,
        store: InMemoryStore,
        tmp_path: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.INFO, logger="s3_harness.scenario")

        path = ScenarioRunner(store, "test-bucket", tmp_path).setup()

        records = {record.getMessage(): record for record in caplog.records}
        bucket_record = records["Test bucket ready"]
        assert bucket_record.bucket_name == "test-bucket"
        assert bucket_record.bucket_created is True
        assert records["Test file created"].path == str(path.resolve())

    def test_setup_is_idempotent_for_existing_bucket(
        self, store: InMemoryStore, tmp_path: Path
    ) -> None:
        store.buckets["test-bucket"] = {"folder/existing.txt": b"x"}

        ScenarioRunner(store, "test-bucket", tmp_path).setup()

        assert store.buckets["test-bucket"] == {"folder/existing.txt": b"x"}

    def test_custom_content(self, store: InMemoryStore, tmp_path: Path) -> None:
        path = ScenarioRunner(store, "test-bucket", tmp_path, content=b"payload").setup()

        assert path.read_bytes() == b"payload"

    def test_rejects_invalid_bucket_name(self, store: InMemoryStore, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            ScenarioRunner(store, "Test_Bucket", tmp_path)


class TestUploadFixtures:
    def test_uploads_count_unique_keys_under_prefix(
        self, runner: ScenarioRunner, store: InMemoryStore
    ) -> None:
        keys = runner.upload_fixtures("folder/", 3)

        assert len(keys) == 3
        assert len(set(keys)) == 3
        assert all(_KEY_PATTERN.match(key) for key in keys)
        assert set(store.buckets["test-bucket"]) == set(keys)
        assert all(data == b"localstack" for data in store.buckets["test-bucket"].values())
        assert runner.uploaded_keys("folder/") == keys

    def test_zero_count_uploads_nothing(self, runner: ScenarioRunner, store: InMemoryStore) -> None:
        assert runner.upload_fixtures("folder/", 0) == []
        assert store.buckets["test-bucket"] == {}

    def test_negative_count_rejected(self, runner: ScenarioRunner) -> None:
        with pytest.raises(ValueError):
            runner.upload_fixtures("folder/", -1)

    def test_requires_setup(self, store: InMemoryStore, tmp_path: Path) -> None:
        scenario = ScenarioRunner(store, "test-bucket", tmp_path)

        with pytest.raises(ScenarioStateError):
            scenario.upload_fixtures("folder/", 1)

    def test_upload_failure_surfaces(self, tmp_path: Path) -> None:
        scenario = ScenarioRunner(FailingUploadStore(), "test-bucket", tmp_path)
        scenario.setup()

        with pytest.raises(StorageTransientError):
            scenario.upload_fixtures("folder/", 3)

        assert scenario.uploaded_keys("folder/") == []


class TestListAndVerify:
    @pytest.mark.parametrize("variant", [ListVariant.V1, ListVariant.V2])
    def test_listing_contains_every_uploaded_key(
        self, runner: ScenarioRunner, store: InMemoryStore, variant: ListVariant
    ) -> None:
        keys = runner.upload_fixtures("folder/", 3)

        summaries = runner.list_and_verify("folder/", variant)

        assert len(summaries) >= 3
        assert {summary.key for summary in summaries} >= set(keys)
        expected_call = "list_objects" if variant is ListVariant.V1 else "list_objects_v2"
        assert store.calls[-1] == expected_call

    def test_full_scenario_emits_records_at_debug(
        self,
        store: InMemoryStore,
        tmp_path: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="s3_harness")
        scenario = ScenarioRunner(store, "test-bucket", tmp_path)
        scenario.setup()

        keys = scenario.upload_fixtures("folder/", 2)
        scenario.verify_variants_agree("folder/")

        uploaded = [r.key for r in caplog.records if r.getMessage() == "File uploaded"]
        listed = [r.variant for r in caplog.records if r.getMessage() == "Objects listed"]
        assert uploaded == keys
        assert listed == [ListVariant.V1.value, ListVariant.V2.value]

    def test_listing_is_scoped_to_prefix(self, runner: ScenarioRunner) -> None:
        runner.upload_fixtures("folder/", 2)
        other = runner.upload_fixtures("other/", 2)

        keys = runner.list_keys("folder/", ListVariant.V2)

        assert len(keys) == 2
        assert not set(keys) & set(other)

    def test_empty_prefix_lists_no_keys(self, runner: ScenarioRunner) -> None:
        runner.upload_fixtures("folder/", 0)

        assert runner.list_and_verify("folder/", ListVariant.V1) == []
        assert runner.list_and_verify("folder/", ListVariant.V2) == []

    def test_missing_key_raises_mismatch(
        self, runner: ScenarioRunner, store: InMemoryStore
    ) -> None:
        keys = runner.upload_fixtures("folder/", 3)
        del store.buckets["test-bucket"][keys[1]]

        with pytest.raises(ListingMismatchError) as exc_info:
            runner.list_and_verify("folder/", ListVariant.V1)

        assert exc_info.value.missing == [keys[1]]
        assert f"- {keys[1]}" in str(exc_info.value)

    def test_extra_keys_do_not_fail(self, runner: ScenarioRunner, store: InMemoryStore) -> None:
        keys = runner.upload_fixtures("folder/", 1)
        store.buckets["test-bucket"]["folder/preexisting.txt"] = b"x"

        summaries = runner.list_and_verify("folder/", ListVariant.V2)

        assert {summary.key for summary in summaries} == {keys[0], "folder/preexisting.txt"}


class TestVariantsAgree:
    def test_v1_and_v2_return_same_keys(self, runner: ScenarioRunner) -> None:
        keys = runner.upload_fixtures("folder/", 3)

        assert runner.verify_variants_agree("folder/") == set(keys)

    def test_disagreement_raises(self, tmp_path: Path) -> None:
        scenario = ScenarioRunner(DroppingStore(), "test-bucket", tmp_path)
        scenario.setup()
        scenario.upload_fixtures("folder/", 2)

        with pytest.raises(ListingMismatchError) as exc_info:
            scenario.verify_variants_agree("folder/")

        assert len(exc_info.value.missing) == 1


class TestBucketNames:
    def test_unique_bucket_names_differ(self) -> None:
        first = unique_bucket_name("test-bucket")
        second = unique_bucket_name("test-bucket")

        assert first != second
        assert re.fullmatch(r"test-bucket-[0-9a-f]{8}", first)

    def test_long_base_is_truncated_to_valid_name(self) -> None:
        name = unique_bucket_name("b" * 80)

        assert len(name) == 63
        assert validate_bucket_name(name) == name

    @pytest.mark.parametrize(
        "name",
        ["ab", "UPPER-case", "bucket_name", "-leading", "trailing-", "a..b", "192.168.0.1"],
    )
    def test_invalid_names(self, name: str) -> None:
        with pytest.raises(ConfigurationError):
            validate_bucket_name(name)
