"""Reusable fixtures for emulator-backed listing tests."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from s3_harness.client import ObjectStore
from s3_harness.config.resources import HarnessSettings
from s3_harness.errors import StartupTimeoutError
from s3_harness.scenario import ScenarioRunner
from s3_harness.session import HarnessSession

REPO_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


def _require_docker() -> None:
    docker = pytest.importorskip("docker")
    try:
        client = docker.from_env()
        client.ping()
    except Exception as exc:  # pragma: no cover - environment dependent
        pytest.skip(f"Docker is not available for integration tests: {exc}")


@pytest.fixture(scope="session")
def harness_session() -> Iterator[HarnessSession]:
    session = HarnessSession.from_config(
        os.getenv("S3H_CONFIG_DIR") or REPO_CONFIG_DIR,
        propagate_logs=True,
    )

    if not session.uses_external_endpoint:
        _require_docker()
        pytest.importorskip("testcontainers.core.container")

    try:
        session.start()
    except StartupTimeoutError:
        raise
    except Exception as exc:  # pragma: no cover - environment dependent
        pytest.skip(f"Could not start S3 emulator container: {exc}")

    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def harness_settings(harness_session: HarnessSession) -> HarnessSettings:
    return harness_session.settings


@pytest.fixture
def object_store(harness_session: HarnessSession) -> Iterator[ObjectStore]:
    store = harness_session.open_store()
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def minio_object_store(harness_session: HarnessSession) -> Iterator[ObjectStore]:
    pytest.importorskip("minio")
    store = harness_session.open_store(sdk="minio")
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def scenario_runner(
    harness_session: HarnessSession,
    object_store: ObjectStore,
    tmp_path: Path,
    request: pytest.FixtureRequest,
) -> Iterator[ScenarioRunner]:
    with harness_session.scenario(request.node.name, object_store, tmp_path) as runner:
        yield runner


@pytest.fixture
def minio_scenario_runner(
    harness_session: HarnessSession,
    minio_object_store: ObjectStore,
    tmp_path: Path,
    request: pytest.FixtureRequest,
) -> Iterator[ScenarioRunner]:
    with harness_session.scenario(request.node.name, minio_object_store, tmp_path) as runner:
        yield runner
