"""Contract-verification harness for S3 clients against a local emulator."""

from s3_harness.client import (
    ClientOptions,
    Credentials,
    ListVariant,
    ObjectStore,
    ObjectSummary,
    StorageError,
    build_client,
    create_store,
)
from s3_harness.config.resources import (
    ClientSettings,
    EmulatorSettings,
    HarnessSettings,
    ScenarioSettings,
)
from s3_harness.emulator import EmulatorInstance, EmulatorState
from s3_harness.errors import (
    ConfigurationError,
    EmulatorStateError,
    HarnessError,
    ListingMismatchError,
    MissingDependencyError,
    ScenarioStateError,
    StartupTimeoutError,
)
from s3_harness.scenario import ScenarioRunner, unique_bucket_name
from s3_harness.session import HarnessSession

__all__ = [
    "ClientOptions",
    "ClientSettings",
    "ConfigurationError",
    "Credentials",
    "EmulatorInstance",
    "EmulatorSettings",
    "EmulatorState",
    "EmulatorStateError",
    "HarnessError",
    "HarnessSession",
    "HarnessSettings",
    "ListVariant",
    "ListingMismatchError",
    "MissingDependencyError",
    "ObjectStore",
    "ObjectSummary",
    "ScenarioRunner",
    "ScenarioSettings",
    "ScenarioStateError",
    "StartupTimeoutError",
    "StorageError",
    "build_client",
    "create_store",
    "unique_bucket_name",
]
