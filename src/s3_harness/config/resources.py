"""Runtime settings consumed by the emulator, client and scenario helpers."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from s3_harness.config.models import (
    DEFAULT_ACCESS_KEY,
    DEFAULT_REGION,
    DEFAULT_SECRET_KEY,
)
from s3_harness.errors import ConfigurationError

if TYPE_CHECKING:
    from s3_harness.config.models import AppSettings


@dataclass(slots=True)
class EmulatorSettings:
    image: str = "localstack/localstack:3.8"
    port: int = 4566
    region: str = DEFAULT_REGION
    services: str = "s3"
    ready_pattern: str = r"Ready\."
    startup_timeout_seconds: float = 10.0

    def container_env(self) -> dict[str, str]:
        """Environment passed to the emulator container."""
        return {"SERVICES": self.services, "DEFAULT_REGION": self.region}


@dataclass(slots=True)
class ClientSettings:
    region: str = DEFAULT_REGION
    access_key: str = DEFAULT_ACCESS_KEY
    secret_key: str = DEFAULT_SECRET_KEY
    sdk: Literal["boto3", "minio"] = "boto3"
    path_style: bool = True
    chunked_encoding: bool = False
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 30.0
    max_attempts: int = 1


@dataclass(slots=True)
class ScenarioSettings:
    bucket_prefix: str = "test-bucket"
    key_prefix: str = "folder/"
    fixture_content: bytes = b"localstack"
    upload_count: int = 3


@dataclass(slots=True)
class HarnessSettings:
    emulator: EmulatorSettings = field(default_factory=EmulatorSettings)
    client: ClientSettings = field(default_factory=ClientSettings)
    scenario: ScenarioSettings = field(default_factory=ScenarioSettings)
    endpoint: str | None = None

    @classmethod
    def from_env(cls, prefix: str = "S3H_") -> HarnessSettings:
        """Build settings from environment variables.

        Expected variables:
        - S3H_S3_ENDPOINT (use an already running emulator, skip the container)
        - S3H_EMULATOR_IMAGE
        - S3H_EMULATOR_PORT
        - S3H_EMULATOR_SERVICES
        - S3H_EMULATOR_READY_PATTERN
        - S3H_EMULATOR_STARTUP_TIMEOUT_SECONDS
        - S3H_REGION
        - S3H_ACCESS_KEY
        - S3H_SECRET_KEY
        - S3H_CLIENT_SDK
        - S3H_CLIENT_PATH_STYLE
        - S3H_CLIENT_CHUNKED_ENCODING
        - S3H_CLIENT_CONNECT_TIMEOUT_SECONDS
        - S3H_CLIENT_READ_TIMEOUT_SECONDS
        - S3H_CLIENT_MAX_ATTEMPTS
        - S3H_BUCKET_PREFIX
        - S3H_KEY_PREFIX
        - S3H_FIXTURE_CONTENT
        - S3H_UPLOAD_COUNT
        """

        def env(name: str) -> str | None:
            return os.getenv(f"{prefix}{name}")

        def env_bool(name: str, default: bool = False) -> bool:
            value = env(name)
            if value is None:
                return default
            return value.strip().lower() in {"1", "true", "yes", "on"}

        def env_number(name: str, default: Any, cast: Callable[[str], Any]) -> Any:
            value = env(name)
            if value is None or not value.strip():
                return default
            try:
                return cast(value.strip())
            except ValueError as exc:
                raise ConfigurationError(
                    f"{prefix}{name} is not a valid number: {value!r}"
                ) from exc

        region = env("REGION") or DEFAULT_REGION

        emulator = EmulatorSettings(
            image=env("EMULATOR_IMAGE") or "localstack/localstack:3.8",
            port=env_number("EMULATOR_PORT", 4566, int),
            region=region,
            services=env("EMULATOR_SERVICES") or "s3",
            ready_pattern=env("EMULATOR_READY_PATTERN") or r"Ready\.",
            startup_timeout_seconds=env_number("EMULATOR_STARTUP_TIMEOUT_SECONDS", 10.0, float),
        )

        sdk = (env("CLIENT_SDK") or "boto3").strip().lower()
        if sdk not in {"boto3", "minio"}:
            raise ConfigurationError(
                f"{prefix}CLIENT_SDK must be 'boto3' or 'minio', got {sdk!r}"
            )

        client = ClientSettings(
            region=region,
            access_key=env("ACCESS_KEY") or DEFAULT_ACCESS_KEY,
            secret_key=env("SECRET_KEY") or DEFAULT_SECRET_KEY,
            sdk=sdk,  # type: ignore[arg-type]
            path_style=env_bool("CLIENT_PATH_STYLE", True),
            chunked_encoding=env_bool("CLIENT_CHUNKED_ENCODING", False),
            connect_timeout_seconds=env_number("CLIENT_CONNECT_TIMEOUT_SECONDS", 5.0, float),
            read_timeout_seconds=env_number("CLIENT_READ_TIMEOUT_SECONDS", 30.0, float),
            max_attempts=env_number("CLIENT_MAX_ATTEMPTS", 1, int),
        )

        fixture_content = env("FIXTURE_CONTENT")
        scenario = ScenarioSettings(
            bucket_prefix=env("BUCKET_PREFIX") or "test-bucket",
            key_prefix=env("KEY_PREFIX") if env("KEY_PREFIX") is not None else "folder/",
            fixture_content=(
                fixture_content.encode("utf-8") if fixture_content is not None else b"localstack"
            ),
            upload_count=env_number("UPLOAD_COUNT", 3, int),
        )

        return cls(
            emulator=emulator,
            client=client,
            scenario=scenario,
            endpoint=env("S3_ENDPOINT") or None,
        )

    @classmethod
    def from_app_settings(
        cls,
        app_settings: AppSettings,
        *,
        endpoint: str | None = None,
    ) -> HarnessSettings:
        """Convert config.AppSettings into runtime HarnessSettings.

        The client always signs for the region the emulator is started with.
        """
        emulator = app_settings.emulator
        client = app_settings.client
        scenario = app_settings.scenario
        if client.region != emulator.region:
            raise ConfigurationError(
                f"client region {client.region!r} does not match emulator region "
                f"{emulator.region!r}"
            )

        return cls(
            emulator=EmulatorSettings(
                image=emulator.image,
                port=emulator.port,
                region=emulator.region,
                services=emulator.services,
                ready_pattern=emulator.ready_pattern,
                startup_timeout_seconds=emulator.startup_timeout_seconds,
            ),
            client=ClientSettings(
                region=emulator.region,
                access_key=client.access_key.get_secret_value(),
                secret_key=client.secret_key.get_secret_value(),
                sdk=client.sdk,
                path_style=client.path_style,
                chunked_encoding=client.chunked_encoding,
                connect_timeout_seconds=client.connect_timeout_seconds,
                read_timeout_seconds=client.read_timeout_seconds,
                max_attempts=client.max_attempts,
            ),
            scenario=ScenarioSettings(
                bucket_prefix=scenario.bucket_prefix,
                key_prefix=scenario.key_prefix,
                fixture_content=scenario.fixture_content.encode("utf-8"),
                upload_count=scenario.upload_count,
            ),
            endpoint=endpoint or None,
        )
