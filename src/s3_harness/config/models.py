"""Typed configuration models with Pydantic validation."""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

DEFAULT_REGION = "eu-central-1"
DEFAULT_ACCESS_KEY = "LocalStackDummyAccessKey"
DEFAULT_SECRET_KEY = "LocalStackDummySecretKey"


class ServiceSettings(BaseModel):
    """Identification used in log records."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="s3-emulator-harness", min_length=1, description="Service name")
    version: str = Field(default="0.1.0", min_length=1, description="Service version")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    format: Literal["json", "text"] = Field(default="text", description="Log output format")
    sampling: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Optional sampling ratio for low-severity logs",
    )


class EmulatorSettings(BaseModel):
    """Containerised S3 emulator settings."""

    model_config = ConfigDict(frozen=True)

    image: str = Field(
        default="localstack/localstack:3.8",
        min_length=1,
        description="Emulator container image reference",
    )
    port: int = Field(default=4566, ge=1, le=65535, description="Port exposed by the container")
    region: str = Field(default=DEFAULT_REGION, min_length=1, description="DEFAULT_REGION value")
    services: str = Field(default="s3", min_length=1, description="SERVICES value")
    ready_pattern: str = Field(
        default=r"Ready\.",
        min_length=1,
        description="Regex matched against container logs to detect readiness",
    )
    startup_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Maximum time to wait for the readiness log line",
    )

    @field_validator("ready_pattern")
    @classmethod
    def validate_ready_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression: {exc}") from exc
        return value


class ClientSettings(BaseModel):
    """S3 client settings used against the emulator."""

    model_config = ConfigDict(frozen=True)

    region: str = Field(default=DEFAULT_REGION, min_length=1, description="Signing region")
    access_key: SecretStr = Field(
        default=SecretStr(DEFAULT_ACCESS_KEY), min_length=1, description="Access key"
    )
    secret_key: SecretStr = Field(
        default=SecretStr(DEFAULT_SECRET_KEY), min_length=1, description="Secret key"
    )
    sdk: Literal["boto3", "minio"] = Field(default="boto3", description="Client SDK")
    path_style: bool = Field(default=True, description="Use path-style bucket addressing")
    chunked_encoding: bool = Field(
        default=False,
        description="Allow aws-chunked transfer encoding on uploads",
    )
    connect_timeout_seconds: float = Field(default=5.0, gt=0.0, description="Connect timeout")
    read_timeout_seconds: float = Field(default=30.0, gt=0.0, description="Read timeout")
    max_attempts: int = Field(
        default=1,
        ge=1,
        description="Total SDK attempts per request, 1 disables retries",
    )


class ScenarioSettings(BaseModel):
    """Defaults for per-test listing scenarios."""

    model_config = ConfigDict(frozen=True)

    bucket_prefix: str = Field(default="test-bucket", min_length=3, description="Bucket base name")
    key_prefix: str = Field(default="folder/", description="Object key prefix")
    fixture_content: str = Field(default="localstack", description="Fixture file content")
    upload_count: int = Field(default=3, ge=0, description="Objects uploaded per scenario")


class AppSettings(BaseModel):
    """Root harness settings."""

    model_config = ConfigDict(frozen=True)

    service: ServiceSettings = Field(default_factory=ServiceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    emulator: EmulatorSettings = Field(default_factory=EmulatorSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    scenario: ScenarioSettings = Field(default_factory=ScenarioSettings)

    @model_validator(mode="before")
    @classmethod
    def share_region(cls, data: Any) -> Any:
        """Let a region given in only one of ``emulator``/``client`` apply to both."""
        if not isinstance(data, dict):
            return data
        emulator = data.get("emulator") or {}
        client = data.get("client") or {}
        if not isinstance(emulator, dict) or not isinstance(client, dict):
            return data

        region = emulator.get("region") or client.get("region")
        if region is None:
            return data
        return {
            **data,
            "emulator": {"region": region, **emulator},
            "client": {"region": region, **client},
        }

    @model_validator(mode="after")
    def check_region_matches(self) -> AppSettings:
        if self.client.region != self.emulator.region:
            raise ValueError(
                f"client.region {self.client.region!r} must match "
                f"emulator.region {self.emulator.region!r}"
            )
        return self
