"""Tests for S3 client construction."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from s3_harness.client import builder
from s3_harness.client import (
    ClientOptions,
    Credentials,
    build_boto3_config,
    build_client,
    build_minio_client,
    parse_endpoint,
)
from s3_harness.errors import ConfigurationError


class TestParseEndpoint:
    def test_accepts_http_with_port(self) -> None:
        parsed = parse_endpoint("http://127.0.0.1:49153/")

        assert parsed.url == "http://127.0.0.1:49153"
        assert parsed.host == "127.0.0.1"
        assert parsed.port == 49153
        assert parsed.netloc == "127.0.0.1:49153"
        assert parsed.secure is False

    def test_accepts_https_without_port(self) -> None:
        parsed = parse_endpoint("https://s3.local")

        assert parsed.netloc == "s3.local"
        assert parsed.secure is True

    @pytest.mark.parametrize(
        "endpoint",
        [
            "",
            "   ",
            "localhost:4566",
            "ftp://localhost:4566",
            "http://",
            "http://localhost:notaport",
            "http://localhost:4566/bucket",
            "http://localhost:4566?x=1",
        ],
    )
    def test_rejects_malformed_endpoints(self, endpoint: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_endpoint(endpoint)


class TestBuildClient:
    def test_binds_endpoint_region_and_emulator_options(self) -> None:
        client = build_client("http://localhost:4566", "eu-central-1")

        assert client.meta.endpoint_url == "http://localhost:4566"
        assert client.meta.region_name == "eu-central-1"
        assert client.meta.config.s3["addressing_style"] == "path"
        assert client.meta.config.s3["payload_signing_enabled"] is True
        assert client.meta.config.request_checksum_calculation == "when_required"
        assert client.meta.config.signature_version == "s3v4"

    def test_uses_given_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        session = Mock()
        monkeypatch.setattr(builder.boto3.session, "Session", Mock(return_value=session))

        build_client(
            "http://localhost:4566",
            "eu-central-1",
            Credentials(access_key="LocalStackDummyAccessKey", secret_key="secret"),
        )

        args, kwargs = session.client.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "http://localhost:4566"
        assert kwargs["aws_access_key_id"] == "LocalStackDummyAccessKey"
        assert kwargs["aws_secret_access_key"] == "secret"
        assert kwargs["config"].s3["addressing_style"] == "path"

    def test_sdk_value_error_becomes_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        session = Mock()
        session.client.side_effect = ValueError("Invalid endpoint: http://localhost:4566")
        monkeypatch.setattr(builder.boto3.session, "Session", Mock(return_value=session))

        with pytest.raises(ConfigurationError, match="Invalid endpoint"):
            build_client("http://localhost:4566", "eu-central-1")

    def test_invalid_endpoint_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="malformed endpoint"):
            build_client("not a url", "eu-central-1")

    def test_empty_region_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="region"):
            build_client("http://localhost:4566", " ")

    def test_blank_credentials_raise_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="credentials"):
            build_client("http://localhost:4566", "eu-central-1", Credentials("", ""))

    def test_zero_attempts_raise_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="max_attempts"):
            build_client(
                "http://localhost:4566",
                "eu-central-1",
                options=ClientOptions(max_attempts=0),
            )


def test_boto3_config_allows_chunked_uploads_when_requested() -> None:
    config = build_boto3_config(
        "eu-central-1",
        ClientOptions(path_style=False, chunked_encoding=True, max_attempts=3),
    )

    assert config.s3 == {"addressing_style": "virtual", "payload_signing_enabled": False}
    assert config.request_checksum_calculation == "when_supported"
    assert config.retries == {"max_attempts": 3, "mode": "standard"}


def test_credentials_repr_hides_secret() -> None:
    assert "secret-value" not in repr(Credentials("access", "secret-value"))


class TestBuildMinioClient:
    def test_rejects_chunked_encoding(self) -> None:
        with pytest.raises(ConfigurationError, match="chunked"):
            build_minio_client(
                "http://localhost:4566",
                "eu-central-1",
                options=ClientOptions(chunked_encoding=True),
            )

    def test_rejects_malformed_endpoint(self) -> None:
        with pytest.raises(ConfigurationError):
            build_minio_client("localhost", "eu-central-1")

    def test_builds_minio_client(self) -> None:
        minio = pytest.importorskip("minio")

        client = build_minio_client("http://localhost:4566", "eu-central-1")

        assert isinstance(client, minio.Minio)
