"""Layered appsettings loading: base file, environment overlay, placeholders."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from s3_harness.config.errors import ConfigFileNotFoundError, ConfigValidationError
from s3_harness.config.models import AppSettings
from s3_harness.config.placeholders import resolve_placeholders

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV_VAR = "S3H_CONFIG_DIR"
ENV_VAR_NAME = "S3H_ENV"
DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_ENV = "development"
BASE_FILE_NAME = "appsettings.json"


@dataclass(frozen=True, slots=True)
class ConfigLayers:
    """Files that make up one configuration, lowest precedence first."""

    config_dir: Path
    env: str
    files: tuple[Path, ...]

    @property
    def base_file(self) -> Path:
        return self.files[0]

    @property
    def overlay_file(self) -> Path | None:
        return self.files[1] if len(self.files) > 1 else None


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """Pick the config directory: argument, then ``S3H_CONFIG_DIR``, then ``./config``."""
    if config_dir is not None:
        return Path(config_dir)
    from_env = os.environ.get(CONFIG_DIR_ENV_VAR, "").strip()
    return Path(from_env) if from_env else DEFAULT_CONFIG_DIR


def resolve_env(env: str | None = None) -> str:
    if env is not None and env.strip():
        return env.strip()
    return os.environ.get(ENV_VAR_NAME, "").strip() or DEFAULT_ENV


def discover_layers(
    config_dir: Path | str | None = None,
    env: str | None = None,
) -> ConfigLayers:
    """Locate ``appsettings.json`` and the optional ``appsettings.<env>.json``.

    Raises ``ConfigFileNotFoundError`` when the base file is missing; a
    missing overlay is not an error.
    """
    directory = resolve_config_dir(config_dir)
    environment = resolve_env(env)

    base = directory / BASE_FILE_NAME
    if not base.is_file():
        raise ConfigFileNotFoundError(base)

    overlay = directory / f"appsettings.{environment}.json"
    files = (base, overlay) if overlay.is_file() else (base,)
    return ConfigLayers(config_dir=directory, env=environment, files=files)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigFileNotFoundError(path)
    with path.open(encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [{"loc": "", "msg": "top-level JSON value must be an object"}],
            sources=[path],
        )
    return data


def read_layers(layers: ConfigLayers) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for path in layers.files:
        merged = deep_merge(merged, load_json_file(path))
    return merged


def load_config(
    *,
    config_dir: Path | str | None = None,
    env: str | None = None,
    strict_placeholders: bool = True,
) -> AppSettings:
    """Load and validate harness appsettings.

    ``appsettings.<env>.json`` overrides ``appsettings.json`` key by key,
    then ``${VAR}``/``${VAR:-default}`` placeholders are filled from the
    process environment. ``env`` defaults to ``S3H_ENV`` or ``development``.

    Raises:
        ConfigFileNotFoundError: ``appsettings.json`` is missing.
        PlaceholderResolutionError: a placeholder has no value and
            ``strict_placeholders`` is set.
        ConfigValidationError: the merged document fails validation.
    """
    layers = discover_layers(config_dir, env)
    raw = resolve_placeholders(read_layers(layers), strict=strict_placeholders)

    try:
        settings = AppSettings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigValidationError.from_pydantic(exc, layers.files) from exc

    logger.debug(
        "Configuration loaded",
        extra={"config_env": layers.env, "config_files": [str(path) for path in layers.files]},
    )
    return settings
