"""Configuration loading and validation module."""

from s3_harness.config.errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    PlaceholderResolutionError,
)
from s3_harness.config.loader import (
    ConfigLayers,
    deep_merge,
    discover_layers,
    load_config,
    resolve_config_dir,
    resolve_env,
)
from s3_harness.config.models import (
    AppSettings,
    ClientSettings,
    EmulatorSettings,
    LoggingSettings,
    ScenarioSettings,
    ServiceSettings,
)

__all__ = [
    "AppSettings",
    "ClientSettings",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigLayers",
    "ConfigValidationError",
    "EmulatorSettings",
    "LoggingSettings",
    "PlaceholderResolutionError",
    "ScenarioSettings",
    "ServiceSettings",
    "deep_merge",
    "discover_layers",
    "load_config",
    "resolve_config_dir",
    "resolve_env",
]
