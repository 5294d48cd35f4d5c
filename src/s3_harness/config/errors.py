"""Errors raised while reading appsettings files."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from s3_harness.errors import ConfigurationError

if TYPE_CHECKING:
    from pydantic import ValidationError


class ConfigError(ConfigurationError):
    """Base exception for appsettings loading failures."""


class ConfigFileNotFoundError(ConfigError):
    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        super().__init__(
            f"Configuration file not found: {self.path} "
            "(set S3H_CONFIG_DIR or pass config_dir)"
        )


class ConfigValidationError(ConfigError):
    """Merged appsettings failed model validation.

    ``errors`` holds one ``{"loc": "section -> field", "msg": ...}`` entry per
    problem and ``sources`` the files that were merged.
    """

    def __init__(
        self,
        errors: list[dict[str, str]],
        sources: Sequence[str | Path] = (),
    ) -> None:
        self.errors = errors
        self.sources = [str(source) for source in sources]
        lines = [
            f"  - {err.get('loc') or '<root>'}: {err.get('msg', 'invalid')}" for err in errors
        ]
        origin = f" ({', '.join(self.sources)})" if self.sources else ""
        super().__init__(f"Configuration validation failed{origin}:\n" + "\n".join(lines))

    @classmethod
    def from_pydantic(
        cls,
        exc: ValidationError,
        sources: Sequence[str | Path] = (),
    ) -> ConfigValidationError:
        errors = [
            {"loc": " -> ".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in exc.errors()
        ]
        return cls(errors, sources)


class PlaceholderResolutionError(ConfigError):
    def __init__(self, placeholder: str, key_path: str) -> None:
        self.placeholder = placeholder
        self.key_path = key_path
        super().__init__(
            f"Cannot resolve placeholder '{placeholder}' at '{key_path}': "
            "environment variable not set and no default given"
        )
