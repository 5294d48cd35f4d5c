"""``${VAR}`` and ``${VAR:-default}`` substitution in parsed appsettings."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Any

from s3_harness.config.errors import PlaceholderResolutionError

PLACEHOLDER_PATTERN = re.compile(
    r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}"
)


def resolve_placeholders(
    data: dict[str, Any],
    *,
    strict: bool = True,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``data`` with placeholders in string values replaced.

    A variable that is unset falls back to its ``:-`` default. Without a
    default, ``strict`` decides between raising ``PlaceholderResolutionError``
    and leaving the placeholder text in place. Dicts and lists are walked
    recursively; error paths look like ``emulator.image`` or ``items[0].ref``.
    """
    source = os.environ if environ is None else environ
    return _walk(data, "", strict, source)


def _walk(node: Any, path: str, strict: bool, environ: Mapping[str, str]) -> Any:
    if isinstance(node, dict):
        return {
            key: _walk(value, f"{path}.{key}" if path else str(key), strict, environ)
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [_walk(item, f"{path}[{index}]", strict, environ) for index, item in enumerate(node)]
    if isinstance(node, str):
        return _substitute(node, path, strict, environ)
    return node


def _substitute(text: str, path: str, strict: bool, environ: Mapping[str, str]) -> str:
    def replace(match: re.Match[str]) -> str:
        value = environ.get(match.group("name"))
        if value is not None:
            return value
        if match.group("default") is not None:
            return match.group("default")
        if strict:
            raise PlaceholderResolutionError(match.group(0), path)
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text)
