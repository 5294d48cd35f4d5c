"""Logging for harness runs.

Every record emitted through a handler installed by ``bootstrap_logging``
carries the run correlation fields: ``service`` and ``env`` fixed at
bootstrap, plus ``run_id``, ``scenario`` and ``bucket`` taken from the
context bound with ``scenario_scope`` / ``run_scope``.
"""

from __future__ import annotations

import contextvars
import json
import logging
import os
import random
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO
from uuid import uuid4

if TYPE_CHECKING:
    from s3_harness.config.models import AppSettings

_UNSET = object()

_RUN_ID_CTX: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "s3h_run_id", default=None
)
_SCENARIO_CTX: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "s3h_scenario", default=None
)
_BUCKET_CTX: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "s3h_bucket", default=None
)

CONTEXT_FIELDS = ("service", "env", "run_id", "scenario", "bucket")

# Attributes every LogRecord has; anything else came from ``extra=``.
_STANDARD_RECORD_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


@dataclass(frozen=True, slots=True)
class ScenarioContext:
    run_id: str | None = None
    scenario: str | None = None
    bucket: str | None = None


def new_run_id() -> str:
    """``<UTC timestamp>-<6 hex chars>``, sortable by start time."""
    return f"{datetime.now(tz=UTC):%Y%m%dT%H%M%SZ}-{uuid4().hex[:6]}"


def get_scenario_context() -> ScenarioContext:
    return ScenarioContext(
        run_id=_RUN_ID_CTX.get(),
        scenario=_SCENARIO_CTX.get(),
        bucket=_BUCKET_CTX.get(),
    )


@contextmanager
def scenario_scope(
    *,
    run_id: str | None | object = _UNSET,
    scenario: str | None | object = _UNSET,
    bucket: str | None | object = _UNSET,
) -> Iterator[ScenarioContext]:
    """Bind the given fields for the duration of the block.

    Omitted fields keep their outer value; blank strings unbind.
    """
    bound: list[tuple[contextvars.ContextVar[str | None], contextvars.Token[str | None]]] = []
    for context_var, value in (
        (_RUN_ID_CTX, run_id),
        (_SCENARIO_CTX, scenario),
        (_BUCKET_CTX, bucket),
    ):
        if value is not _UNSET:
            bound.append((context_var, context_var.set(_clean(value))))

    try:
        yield get_scenario_context()
    finally:
        for context_var, token in reversed(bound):
            context_var.reset(token)


@contextmanager
def run_scope(run_id: str | None = None) -> Iterator[str]:
    """Bind ``run_id`` (a fresh one when omitted) and yield it."""
    resolved = _clean(run_id) or new_run_id()
    with scenario_scope(run_id=resolved):
        yield resolved


class ScenarioContextFilter(logging.Filter):
    """Copy the correlation fields onto each record passing the handler."""

    def __init__(self, *, service: str, env: str) -> None:
        super().__init__()
        self._service = service
        self._env = env

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_scenario_context()
        record.service = self._service
        record.env = self._env
        record.run_id = context.run_id
        record.scenario = context.scenario
        record.bucket = context.bucket
        return True


class SamplingFilter(logging.Filter):
    """Keep a ``sampling`` share of records below WARNING."""

    def __init__(self, sampling: float) -> None:
        super().__init__()
        self._sampling = sampling

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.WARNING or random.random() < self._sampling


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            payload[name] = getattr(record, name, None)
        payload.update(extra_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        fields = " ".join(f"{name}={getattr(record, name, None) or '-'}" for name in CONTEXT_FIELDS)
        return f"{super().format(record)} {fields}"


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra=`` values attached to ``record``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_KEYS
        and key not in CONTEXT_FIELDS
        and not key.startswith("_")
    }


def bootstrap_logging(
    *,
    service: str,
    env: str | None = None,
    level: str = "INFO",
    log_format: str = "text",
    sampling: float | None = None,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
    propagate: bool = False,
) -> logging.Logger:
    """Install one stream handler on ``logger`` (root by default).

    ``force`` removes handlers already attached. A non-root logger stops
    propagating unless ``propagate`` is set, e.g. so pytest still captures
    its records.
    """
    resolved_env = env if env is not None else os.getenv("S3H_ENV", "development")
    target = logger or logging.getLogger()

    if force:
        for existing in list(target.handlers):
            target.removeHandler(existing)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter() if log_format == "json" else TextFormatter())
    handler.addFilter(ScenarioContextFilter(service=service, env=resolved_env))
    if sampling is not None and sampling < 1.0:
        handler.addFilter(SamplingFilter(sampling))

    target.addHandler(handler)
    target.setLevel(level.upper())
    if target is not logging.getLogger():
        target.propagate = propagate
    return target


def bootstrap_logging_from_app_settings(
    app_settings: AppSettings,
    *,
    env: str | None = None,
    logger: logging.Logger | None = None,
    stream: TextIO | None = None,
    force: bool = True,
    propagate: bool = False,
) -> logging.Logger:
    return bootstrap_logging(
        service=app_settings.service.name,
        env=env,
        level=app_settings.logging.level,
        log_format=app_settings.logging.format,
        sampling=app_settings.logging.sampling,
        logger=logger,
        stream=stream,
        force=force,
        propagate=propagate,
    )


def _clean(value: object | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
