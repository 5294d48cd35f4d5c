"""One harness run: settings, logging, run id and the emulator it talks to."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import replace
from pathlib import Path
from types import TracebackType
from typing import Any, Literal

from s3_harness.client.store import ObjectStore, create_store
from s3_harness.config.errors import ConfigFileNotFoundError
from s3_harness.config.loader import load_config, resolve_env
from s3_harness.config.models import AppSettings
from s3_harness.config.resources import EmulatorSettings, HarnessSettings
from s3_harness.emulator import EmulatorInstance
from s3_harness.errors import EmulatorStateError
from s3_harness.observability.logging import (
    bootstrap_logging_from_app_settings,
    run_scope,
    scenario_scope,
)
from s3_harness.scenario import ScenarioRunner, unique_bucket_name

logger = logging.getLogger(__name__)

ENDPOINT_ENV_VAR = "S3H_S3_ENDPOINT"

EmulatorFactory = Callable[[EmulatorSettings], EmulatorInstance]


class HarnessSession:
    """Shared state for every scenario of a run.

    ``start`` installs logging, binds a ``run_id`` for all records and, unless
    an external endpoint is configured, starts the emulator. ``close`` undoes
    all of it in reverse order.
    """

    def __init__(
        self,
        settings: HarnessSettings,
        *,
        app_settings: AppSettings | None = None,
        env: str | None = None,
        run_id: str | None = None,
        emulator_factory: EmulatorFactory | None = None,
        log_to: logging.Logger | None = None,
        propagate_logs: bool = False,
    ) -> None:
        self._settings = settings
        self._app_settings = app_settings or AppSettings()
        self._env = resolve_env(env)
        self._requested_run_id = run_id
        self._emulator_factory = emulator_factory or EmulatorInstance
        self._log_to = log_to or logging.getLogger("s3_harness")
        self._propagate_logs = propagate_logs
        self._emulator: EmulatorInstance | None = None
        self._endpoint: str | None = None
        self._run_id: str | None = None
        self._stack: ExitStack | None = None

    @classmethod
    def from_config(
        cls,
        config_dir: Path | str | None = None,
        *,
        env: str | None = None,
        **kwargs: Any,
    ) -> HarnessSession:
        """Build a session from appsettings, or from ``S3H_*`` variables.

        When the config directory has no ``appsettings.json`` the settings
        come from ``HarnessSettings.from_env``. ``S3H_S3_ENDPOINT`` selects an
        already running emulator in both cases.
        """
        resolved_env = resolve_env(env)
        try:
            app_settings = load_config(config_dir=config_dir, env=resolved_env)
        except ConfigFileNotFoundError:
            settings = HarnessSettings.from_env()
            return cls(settings, env=resolved_env, **kwargs)

        settings = HarnessSettings.from_app_settings(
            app_settings,
            endpoint=os.environ.get(ENDPOINT_ENV_VAR, "").strip() or None,
        )
        return cls(settings, app_settings=app_settings, env=resolved_env, **kwargs)

    @property
    def settings(self) -> HarnessSettings:
        return self._settings

    @property
    def env(self) -> str:
        return self._env

    @property
    def run_id(self) -> str | None:
        return self._run_id

    @property
    def uses_external_endpoint(self) -> bool:
        return self._settings.endpoint is not None

    @property
    def endpoint(self) -> str:
        if self._endpoint is None:
            raise EmulatorStateError("harness session has not been started")
        return self._endpoint

    def start(self) -> HarnessSession:
        if self._stack is not None:
            raise EmulatorStateError("harness session already started")

        stack = ExitStack()
        try:
            stack.callback(_restore_logger, self._log_to, *_logger_state(self._log_to))
            bootstrap_logging_from_app_settings(
                self._app_settings,
                env=self._env,
                logger=self._log_to,
                propagate=self._propagate_logs,
            )
            self._run_id = stack.enter_context(run_scope(self._requested_run_id))

            if self._settings.endpoint is not None:
                self._endpoint = self._settings.endpoint
                logger.info("Using external S3 endpoint", extra={"endpoint": self._endpoint})
            else:
                emulator = self._emulator_factory(self._settings.emulator)
                self._emulator = emulator
                stack.callback(self._stop_emulator)
                self._endpoint = emulator.start().endpoint()
        except BaseException:
            stack.close()
            self._endpoint = None
            self._run_id = None
            raise

        self._stack = stack
        logger.info(
            "Harness session started",
            extra={"endpoint": self._endpoint, "sdk": self._settings.client.sdk},
        )
        return self

    def close(self) -> None:
        stack, self._stack = self._stack, None
        if stack is None:
            return
        logger.info("Harness session closing")
        try:
            stack.close()
        finally:
            self._endpoint = None
            self._run_id = None

    def open_store(self, sdk: Literal["boto3", "minio"] | None = None) -> ObjectStore:
        """Build a fresh client for the session endpoint."""
        client_settings = self._settings.client
        if sdk is not None and sdk != client_settings.sdk:
            client_settings = replace(client_settings, sdk=sdk, chunked_encoding=False)
        return create_store(self.endpoint, client_settings)

    @contextmanager
    def scenario(
        self,
        name: str,
        store: ObjectStore,
        workdir: Path,
        *,
        bucket: str | None = None,
    ) -> Iterator[ScenarioRunner]:
        """Yield a set-up runner on its own bucket with ``scenario``/``bucket`` bound."""
        scenario_settings = self._settings.scenario
        bucket_name = bucket or unique_bucket_name(scenario_settings.bucket_prefix)
        with scenario_scope(scenario=name, bucket=bucket_name):
            runner = ScenarioRunner(
                store,
                bucket_name,
                workdir,
                content=scenario_settings.fixture_content,
            )
            runner.setup()
            yield runner

    def _stop_emulator(self) -> None:
        emulator, self._emulator = self._emulator, None
        if emulator is not None:
            emulator.stop()

    def __enter__(self) -> HarnessSession:
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _logger_state(target: logging.Logger) -> tuple[list[logging.Handler], int, bool]:
    return list(target.handlers), target.level, target.propagate


def _restore_logger(
    target: logging.Logger,
    handlers: list[logging.Handler],
    level: int,
    propagate: bool,
) -> None:
    for handler in list(target.handlers):
        target.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        target.addHandler(handler)
    target.setLevel(level)
    target.propagate = propagate
