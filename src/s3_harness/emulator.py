"""LocalStack emulator lifecycle built on testcontainers."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from time import perf_counter
from types import TracebackType
from typing import Any, Protocol

from s3_harness.config.resources import EmulatorSettings
from s3_harness.errors import EmulatorStateError, MissingDependencyError, StartupTimeoutError

logger = logging.getLogger(__name__)


class EmulatorState(enum.Enum):
    NOT_READY = "not-ready"
    READY = "ready"
    TIMED_OUT = "timed-out"
    STOPPED = "stopped"


class EmulatorContainer(Protocol):
    """Subset of ``testcontainers`` ``DockerContainer`` used by the emulator."""

    def start(self) -> Any:
        ...

    def stop(self) -> Any:
        ...

    def get_container_host_ip(self) -> str:
        ...

    def get_exposed_port(self, port: int) -> int | str:
        ...


ContainerFactory = Callable[[EmulatorSettings], EmulatorContainer]
LogWaiter = Callable[[EmulatorContainer, str, float], Any]


def _build_container(settings: EmulatorSettings) -> EmulatorContainer:
    try:
        from testcontainers.core.container import DockerContainer
    except ImportError as exc:  # pragma: no cover - depends on installed extras
        raise MissingDependencyError(
            "The emulator requires 'testcontainers'. Install s3-emulator-harness with its "
            "default dependencies."
        ) from exc

    container = DockerContainer(settings.image).with_exposed_ports(settings.port)
    for name, value in settings.container_env().items():
        container = container.with_env(name, value)
    return container


def _wait_for_log_line(container: EmulatorContainer, pattern: str, timeout: float) -> Any:
    from testcontainers.core.waiting_utils import wait_for_logs

    return wait_for_logs(container, pattern, timeout=timeout, interval=0.5)


class EmulatorInstance:
    """Containerised S3 emulator shared read-only by every test in a suite.

    ``start`` blocks until the container logs a line matching
    ``settings.ready_pattern`` or ``settings.startup_timeout_seconds``
    elapses. Use as a context manager to guarantee teardown.
    """

    def __init__(
        self,
        settings: EmulatorSettings | None = None,
        *,
        container_factory: ContainerFactory | None = None,
        log_waiter: LogWaiter | None = None,
    ) -> None:
        self._settings = settings or EmulatorSettings()
        self._container_factory = container_factory or _build_container
        self._log_waiter = log_waiter or _wait_for_log_line
        self._container: EmulatorContainer | None = None
        self._state = EmulatorState.NOT_READY
        self._host: str | None = None
        self._mapped_port: int | None = None

    @classmethod
    def from_settings(cls, settings: EmulatorSettings) -> EmulatorInstance:
        return cls(settings)

    @property
    def settings(self) -> EmulatorSettings:
        return self._settings

    @property
    def state(self) -> EmulatorState:
        return self._state

    @property
    def host(self) -> str | None:
        return self._host

    @property
    def mapped_port(self) -> int | None:
        return self._mapped_port

    def start(self) -> EmulatorInstance:
        """Launch the container and wait for its readiness log line."""
        if self._container is not None or self._state is not EmulatorState.NOT_READY:
            raise EmulatorStateError(
                f"emulator cannot be started from state '{self._state.value}'"
            )

        settings = self._settings
        started = perf_counter()
        logger.info(
            "Starting emulator container",
            extra={"image": settings.image, "port": settings.port, "region": settings.region},
        )
        container = self._container_factory(settings)
        self._container = container

        try:
            container.start()
            self._log_waiter(container, settings.ready_pattern, settings.startup_timeout_seconds)
        except TimeoutError as exc:
            self._state = EmulatorState.TIMED_OUT
            logger.error(
                "Emulator did not become ready",
                extra={
                    "image": settings.image,
                    "timeout_seconds": settings.startup_timeout_seconds,
                },
            )
            self._release_container()
            raise StartupTimeoutError(
                settings.image,
                settings.ready_pattern,
                settings.startup_timeout_seconds,
            ) from exc
        except Exception:
            self._release_container()
            self._state = EmulatorState.STOPPED
            raise

        self._host = container.get_container_host_ip()
        self._mapped_port = int(container.get_exposed_port(settings.port))
        self._state = EmulatorState.READY
        logger.info(
            "Emulator ready",
            extra={
                "endpoint": self.endpoint(),
                "startup_seconds": round(perf_counter() - started, 3),
            },
        )
        return self

    def endpoint(self) -> str:
        """Return ``http://<host>:<mapped port>`` of the running emulator."""
        if self._state is not EmulatorState.READY:
            raise EmulatorStateError(
                f"emulator endpoint is unavailable in state '{self._state.value}'"
            )
        return f"http://{self._host}:{self._mapped_port}"

    def stop(self) -> None:
        """Tear down the container. A no-op when nothing was started."""
        if self._container is None:
            return
        logger.info("Stopping emulator container", extra={"image": self._settings.image})
        self._release_container()
        if self._state is not EmulatorState.TIMED_OUT:
            self._state = EmulatorState.STOPPED

    def _release_container(self) -> None:
        container = self._container
        self._container = None
        self._host = None
        self._mapped_port = None
        if container is not None:
            container.stop()

    def __enter__(self) -> EmulatorInstance:
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
