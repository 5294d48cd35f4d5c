"""Custom exceptions for the S3 emulator harness."""

from __future__ import annotations


class HarnessError(Exception):
    """Base exception for this package."""


class MissingDependencyError(HarnessError):
    """Raised when an optional dependency is required but not installed."""


class ConfigurationError(HarnessError):
    """Raised when a client or emulator is configured with invalid values."""


class EmulatorStateError(HarnessError):
    """Raised when an emulator operation is invalid for its current state."""


class StartupTimeoutError(HarnessError):
    """Raised when the emulator does not report readiness in time."""

    def __init__(self, image: str, pattern: str, timeout_seconds: float) -> None:
        self.image = image
        self.pattern = pattern
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Emulator '{image}' did not log a line matching {pattern!r} "
            f"within {timeout_seconds:g}s"
        )


class ScenarioStateError(HarnessError):
    """Raised when scenario steps are invoked out of order."""


class ListingMismatchError(AssertionError):
    """Raised when a listing result misses keys that were uploaded.

    Derives from ``AssertionError`` so test runners report a failed
    assertion instead of an error.
    """

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str,
        variant: str,
        expected: set[str],
        actual: set[str],
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix
        self.variant = variant
        self.missing = sorted(expected - actual)
        self.unexpected = sorted(actual - expected)
        lines = [f"- {key}" for key in self.missing]
        lines.extend(f"+ {key}" for key in self.unexpected)
        diff = "\n".join(lines) if lines else "(no key differences)"
        super().__init__(
            f"Listing {variant} of '{bucket}/{prefix}' does not match the expected keys "
            f"({len(self.missing)} missing, {len(self.unexpected)} unexpected):\n{diff}"
        )
