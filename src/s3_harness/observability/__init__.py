"""Structured logging for harness runs."""

from s3_harness.observability.logging import (
    JsonFormatter,
    SamplingFilter,
    ScenarioContext,
    ScenarioContextFilter,
    TextFormatter,
    bootstrap_logging,
    bootstrap_logging_from_app_settings,
    get_scenario_context,
    new_run_id,
    run_scope,
    scenario_scope,
)

__all__ = [
    "JsonFormatter",
    "SamplingFilter",
    "ScenarioContext",
    "ScenarioContextFilter",
    "TextFormatter",
    "bootstrap_logging",
    "bootstrap_logging_from_app_settings",
    "get_scenario_context",
    "new_run_id",
    "run_scope",
    "scenario_scope",
]
