"""Configuration for the benchmark runner."""

from sparql_benchmark.config.settings import (
    EndpointSettings,
    MetricSettings,
    ObservabilitySettings,
    RunnerSettings,
    Settings,
    get_settings,
)

__all__ = [
    "EndpointSettings",
    "MetricSettings",
    "ObservabilitySettings",
    "RunnerSettings",
    "Settings",
    "get_settings",
]
