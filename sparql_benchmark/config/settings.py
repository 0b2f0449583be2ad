"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


class EndpointSettings(BaseSettings):
    """SPARQL endpoint connection settings."""

    model_config = SettingsConfigDict(env_prefix="ENDPOINT_")

    url: str = Field(default="http://localhost:3000/sparql", description="SPARQL endpoint URL")
    up_query: str = Field(
        default="SELECT * WHERE { ?s ?p ?o } LIMIT 1",
        description="Query sent to the endpoint to check if it is up",
    )
    additional_url_params_init: dict[str, str] = Field(
        default_factory=dict,
        description="URL parameters sent when checking if the endpoint is up",
    )
    additional_url_params_run: dict[str, str] = Field(
        default_factory=dict,
        description="URL parameters sent during actual query execution",
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        description="httpx read timeout; None leaves streaming reads unbounded",
    )


class RunnerSettings(BaseSettings):
    """Benchmark execution settings."""

    model_config = SettingsConfigDict(env_prefix="RUNNER_")

    replication: int = Field(default=5, ge=1, description="Number of replication runs")
    warmup: int = Field(default=1, ge=0, description="Number of warmup runs")
    timeout_ms: int | None = Field(
        default=None,
        description="Fallback timeout for a single query in milliseconds",
    )
    record_timestamps: bool = Field(default=True, description="Record result arrival times")

    # Delays (seconds)
    liveness_probe_interval: float = Field(default=1.0, ge=0.0, description="Delay between liveness probes")
    liveness_probe_timeout: float = Field(default=10.0, gt=0.0, description="Timeout for one liveness probe")
    settle_delay: float = Field(default=5.0, ge=0.0, description="Pause after the endpoint came up")
    error_recovery_delay: float = Field(default=3.0, ge=0.0, description="Pause after a failed query")
    inter_query_delay: float = Field(default=5.0, ge=0.0, description="Pause after every query")


class MetricSettings(BaseSettings):
    """Traversal metric settings."""

    model_config = SettingsConfigDict(env_prefix="METRIC_")

    evaluator: str | None = Field(
        default=None,
        description="Import path ('module:attr') of the traversal metric evaluator",
    )
    k_values: list[int] = Field(default=[1, 2, 4], description="k thresholds for first-k metrics")
    weighting: Literal["unweighted", "requestTime", "documentSize"] = Field(
        default="unweighted", description="Edge weighting scheme"
    )
    search_strategy: Annotated[
        Literal["full", "reduced"],
        BeforeValidator(normalize_to_lowercase),
    ] = Field(default="full", description="First-k search strategy")
    solver_input_path: str | None = Field(default=None, description="Where the evaluator dumps solver input")
    batch_size: int = Field(default=5_000, description="Evaluator batch size")
    allow_random_sampling: bool = Field(default=True, description="Allow evaluator random sampling")
    sample_count: int = Field(default=1_000_000, description="Evaluator sample count")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format (json for machines, console for operators)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="SPARQL Benchmark Runner", description="Application name")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Sub-settings
    endpoint: EndpointSettings = Field(default_factory=EndpointSettings)
    runner: RunnerSettings = Field(default_factory=RunnerSettings)
    metric: MetricSettings = Field(default_factory=MetricSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
