"""
Observability Module.

Structured logging for benchmark runs: JSON or console output and
per-query log context.
"""

from sparql_benchmark.observability.logging import (
    LogContext,
    configure_logging,
    get_log_context,
    get_logger,
)

__all__ = [
    "LogContext",
    "configure_logging",
    "get_log_context",
    "get_logger",
]
