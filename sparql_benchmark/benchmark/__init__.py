"""
SPARQL Benchmark Execution.

Provides:
- Endpoint liveness polling
- Timed, streamed execution of single queries
- Replicated execution of query sets with traversal metric scoring
"""

from sparql_benchmark.benchmark.results import ResultRecord
from sparql_benchmark.benchmark.runner import (
    BenchmarkConfig,
    PartialOutput,
    QueryExecutionError,
    QueryOutput,
    QueryTimeoutError,
    RunState,
    SparqlBenchmarkRunner,
)

__all__ = [
    "BenchmarkConfig",
    "PartialOutput",
    "QueryExecutionError",
    "QueryOutput",
    "QueryTimeoutError",
    "ResultRecord",
    "RunState",
    "SparqlBenchmarkRunner",
]
