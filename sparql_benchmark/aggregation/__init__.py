"""Aggregation of benchmark results."""

from sparql_benchmark.aggregation.aggregator import (
    AggregateRecord,
    MetricStats,
    ResultAggregator,
    ResultAggregatorComunica,
    ResultAggregatorQuerySequence,
)

__all__ = [
    "AggregateRecord",
    "MetricStats",
    "ResultAggregator",
    "ResultAggregatorComunica",
    "ResultAggregatorQuerySequence",
]
