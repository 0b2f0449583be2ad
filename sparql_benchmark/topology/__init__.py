"""
Traversal Topology and Metric Module.

Provides:
- Models for the topology a link-traversal engine tracks per query
- Preparation of the one-indexed metric evaluator input
- Adapter around the external optimal traversal metric evaluator
"""

from sparql_benchmark.topology.evaluator import (
    METRIC_NOT_COMPUTABLE,
    OptimalTraversalMetric,
    TraversalMetricEvaluator,
    load_evaluator,
)
from sparql_benchmark.topology.metric_input import (
    find_roots,
    prepare_metric_input,
    to_one_indexed,
)
from sparql_benchmark.topology.models import (
    MetricInput,
    SearchStrategy,
    TopologyWeighting,
    TraversalTopology,
)

__all__ = [
    "METRIC_NOT_COMPUTABLE",
    "MetricInput",
    "OptimalTraversalMetric",
    "SearchStrategy",
    "TopologyWeighting",
    "TraversalMetricEvaluator",
    "TraversalTopology",
    "find_roots",
    "load_evaluator",
    "prepare_metric_input",
    "to_one_indexed",
]
