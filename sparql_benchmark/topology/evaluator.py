"""
Optimal Traversal Metric Adapter.

Thin call-through to an external traversal metric evaluator. The evaluator
scores how close the engine's traversal came to an optimal one, given the
weighted graph, the traversal order, and the nodes that contributed to each
result. Its algorithm lives outside this package.
"""

import importlib
import inspect
from typing import Any, Protocol, runtime_checkable

import structlog

from sparql_benchmark.topology.metric_input import prepare_metric_input
from sparql_benchmark.topology.models import (
    Edge,
    MetricInput,
    SearchStrategy,
    TopologyWeighting,
    TraversalTopology,
)

logger = structlog.get_logger(__name__)

# Score recorded when a metric cannot be computed
METRIC_NOT_COMPUTABLE = -1


@runtime_checkable
class TraversalMetricEvaluator(Protocol):
    """
    External evaluator interface.

    Implementations may be sync or async; results are awaited when needed.
    """

    def run_metric_all(
        self,
        edge_list: list[Edge],
        contributing_nodes: list[list[int]],
        traversed_path: list[Edge],
        roots: list[int],
        num_nodes: int,
    ) -> Any:
        ...

    def run_metric_first_k(
        self,
        k: int,
        edge_list: list[Edge],
        contributing_nodes: list[list[int]],
        traversed_path: list[Edge],
        roots: list[int],
        num_nodes: int,
        search_type: str,
        solver_input_file_location: str | None = None,
        batch_size: int | None = None,
        allow_random_sampling: bool | None = None,
        number_samples: int | None = None,
    ) -> Any:
        ...


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class OptimalTraversalMetric:
    """
    Adapter between benchmark results and the metric evaluator.

    Usage:
        metric = OptimalTraversalMetric(evaluator)
        score = await metric.calculate_metric_all_results(topology, documents)
    """

    def __init__(self, evaluator: TraversalMetricEvaluator):
        self.evaluator = evaluator

    async def evaluate_all(self, metric_input: MetricInput) -> float:
        """Score using every contributing node group."""
        return await _resolve(
            self.evaluator.run_metric_all(
                metric_input.edge_list,
                metric_input.contributing_nodes,
                metric_input.traversed_path,
                metric_input.roots,
                metric_input.num_nodes,
            )
        )

    async def evaluate_first_k(
        self,
        metric_input: MetricInput,
        k: int,
        search_strategy: SearchStrategy | str = SearchStrategy.FULL,
        solver_input_path: str | None = None,
        batch_size: int | None = None,
        allow_random_sampling: bool | None = None,
        sample_count: int | None = None,
    ) -> float:
        """Score using only the first ``k`` contributing node groups."""
        return await _resolve(
            self.evaluator.run_metric_first_k(
                k,
                metric_input.edge_list,
                metric_input.contributing_nodes,
                metric_input.traversed_path,
                metric_input.roots,
                metric_input.num_nodes,
                SearchStrategy(search_strategy).value,
                solver_input_path,
                batch_size,
                allow_random_sampling,
                sample_count,
            )
        )

    async def calculate_metric_all_results(
        self,
        topology: TraversalTopology,
        contributing_documents: list[list[str]],
        weighting: TopologyWeighting | str = TopologyWeighting.UNWEIGHTED,
    ) -> float:
        metric_input = prepare_metric_input(topology, contributing_documents, weighting)
        return await self.evaluate_all(metric_input)

    async def calculate_metric_first_k_results(
        self,
        k_values: list[int],
        topology: TraversalTopology,
        contributing_documents: list[list[str]],
        weighting: TopologyWeighting | str = TopologyWeighting.UNWEIGHTED,
        search_strategy: SearchStrategy | str = SearchStrategy.FULL,
        solver_input_path: str | None = None,
        batch_size: int | None = None,
        allow_random_sampling: bool | None = None,
        sample_count: int | None = None,
    ) -> list[float]:
        """
        Score the first-k results for each k.

        A k that is not strictly smaller than the number of contributing
        groups yields METRIC_NOT_COMPUTABLE without calling the evaluator.
        """
        metric_input = prepare_metric_input(topology, contributing_documents, weighting)
        scores: list[float] = []
        for k in k_values:
            if len(metric_input.contributing_nodes) > k:
                scores.append(
                    await self.evaluate_first_k(
                        metric_input,
                        k,
                        search_strategy,
                        solver_input_path,
                        batch_size,
                        allow_random_sampling,
                        sample_count,
                    )
                )
            else:
                scores.append(METRIC_NOT_COMPUTABLE)
        return scores


def load_evaluator(import_path: str) -> TraversalMetricEvaluator:
    """
    Resolve an evaluator from ``"package.module:attribute"``.

    A class or factory function is called without arguments; any other
    attribute is used as the evaluator itself.
    """
    module_name, _, attribute = import_path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Evaluator path must look like 'module:attribute', got {import_path!r}")

    target = getattr(importlib.import_module(module_name), attribute)
    evaluator = target
    if inspect.isclass(target) or (callable(target) and not isinstance(target, TraversalMetricEvaluator)):
        evaluator = target()

    if not isinstance(evaluator, TraversalMetricEvaluator):
        raise TypeError(f"{import_path} does not provide run_metric_all/run_metric_first_k")

    logger.info("Loaded traversal metric evaluator", evaluator=import_path)
    return evaluator
