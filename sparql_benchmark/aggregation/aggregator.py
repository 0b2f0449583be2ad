"""
Result Aggregation.

Groups flat per-query results (typically collected over several benchmark
runs) and summarizes every numeric measurement per group with mean, min,
max and population standard deviation, computed over successful executions
only.
"""

import statistics
from dataclasses import dataclass, field, replace
from typing import Any

import structlog

from sparql_benchmark.benchmark.results import ResultRecord
from sparql_benchmark.topology.evaluator import METRIC_NOT_COMPUTABLE

logger = structlog.get_logger(__name__)


@dataclass
class MetricStats:
    """Summary of one measurement over the successful members of a group."""

    mean: float
    min: float
    max: float
    std: float

    @classmethod
    def from_values(cls, values: list[float]) -> "MetricStats":
        samples = [float(v) for v in values]
        return cls(
            mean=statistics.mean(samples),
            min=min(samples),
            max=max(samples),
            std=statistics.pstdev(samples),
        )


@dataclass
class AggregateRecord:
    """Aggregated measurements of one group of results."""

    name: str
    id: str | None = None
    template: str | None = None
    replication: int = 0
    failures: int = 0
    error: bool = False
    # Empty when no member succeeded
    stats: dict[str, MetricStats] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "id": self.id,
            "template": self.template,
            "replication": self.replication,
            "failures": self.failures,
            "error": self.error,
        }
        for metric, stats in self.stats.items():
            data[metric] = stats.mean
            data[f"{metric}_min"] = stats.min
            data[f"{metric}_max"] = stats.max
            data[f"{metric}_std"] = stats.std
        return data


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ResultAggregator:
    """
    Aggregates results of the same query across runs.

    Usage:
        aggregates = ResultAggregator().aggregate_results(results)
    """

    def group_results(self, results: list[ResultRecord]) -> dict[str, list[ResultRecord]]:
        """Group results by query set name and query id."""
        groups: dict[str, list[ResultRecord]] = {}
        for result in results:
            groups.setdefault(f"{result.name}:{result.id}", []).append(result)
        return groups

    def measurements(self, result: ResultRecord) -> dict[str, float]:
        """Numeric measurements of one result that take part in aggregation."""
        values: dict[str, float] = {
            "time": result.time,
            "count": result.count,
        }
        # -1 marks a metric that could not be computed, not a score
        if result.metric_all != METRIC_NOT_COMPUTABLE:
            values["metric_all"] = result.metric_all
        for k, score in result.metrics_first_k.items():
            if score != METRIC_NOT_COMPUTABLE:
                values[f"metric_first_{k}"] = score
        return values

    def aggregate_group(self, group: list[ResultRecord]) -> AggregateRecord:
        first = group[0]
        aggregate = AggregateRecord(
            name=first.name,
            id=first.id,
            template=first.template,
            replication=len(group),
            failures=sum(1 for result in group if result.error),
            error=any(result.error for result in group),
        )

        samples: dict[str, list[float]] = {}
        for result in group:
            if result.error:
                continue
            for metric, value in self.measurements(result).items():
                samples.setdefault(metric, []).append(value)

        aggregate.stats = {
            metric: MetricStats.from_values(values)
            for metric, values in samples.items()
        }
        return aggregate

    def aggregate_grouped_results(
        self,
        grouped_results: dict[str, list[ResultRecord]],
    ) -> list[AggregateRecord]:
        return [
            self.aggregate_group(group)
            for group in grouped_results.values()
            if group
        ]

    def aggregate_results(self, results: list[ResultRecord]) -> list[AggregateRecord]:
        aggregates = self.aggregate_grouped_results(self.group_results(results))
        logger.info(
            "Aggregated results",
            results=len(results),
            groups=len(aggregates),
            failed_groups=sum(1 for a in aggregates if not a.stats),
        )
        return aggregates


class ResultAggregatorComunica(ResultAggregator):
    """Also aggregates the number of HTTP requests reported by Comunica."""

    def measurements(self, result: ResultRecord) -> dict[str, float]:
        values = super().measurements(result)
        if _is_number(result.http_requests):
            values["http_requests"] = result.http_requests
        return values


class ResultAggregatorQuerySequence(ResultAggregatorComunica):
    """
    Aggregates query sequences per template.

    Every query of a sequence belongs to the same template. Grouped results
    are copies: the template becomes the name and the original name is kept
    as ``sequence``. Input records are left untouched.
    """

    def group_results(self, results: list[ResultRecord]) -> dict[str, list[ResultRecord]]:
        templates: dict[str, list[ResultRecord]] = {}
        for result in results:
            template = result.template if result.template is not None else result.name
            relabeled = replace(result, name=template, sequence=result.name)
            templates.setdefault(template, []).append(relabeled)
        return templates

    def aggregate_group(self, group: list[ResultRecord]) -> AggregateRecord:
        aggregate = super().aggregate_group(group)
        aggregate.id = None
        aggregate.template = group[0].name
        return aggregate
