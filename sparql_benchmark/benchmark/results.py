"""
Benchmark Result Records.

One ResultRecord per (query set, query id), accumulated across replication
iterations and averaged once all iterations are done.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Any

from sparql_benchmark.topology.evaluator import METRIC_NOT_COMPUTABLE


@dataclass
class ResultRecord:
    """Measurements for one query of a query set."""

    name: str
    id: str

    # Measurements
    count: int = 0
    time: float = 0.0  # ms
    timestamps: list[float] = field(default_factory=list)  # ms since dispatch, per result
    error: bool = False
    error_message: str | None = None

    # Traversal metrics: [all results, first k for each k in k_values]
    metrics_calculated: list[float] = field(default_factory=list)
    k_values: list[int] = field(default_factory=list)

    # Last metadata reported by the endpoint
    metadata: dict[str, Any] = field(default_factory=dict)

    # Query metadata (query sequences)
    template: str | None = None
    sequence: str | None = None
    query_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return self.make_key(self.name, self.id)

    @staticmethod
    def make_key(name: str, query_id: str) -> str:
        """Results key: query set name followed by query id."""
        return f"{name}{query_id}"

    @property
    def http_requests(self) -> Any:
        return self.metadata.get("httpRequests")

    @property
    def metric_all(self) -> float:
        if not self.metrics_calculated:
            return METRIC_NOT_COMPUTABLE
        return self.metrics_calculated[0]

    @property
    def metrics_first_k(self) -> dict[int, float]:
        return dict(zip(self.k_values, self.metrics_calculated[1:]))

    def add_measurement(
        self,
        time: float,
        timestamps: list[float],
        error_message: str | None = None,
    ) -> None:
        """Sum a later iteration into this record."""
        if error_message is not None:
            self.error = True
            self.error_message = error_message

        self.time += time

        # Only the prefix both iterations produced can be combined
        for i in range(min(len(self.timestamps), len(timestamps))):
            self.timestamps[i] += timestamps[i]

    def average(self, replication: int) -> None:
        """Turn summed time and timestamps into per-run values."""
        self.time = math.floor(self.time / replication)
        self.timestamps = [math.floor(t / replication) for t in self.timestamps]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResultRecord":
        known = {name for name in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        error = values.get("error")
        if isinstance(error, str):
            values["error"] = True
            values.setdefault("error_message", error)
        return cls(**values)
