"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the SPARQL benchmark runner.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from sparql_benchmark.benchmark import BenchmarkConfig, ResultRecord
from sparql_benchmark.config.settings import Settings, get_settings
from sparql_benchmark.topology import OptimalTraversalMetric, TraversalTopology
from sparql_benchmark.transport import (
    SOURCE_ATTRIBUTION_VARIABLE,
    TOPOLOGY_VARIABLE,
    BindingRow,
    StreamEvent,
    TopologyRow,
)

UP_QUERY = "SELECT * WHERE { ?s ?p ?o } LIMIT 1"


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with mock values."""
    with patch.dict(
        "os.environ",
        {
            "ENDPOINT_URL": "http://localhost:3001/sparql",
            "RUNNER_REPLICATION": "2",
            "RUNNER_WARMUP": "0",
            "RUNNER_INTER_QUERY_DELAY": "0",
            "METRIC_K_VALUES": "[1, 2]",
        },
    ):
        # Clear cache and get fresh settings
        get_settings.cache_clear()
        settings = get_settings()
    get_settings.cache_clear()
    return settings


@pytest.fixture
def fast_config() -> BenchmarkConfig:
    """Benchmark config without any delays."""
    return BenchmarkConfig(
        endpoint="http://localhost:3001/sparql",
        replication=2,
        warmup=0,
        liveness_probe_interval=0,
        liveness_probe_timeout=1,
        settle_delay=0,
        error_recovery_delay=0,
        inter_query_delay=0,
    )


# =============================================================================
# Transport Fixtures
# =============================================================================


class FakeTransport:
    """
    Scripted transport.

    ``responses`` maps a query to a list of events; an Exception in the list
    is raised at that position. ``hang`` queries never finish.
    """

    def __init__(
        self,
        responses: dict[str, list[Any]] | None = None,
        hang: set[str] | None = None,
    ):
        self.responses = responses or {}
        self.hang = hang or set()
        self.calls: list[tuple[str, str, dict[str, str] | None]] = []

    async def stream(
        self,
        endpoint: str,
        query: str,
        params: dict[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append((endpoint, query, params))
        if query in self.hang:
            await asyncio.sleep(3600)
        for item in self.responses.get(query, []):
            if isinstance(item, Exception):
                raise item
            yield item

    def queries(self) -> list[str]:
        return [query for _, query, _ in self.calls if query != UP_QUERY]


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


# =============================================================================
# Topology Fixtures
# =============================================================================


@pytest.fixture
def sample_topology_json() -> dict[str, Any]:
    """Topology as serialized by the engine: a -> b, a -> c, c -> d."""
    return {
        "nodeToIndex": {"http://a": 0, "http://b": 1, "http://c": 2, "http://d": 3},
        "edgeListUnWeighted": [[0, 1, 1], [0, 2, 1], [2, 3, 1]],
        "edgeListRequestTime": [[0, 1, 120], [0, 2, 80], [2, 3, 45.5]],
        "edgeListDocumentSize": [[0, 1], [0, 2, 7], [2, 3, 12]],
        "edgesInGraph": {"0,1": 1, "0,2": 1, "2,3": 1},
        "metadataNode": [
            {"hasParent": False},
            {"hasParent": True},
            {"hasParent": True},
            {"hasParent": True},
        ],
        "traversalOrder": ["http://a", "http://c", "http://b", "http://d"],
        "traversalOrderEdges": [[0, 2], [0, 1], [2, 3]],
    }


@pytest.fixture
def sample_topology(sample_topology_json: dict[str, Any]) -> TraversalTopology:
    return TraversalTopology.model_validate(sample_topology_json)


@pytest.fixture
def topology_rows(sample_topology: TraversalTopology) -> list[TopologyRow]:
    """Three results, each attributed to a different set of documents."""
    attributions = [["http://a", "http://b"], ["http://a", "http://c"], ["http://d"]]
    return [
        TopologyRow(
            bindings={"s": {"type": "uri", "value": f"http://example.org/{i}"}},
            topology=sample_topology,
            source_attribution=attribution,
        )
        for i, attribution in enumerate(attributions)
    ]


@pytest.fixture
def binding_rows() -> list[BindingRow]:
    return [
        BindingRow(bindings={"s": {"type": "uri", "value": f"http://example.org/{i}"}})
        for i in range(5)
    ]


def make_topology_binding(topology: dict[str, Any], attribution: list[str]) -> dict[str, Any]:
    """Build a SPARQL JSON binding carrying provenance."""
    return {
        "s": {"type": "uri", "value": "http://example.org/s"},
        TOPOLOGY_VARIABLE: {"type": "literal", "value": json.dumps(topology)},
        SOURCE_ATTRIBUTION_VARIABLE: {"type": "literal", "value": json.dumps(attribution)},
    }


# =============================================================================
# Metric Fixtures
# =============================================================================


@pytest.fixture
def mock_evaluator() -> MagicMock:
    """Evaluator returning 0.5 for all results and k / 10 for first-k."""
    evaluator = MagicMock()
    evaluator.run_metric_all = MagicMock(return_value=0.5)
    evaluator.run_metric_first_k = MagicMock(side_effect=lambda k, *args: k / 10)
    return evaluator


@pytest.fixture
def metric(mock_evaluator: MagicMock) -> OptimalTraversalMetric:
    return OptimalTraversalMetric(mock_evaluator)


# =============================================================================
# Result Fixtures
# =============================================================================


def create_result(
    name: str = "q",
    id: str = "0",
    time: float = 100,
    count: int = 3,
    error: bool = False,
    http_requests: Any = None,
    template: str | None = None,
    metrics: list[float] | None = None,
) -> ResultRecord:
    """Create a result record for aggregation tests."""
    return ResultRecord(
        name=name,
        id=id,
        count=count,
        time=time,
        error=error,
        error_message="boom" if error else None,
        metrics_calculated=metrics if metrics is not None else [-1, -1, -1, -1],
        k_values=[1, 2, 4],
        metadata={} if http_requests is None else {"httpRequests": http_requests},
        template=template,
    )


@pytest.fixture
def result_factory():
    return create_result


@pytest.fixture
def topology_binding_factory():
    return make_topology_binding
