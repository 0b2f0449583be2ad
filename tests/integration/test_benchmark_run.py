"""
Integration Tests for a Complete Benchmark Run.

Runs the benchmark through the real HTTP transport against an in-process
SPARQL endpoint (httpx.MockTransport), then aggregates and serializes.
"""

import json
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from sparql_benchmark.aggregation import ResultAggregatorComunica
from sparql_benchmark.benchmark import BenchmarkConfig, SparqlBenchmarkRunner
from sparql_benchmark.io import QueryLoaderFile, ResultSerializerRaw, load_result_records
from sparql_benchmark.topology import OptimalTraversalMetric
from sparql_benchmark.transport import SparqlEndpointTransport

pytestmark = pytest.mark.integration


@pytest.fixture
def endpoint(sample_topology_json, topology_binding_factory):
    """In-process endpoint: traversal queries return provenance, BROKEN fails."""
    received: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        query = parse_qs(request.content.decode())["query"][0]
        received.append(query)
        if "BROKEN" in query:
            return httpx.Response(500, text="Query failed")

        bindings: list[dict[str, Any]] = []
        if "traversal" in query:
            bindings = [
                topology_binding_factory(sample_topology_json, ["http://a", "http://b"]),
                topology_binding_factory(sample_topology_json, ["http://c"]),
                topology_binding_factory(sample_topology_json, ["http://d"]),
            ]
        body = {
            "head": {"vars": ["s"]},
            "results": {"bindings": bindings},
            "metadata": {"httpRequests": 4},
        }
        return httpx.Response(200, content=json.dumps(body).encode())

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = SparqlEndpointTransport(client=client)
    transport.received = received
    return transport


@pytest.mark.asyncio
async def test_full_run(
    tmp_path: Path,
    endpoint: SparqlEndpointTransport,
    fast_config: BenchmarkConfig,
    metric: OptimalTraversalMetric,
) -> None:
    """Test load, run, aggregate and persist with one failing query."""
    (tmp_path / "discover.txt").write_text(
        "SELECT * WHERE { ?s ?p ?o } # traversal\n\nSELECT * WHERE { ?s ?p ?o } # BROKEN\n",
        encoding="utf-8",
    )
    (tmp_path / "discover.metadata.json").write_text(
        json.dumps({"template": "discover", "sequenceElements": [{"step": 0}, {"step": 1}]}),
        encoding="utf-8",
    )
    loader = QueryLoaderFile(tmp_path)

    runner = SparqlBenchmarkRunner(
        fast_config,
        await loader.load_queries(),
        transport=endpoint,
        metric=metric,
        query_metadata=await loader.load_queries_metadata(),
    )
    try:
        results = await runner.run()
    finally:
        await endpoint.close()

    ok = results["discover0"]
    assert ok.error is False
    assert ok.count == 3
    assert len(ok.timestamps) == 3
    assert ok.http_requests == 4
    assert ok.metrics_calculated == [0.5, 0.1, 0.2, -1]
    assert ok.template == "discover"

    failed = results["discover1"]
    assert failed.error is True
    assert failed.count == 0
    assert "500" in failed.error_message

    # Two measured iterations of two queries, plus liveness probes
    measured = [q for q in endpoint.received if q != fast_config.up_query]
    assert len(measured) == 4

    raw = tmp_path / "out" / "raw.json"
    ResultSerializerRaw().serialize(raw, list(results.values()))
    aggregates = ResultAggregatorComunica().aggregate_results(load_result_records(raw))

    assert [a.error for a in aggregates] == [False, True]
    assert aggregates[0].stats["http_requests"].mean == 4
    assert aggregates[0].stats["metric_first_2"].mean == 0.2
    assert aggregates[1].stats == {}
