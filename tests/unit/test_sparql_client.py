"""
Unit Tests for the SPARQL Endpoint Transport.

Uses httpx.MockTransport to serve SPARQL JSON result bodies.
"""

import json
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from sparql_benchmark.transport import (
    BindingRow,
    MetadataEvent,
    SparqlEndpointTransport,
    TopologyRow,
    TransportError,
    parse_row,
)

ENDPOINT = "http://localhost:3001/sparql"


def make_transport(handler) -> SparqlEndpointTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SparqlEndpointTransport(client=client)


async def collect(transport: SparqlEndpointTransport, query: str = "SELECT * WHERE { ?s ?p ?o }", params=None):
    return [event async for event in transport.stream(ENDPOINT, query, params)]


def results_body(bindings: list[dict[str, Any]], metadata: dict[str, Any] | None = None) -> bytes:
    body: dict[str, Any] = {"head": {"vars": ["s"]}, "results": {"bindings": bindings}}
    if metadata is not None:
        body["metadata"] = metadata
    return json.dumps(body).encode()


class TestParseRow:
    """Test cases for parse_row."""

    def test_plain_binding(self) -> None:
        binding = {"s": {"type": "uri", "value": "http://example.org/s"}}

        assert parse_row(binding) == BindingRow(bindings=binding)

    def test_topology_binding(self, sample_topology_json, sample_topology, topology_binding_factory) -> None:
        """Test reserved variables become a TopologyRow and are removed from the bindings."""
        row = parse_row(topology_binding_factory(sample_topology_json, ["http://a", "http://c"]))

        assert isinstance(row, TopologyRow)
        assert row.topology == sample_topology
        assert row.source_attribution == ["http://a", "http://c"]
        assert list(row.bindings) == ["s"]

    def test_topology_with_null_weight(self, sample_topology_json, topology_binding_factory) -> None:
        """Test an edge serialized as [s, t, null] is accepted."""
        sample_topology_json["edgeListUnWeighted"] = [[0, 1, None], [0, 2, 1], [2, 3, 1]]

        row = parse_row(topology_binding_factory(sample_topology_json, ["http://b"]))

        assert isinstance(row, TopologyRow)
        assert row.topology.edge_list_unweighted[0] == [0, 1, None]

    def test_malformed_topology(self) -> None:
        binding = {"_trackedTopology": {"type": "literal", "value": "{not json"}}

        with pytest.raises(TransportError):
            parse_row(binding)


class TestSparqlEndpointTransport:
    """Test cases for SparqlEndpointTransport.stream."""

    @pytest.mark.asyncio
    async def test_streams_rows_then_metadata(
        self,
        sample_topology_json,
        topology_binding_factory,
    ) -> None:
        """Test events are yielded in arrival order with trailing metadata last."""
        bindings = [
            {"s": {"type": "uri", "value": "http://example.org/1"}},
            topology_binding_factory(sample_topology_json, ["http://d"]),
        ]
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=results_body(bindings, {"httpRequests": 9}))

        transport = make_transport(handler)
        events = await collect(transport, params={"context": "x"})
        await transport.close()

        assert [type(e) for e in events] == [BindingRow, TopologyRow, MetadataEvent]
        assert events[1].source_attribution == ["http://d"]
        assert events[2] == MetadataEvent(metadata={"httpRequests": 9})

        request = requests[0]
        assert request.method == "POST"
        assert request.headers["accept"] == "application/sparql-results+json"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.url.params["context"] == "x"
        assert parse_qs(request.content.decode())["query"] == ["SELECT * WHERE { ?s ?p ?o }"]

    @pytest.mark.asyncio
    async def test_empty_result(self) -> None:
        transport = make_transport(lambda request: httpx.Response(200, content=results_body([])))

        assert await collect(transport) == []

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        """Test a non-success status fails the stream with its status code."""
        transport = make_transport(lambda request: httpx.Response(500, text="Internal error"))

        with pytest.raises(TransportError) as exc_info:
            await collect(transport)

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(TransportError):
            await collect(transport)

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        """Test a truncated body fails the stream."""
        body = b'{"head": {"vars": ["s"]}, "results": {"bindings": [{"s": '
        transport = make_transport(lambda request: httpx.Response(200, content=body))

        with pytest.raises(TransportError):
            await collect(transport)

    @pytest.mark.asyncio
    async def test_no_params(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=results_body([]))

        await collect(make_transport(handler))

        assert str(requests[0].url) == ENDPOINT
