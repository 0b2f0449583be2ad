"""
SPARQL Endpoint Transport.

Sends a query to a SPARQL endpoint over HTTP and turns the streamed
``application/sparql-results+json`` response into typed events, in the
order the endpoint produced them:

- BindingRow: a plain solution
- TopologyRow: a solution carrying the engine's tracked topology and the
  source attribution of that solution
- MetadataEvent: trailing metadata object (e.g. number of HTTP requests)

A stream either ends (iterator exhausted) or fails (TransportError).
"""

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import ijson
import structlog

from sparql_benchmark.topology.models import TraversalTopology

logger = structlog.get_logger(__name__)

# Reserved variables used by link-traversal engines to report provenance
TOPOLOGY_VARIABLE = "_trackedTopology"
SOURCE_ATTRIBUTION_VARIABLE = "_sourceAttribution"

SPARQL_RESULTS_JSON = "application/sparql-results+json"


class TransportError(Exception):
    """Raised when a query stream fails before it ended."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class BindingRow:
    """A solution without provenance."""

    bindings: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TopologyRow:
    """A solution carrying a topology snapshot and its source attribution."""

    bindings: dict[str, Any]
    topology: TraversalTopology
    source_attribution: list[str]


@dataclass(frozen=True)
class MetadataEvent:
    """Metadata reported by the endpoint for the whole result."""

    metadata: dict[str, Any]


StreamEvent = BindingRow | TopologyRow | MetadataEvent


class QueryTransport(Protocol):
    """Anything that can stream the results of a query."""

    def stream(
        self,
        endpoint: str,
        query: str,
        params: dict[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        ...


def parse_row(binding: dict[str, Any]) -> BindingRow | TopologyRow:
    """
    Decide the row variant once, from the reserved variables.

    Args:
        binding: One element of ``results.bindings``

    Returns:
        TopologyRow when the row carries a tracked topology, else BindingRow
    """
    topology_term = binding.get(TOPOLOGY_VARIABLE)
    if topology_term is None:
        return BindingRow(bindings=binding)

    try:
        topology = TraversalTopology.model_validate(json.loads(topology_term["value"]))
        attribution_term = binding.get(SOURCE_ATTRIBUTION_VARIABLE)
        attribution = json.loads(attribution_term["value"]) if attribution_term else []
    except (KeyError, TypeError, ValueError) as e:
        raise TransportError(f"Malformed provenance in result row: {e}") from e

    return TopologyRow(
        bindings={
            k: v for k, v in binding.items()
            if k not in (TOPOLOGY_VARIABLE, SOURCE_ATTRIBUTION_VARIABLE)
        },
        topology=topology,
        source_attribution=[str(document) for document in attribution],
    )


class SparqlEndpointTransport:
    """
    Streaming SPARQL protocol client.

    Usage:
        transport = SparqlEndpointTransport()
        async for event in transport.stream(url, "SELECT * WHERE { ?s ?p ?o }"):
            ...
        await transport.close()
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self._client = client
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def close(self) -> None:
        """Close the client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def stream(
        self,
        endpoint: str,
        query: str,
        params: dict[str, str] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Execute a query and yield its events in arrival order.

        Args:
            endpoint: SPARQL endpoint URL
            query: SPARQL query string
            params: Additional URL parameters

        Yields:
            BindingRow, TopologyRow or MetadataEvent

        Raises:
            TransportError: On HTTP failure or malformed response body
        """
        client = await self._get_client()

        bindings = ijson.sendable_list()
        metadata = ijson.sendable_list()
        bindings_parser = ijson.items_coro(bindings, "results.bindings.item", use_float=True)
        metadata_parser = ijson.items_coro(metadata, "metadata", use_float=True)

        try:
            async with client.stream(
                "POST",
                endpoint,
                params=params or None,
                data={"query": query},
                headers={"Accept": SPARQL_RESULTS_JSON},
            ) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    bindings_parser.send(chunk)
                    metadata_parser.send(chunk)
                    for binding in bindings:
                        yield parse_row(binding)
                    del bindings[:]

                bindings_parser.close()
                metadata_parser.close()
                for binding in bindings:
                    yield parse_row(binding)
                del bindings[:]
                for item in metadata:
                    yield MetadataEvent(metadata=dict(item))

        except httpx.HTTPStatusError as e:
            logger.debug("SPARQL endpoint HTTP error", endpoint=endpoint, status=e.response.status_code)
            raise TransportError(
                f"Endpoint responded with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.debug("SPARQL endpoint request failed", endpoint=endpoint, error=str(e))
            raise TransportError(f"Request to {endpoint} failed: {e}") from e
        except ijson.JSONError as e:
            raise TransportError(f"Invalid SPARQL JSON results: {e}") from e
