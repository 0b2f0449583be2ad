"""SPARQL endpoint transport."""

from sparql_benchmark.transport.sparql_client import (
    SOURCE_ATTRIBUTION_VARIABLE,
    TOPOLOGY_VARIABLE,
    BindingRow,
    MetadataEvent,
    QueryTransport,
    SparqlEndpointTransport,
    StreamEvent,
    TopologyRow,
    TransportError,
    parse_row,
)

__all__ = [
    "SOURCE_ATTRIBUTION_VARIABLE",
    "TOPOLOGY_VARIABLE",
    "BindingRow",
    "MetadataEvent",
    "QueryTransport",
    "SparqlEndpointTransport",
    "StreamEvent",
    "TopologyRow",
    "TransportError",
    "parse_row",
]
