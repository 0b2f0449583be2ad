"""
Traversal Topology Models.

Data models for the dependency graph a link-traversal engine reports per
query, and for the numeric input the traversal metric evaluator expects.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# [source, target] or [source, target, weight], zero- or one-indexed.
# The engine serializes an absent weight as null.
Edge = list[int | float | None]


class TopologyWeighting(str, Enum):
    """Edge list used to weight the traversal graph."""

    UNWEIGHTED = "unweighted"  # All weights equal
    REQUEST_TIME = "requestTime"  # Weight = HTTP request time of target
    DOCUMENT_SIZE = "documentSize"  # Weight = number of quads in target

    @classmethod
    def _missing_(cls, value: object) -> "TopologyWeighting | None":
        if isinstance(value, str):
            lowered = value.lower()
            if lowered == "httprequesttime":
                return cls.REQUEST_TIME
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None


class SearchStrategy(str, Enum):
    """Search strategy for first-k metric evaluation."""

    FULL = "full"  # Exhaustive
    REDUCED = "reduced"  # Approximate


class TraversalTopology(BaseModel):
    """
    Dependency graph tracked by the engine while answering one query.

    Nodes are retrieved documents, edges are dereference relations. Field
    aliases follow the JSON the engine serializes into the
    ``_trackedTopology`` binding.
    """

    model_config = ConfigDict(populate_by_name=True)

    node_to_index: dict[str, int] = Field(default_factory=dict, alias="nodeToIndex")
    edge_list_unweighted: list[Edge] = Field(default_factory=list, alias="edgeListUnWeighted")
    edge_list_request_time: list[Edge] = Field(default_factory=list, alias="edgeListRequestTime")
    edge_list_document_size: list[Edge] = Field(default_factory=list, alias="edgeListDocumentSize")
    edges_in_graph: dict[str, int] = Field(default_factory=dict, alias="edgesInGraph")
    node_metadata: list[dict[str, Any]] = Field(default_factory=list, alias="metadataNode")
    traversal_order: list[str] = Field(default_factory=list, alias="traversalOrder")
    traversal_order_edges: list[Edge] = Field(default_factory=list, alias="traversalOrderEdges")

    @property
    def node_count(self) -> int:
        return len(self.node_metadata)

    def edge_list(self, weighting: TopologyWeighting | str) -> list[Edge]:
        """Select the zero-indexed edge list for a weighting scheme."""
        weighting = TopologyWeighting(weighting)
        if weighting == TopologyWeighting.REQUEST_TIME:
            return self.edge_list_request_time
        if weighting == TopologyWeighting.DOCUMENT_SIZE:
            return self.edge_list_document_size
        return self.edge_list_unweighted


class MetricInput(BaseModel):
    """One-indexed graph representation consumed by the metric evaluator."""

    edge_list: list[Edge] = Field(default_factory=list)
    contributing_nodes: list[list[int]] = Field(
        default_factory=list,
        description="One group per result: nodes that contributed to it",
    )
    traversed_path: list[Edge] = Field(default_factory=list)
    num_nodes: int = 0
    roots: list[int] = Field(default_factory=list, description="Nodes without a parent")
