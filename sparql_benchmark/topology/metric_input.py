"""
Traversal Metric Input Preparation.

Converts a tracked topology and per-result source attribution into the
one-indexed representation the metric evaluator works on.
"""

from sparql_benchmark.topology.models import (
    Edge,
    MetricInput,
    TopologyWeighting,
    TraversalTopology,
)


def to_one_indexed(edges: list[Edge]) -> list[Edge]:
    """Shift edge endpoints by one; a missing weight becomes 1."""
    return [
        [edge[0] + 1, edge[1] + 1, edge[2] if len(edge) > 2 and edge[2] is not None else 1]
        for edge in edges
    ]


def find_roots(node_metadata: list[dict]) -> list[int]:
    """One-indexed positions of nodes that have no parent."""
    return [
        index + 1
        for index, metadata in enumerate(node_metadata)
        if not metadata.get("hasParent")
    ]


def prepare_metric_input(
    topology: TraversalTopology,
    contributing_documents: list[list[str]],
    weighting: TopologyWeighting | str = TopologyWeighting.UNWEIGHTED,
) -> MetricInput:
    """
    Build the evaluator input for one query.

    Args:
        topology: Topology tracked by the engine
        contributing_documents: Per result, the identifiers of the documents
            that contributed to it. Identifiers must be keys of
            ``topology.node_to_index``.
        weighting: Which edge list to use

    Returns:
        One-indexed metric input
    """
    node_to_index = topology.node_to_index
    return MetricInput(
        edge_list=to_one_indexed(topology.edge_list(weighting)),
        contributing_nodes=[
            [node_to_index[document] + 1 for document in group]
            for group in contributing_documents
        ],
        traversed_path=to_one_indexed(topology.traversal_order_edges),
        num_nodes=topology.node_count,
        roots=find_roots(topology.node_metadata),
    )
