"""NetworkX utilities — graph building, bounded paths, modularity, centrality."""

import logging
from typing import Iterable, Optional, Sequence

import networkx as nx

from .models import GraphSnapshot

logger = logging.getLogger(__name__)


def build_networkx_graph(
    node_ids: Iterable[str],
    edges: Iterable[tuple[str, str, int]],
) -> nx.Graph:
    """Build an undirected NetworkX graph.

    Nodes and edges are inserted in sorted order so traversal order, and
    with it every tie between equal-length paths, is reproducible.
    Parallel edges between the same pair add up their weights.
    """
    G = nx.Graph()
    G.add_nodes_from(sorted(node_ids))
    for source, target, weight in sorted(edges):
        if not (G.has_node(source) and G.has_node(target)):
            continue
        if G.has_edge(source, target):
            G[source][target]["weight"] += weight
        else:
            G.add_edge(source, target, weight=weight)
    return G


def snapshot_graph(snapshot: GraphSnapshot) -> nx.Graph:
    return build_networkx_graph(
        snapshot.node_types,
        ((a, b, w) for (a, b), w in snapshot.pair_weights.items()),
    )


def bounded_shortest_path(
    G: nx.Graph,
    source: str,
    target: str,
    max_hops: int,
) -> Optional[list[str]]:
    """Node sequence of a fewest-hop path, or None beyond ``max_hops``."""
    paths = nx.single_source_shortest_path(G, source, cutoff=max_hops)
    return paths.get(target)


def partition_modularity(
    G: nx.Graph,
    communities: Sequence[Iterable[str]],
    resolution: float = 1.0,
) -> float:
    """Weighted modularity of a partition; 0.0 for an edgeless graph."""
    if G.number_of_edges() == 0:
        return 0.0
    return nx.community.modularity(
        G, [set(c) for c in communities], weight="weight", resolution=resolution,
    )


def compute_centrality(G: nx.Graph) -> dict[str, float]:
    """Betweenness centrality per node, sorted by node id.

    Returns:
        Dict mapping node id → centrality score (0.0 to 1.0).
    """
    if len(G.nodes) == 0:
        return {}
    centrality = nx.betweenness_centrality(G)
    return {node_id: round(centrality[node_id], 6) for node_id in sorted(centrality)}
