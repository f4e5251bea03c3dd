"""Summaries of a graph for control panels and diagnostics."""

from __future__ import annotations

from typing import Any, Iterable

from .model import CLASS_CHAIN, Graph, MAX_WEIGHT, MIN_WEIGHT, Node, NodeClass


def categories_by_class(nodes: Iterable[Node]) -> dict[str, list[str]]:
    """Sorted unique categories for each node class."""
    found: dict[str, set[str]] = {c.value: set() for c in CLASS_CHAIN}
    for n in nodes:
        found[NodeClass.parse(n.node_class).value].add(n.category)
    return {c: sorted(v) for c, v in found.items()}


def graph_stats(graph: Graph) -> dict[str, Any]:
    """
    Count nodes and edges of a graph.

    Returns:
        Dict with totalNodes, nodesByClass, totalLinks, linksByWeight,
        virtualLinks, orphanNodes and avgConnectionsPerNode
    """
    nodes_by_class = {c.value: 0 for c in CLASS_CHAIN}
    for n in graph.nodes:
        nodes_by_class[NodeClass.parse(n.node_class).value] += 1

    links_by_weight = {w: 0 for w in range(MIN_WEIGHT, MAX_WEIGHT + 1)}
    for e in graph.edges:
        links_by_weight[e.weight] += 1

    n_nodes = len(graph.nodes)
    n_links = len(graph.edges)
    return {
        'totalNodes': n_nodes,
        'nodesByClass': nodes_by_class,
        'totalLinks': n_links,
        'linksByWeight': links_by_weight,
        'virtualLinks': sum(1 for e in graph.edges if e.virtual),
        'orphanNodes': sum(1 for n in graph.nodes if n.is_orphan),
        'avgConnectionsPerNode': (n_links * 2) / n_nodes if n_nodes else 0.0,
    }
