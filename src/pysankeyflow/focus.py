"""
Focus mode: restrict the view to one node and its immediate neighbours.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional, Sequence
import logging

from .model import CLASS_CHAIN, Edge, Graph, NodeClass
from .stages import StageOrder, validate_stage_order


logger = logging.getLogger(__name__)


def connected_nodes(node_id: str, edges: Sequence[Edge]) -> dict[str, list[str]]:
    """
    Split the neighbours of a node by direction.

    Returns:
        Dict with 'sources' (nodes linking to node_id) and 'targets'
        (nodes node_id links to), in edge order
    """
    connected: dict[str, list[str]] = {'sources': [], 'targets': []}
    for e in edges:
        if e.target == node_id:
            connected['sources'].append(e.source)
        if e.source == node_id:
            connected['targets'].append(e.target)
    return connected


def recenter_stage_order(order: Sequence[Any], focus_class: Any) -> StageOrder:
    """
    Move the focused class to the middle column.

    Three stages are rotated. Two stages are expanded to three: the class
    already beside the focused one stays on its side and the hidden class
    takes the opposite side.
    """
    stages = validate_stage_order(order)
    focus_class = NodeClass.parse(focus_class)
    if focus_class not in stages:
        return stages

    idx = stages.index(focus_class)
    if len(stages) == 3:
        return tuple(stages[(i + idx - 1) % 3] for i in range(3))

    hidden = next(c for c in CLASS_CHAIN if c not in stages)
    if idx == 0:
        return (hidden, focus_class, stages[1])
    return (stages[0], focus_class, hidden)


def resolve_focus(
    graph: Graph,
    order: Sequence[Any],
    focused_id: Optional[str] = None,
    context: Optional[Graph] = None
) -> tuple[Graph, StageOrder]:
    """
    Restrict a graph to a focused node and its one-hop neighbours.

    Args:
        graph: Organized graph, possibly carrying virtual edges
        order: Active stage order
        focused_id: Node to focus on; None leaves the graph unchanged
        context: Filter pipeline output. When a two-stage order is expanded,
            real neighbours in the previously hidden class come from here.

    Returns:
        (graph, stage order). Only edges touching the focused node are kept,
        columns follow the recentred order. A node without neighbours yields
        a single-node graph.
    """
    stages = validate_stage_order(order)
    if focused_id is None:
        return graph, stages

    focus = graph.get(focused_id)
    if focus is None:
        logger.debug("focused node %r is not displayed, ignoring focus", focused_id)
        return graph, stages

    recentred = recenter_stage_order(stages, focus.node_class)
    edges = [e for e in graph.edges if focused_id in (e.source, e.target)]

    extra_nodes = []
    if context is not None and len(recentred) > len(stages):
        hidden = next(c for c in recentred if c not in stages)
        context_nodes = context.node_map()
        added: set[str] = set()
        for e in context.edges:
            if focused_id not in (e.source, e.target):
                continue
            other = context_nodes.get(e.target if e.source == focused_id else e.source)
            if other is None or other.node_class != hidden:
                continue
            edges.append(e)
            if other.id not in added:
                added.add(other.id)
                extra_nodes.append(other)

    neighbours = {e.source for e in edges} | {e.target for e in edges}
    neighbours.add(focused_id)

    column = {c: i for i, c in enumerate(recentred)}
    nodes = [
        replace(n, column=column[n.node_class])
        for n in list(graph.nodes) + extra_nodes
        if n.id in neighbours
    ]
    nodes.sort(key=lambda n: n.column)

    return Graph.derive(nodes, edges), recentred
