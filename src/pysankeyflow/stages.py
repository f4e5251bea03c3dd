"""
Stage organization and virtual edge synthesis.

The stage order is the ordered subset (two or three classes) that decides
which classes are shown and in which column. When the mediating Theme class
is hidden, two-hop Theory -> Theme -> Study paths are contracted into direct
virtual edges.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, Sequence

from .model import (
    CLASS_CHAIN,
    ConfigurationError,
    Edge,
    Graph,
    MEDIATOR_CLASS,
    NodeClass,
    make_edge,
)


StageOrder = tuple[NodeClass, ...]

STAGE_PRESETS: dict[str, StageOrder] = {
    'Default': (NodeClass.Theory, NodeClass.Theme, NodeClass.Study),
    'Reverse': (NodeClass.Study, NodeClass.Theme, NodeClass.Theory),
    'Theme-Centered': (NodeClass.Theme, NodeClass.Theory, NodeClass.Study),
    'Study-First': (NodeClass.Study, NodeClass.Theory, NodeClass.Theme),
}

DEFAULT_STAGE_ORDER = STAGE_PRESETS['Default']


def validate_stage_order(order: Sequence[Any]) -> StageOrder:
    """
    Check and normalize a stage order.

    Raises:
        ConfigurationError: fewer than 2 or more than 3 entries, duplicates,
            or an unknown class name
    """
    if order is None or isinstance(order, (str, bytes)):
        raise ConfigurationError(f"stage order must be a sequence of classes, got {order!r}")
    stages = tuple(NodeClass.parse(s) for s in order)
    if not 2 <= len(stages) <= len(CLASS_CHAIN):
        raise ConfigurationError(
            f"stage order needs 2 or 3 classes, got {len(stages)}: {[s.value for s in stages]}"
        )
    if len(set(stages)) != len(stages):
        raise ConfigurationError(
            f"stage order contains duplicate classes: {[s.value for s in stages]}"
        )
    return stages


def organize_stages(graph: Graph, order: Sequence[Any]) -> Graph:
    """
    Restrict a graph to the active classes and assign columns.

    Nodes are stably sorted by column, so dataset order is preserved within
    each column; the layout reuses this order for slot and port stacking.
    """
    stages = validate_stage_order(order)
    column = {c: i for i, c in enumerate(stages)}

    kept = [
        replace(n, column=column[n.node_class])
        for n in graph.nodes
        if n.node_class in column
    ]
    kept.sort(key=lambda n: n.column)
    return graph.with_nodes(kept)


def mediated_paths(filtered: Graph) -> Iterable[tuple[Edge, Edge]]:
    """
    Yield (t -> m, m -> s) edge pairs through a mediating Theme node.

    Classes are read from the filtered graph, so Theme membership is
    judged against the filter output regardless of the stage order.
    """
    classes = {n.id: n.node_class for n in filtered.nodes}
    first_hops: dict[str, list[Edge]] = {}
    outgoing: dict[str, list[Edge]] = {}

    for e in filtered.edges:
        src = classes.get(e.source)
        dst = classes.get(e.target)
        if src == NodeClass.Theory and dst == MEDIATOR_CLASS:
            first_hops.setdefault(e.source, []).append(e)
        elif src == MEDIATOR_CLASS and dst == NodeClass.Study:
            outgoing.setdefault(e.source, []).append(e)

    for hops in first_hops.values():
        for first in hops:
            for second in outgoing.get(first.target, ()):
                yield first, second


def synthesize_virtual_edges(filtered: Graph, organized: Graph, order: Sequence[Any]) -> Graph:
    """
    Contract two-hop paths through a hidden mediator into virtual edges.

    Only applies to two-stage orders that hide the Theme class. One virtual
    edge is emitted per mediating path, with weight round((w1 + w2) / 2);
    parallel paths between the same pair are not merged.

    Args:
        filtered: Filter pipeline output, the source of the two-hop paths
        organized: Stage organizer output for the same order
        order: Active stage order

    Returns:
        The organized graph with the virtual edges added when the mediator
        is hidden, unchanged otherwise
    """
    stages = validate_stage_order(order)
    if len(stages) != 2 or MEDIATOR_CLASS in stages:
        return organized

    present = organized.node_ids()
    virtual = [
        make_edge(first.source, second.target,
                  (first.weight + second.weight) / 2, virtual=True)
        for first, second in mediated_paths(filtered)
        if first.source in present and second.target in present
    ]
    direct = [e for e in organized.edges if not e.virtual]
    return organized.with_edges(direct + virtual)


def drop_orphans(graph: Graph) -> Graph:
    """Drop nodes left without incident edges."""
    return graph.with_nodes(n for n in graph.nodes if not n.is_orphan)
