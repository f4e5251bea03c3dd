"""
Filter pipeline.

Applies strength-range, orphan, search and per-class complexity filtering
to a raw graph, in that order. Later steps depend on the edge set
produced by earlier ones, so the order is not interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Union
import math

from sortedcontainers import SortedList

from .model import (
    CLASS_CHAIN,
    ConfigurationError,
    Graph,
    MAX_WEIGHT,
    MIN_WEIGHT,
    Node,
)


class SearchMode(str, Enum):
    """
    Text matching modes.

    - loose: the joined searchable text contains the term
    - strict: some searchable field equals the term
    """
    loose = 'loose'
    strict = 'strict'

    @classmethod
    def parse(cls, value: Any) -> SearchMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"unknown search mode: {value!r}") from None


@dataclass(frozen=True)
class FilterControls:
    """
    Filter settings.

    The defaults leave the graph unchanged.

    Attributes:
        search_term: Free text, blank for no search
        search_mode: loose or strict
        strength_range: Inclusive (lo, hi) edge weight bounds
        complexity: Fraction of weighted nodes kept per class, 1.0 keeps all
        omit_orphans: Drop nodes without incident edges
    """
    search_term: str = ''
    search_mode: SearchMode = SearchMode.loose
    strength_range: tuple[int, int] = (MIN_WEIGHT, MAX_WEIGHT)
    complexity: float = 1.0
    omit_orphans: bool = False

    def is_searching(self) -> bool:
        return bool(self.search_term and self.search_term.strip())


def searchable_fields(node: Node) -> list[str]:
    """Return the non-empty text fields search looks at."""
    fields = [
        node.id,
        node.label_short,
        node.label_long,
        node.category,
        node.authors,
        node.description,
        str(node.year) if node.year is not None else '',
    ]
    return [f for f in fields if f]


def search(
    nodes: Iterable[Node],
    term: Optional[str],
    mode: Union[SearchMode, str] = SearchMode.loose
) -> list[Node]:
    """
    Filter nodes by free text.

    Args:
        nodes: Nodes to search
        term: Search text; blank keeps every node
        mode: loose (substring of the joined fields) or strict (whole field)

    Returns:
        Matching nodes in their original order
    """
    nodes = list(nodes)
    if not term or not term.strip():
        return nodes

    mode = SearchMode.parse(mode)
    needle = term.strip().casefold()

    if mode is SearchMode.strict:
        return [
            n for n in nodes
            if any(f.strip().casefold() == needle for f in searchable_fields(n))
        ]
    return [
        n for n in nodes
        if needle in ' '.join(searchable_fields(n)).casefold()
    ]


def filter_by_strength(graph: Graph, strength_range: tuple[float, float]) -> Graph:
    """Keep edges with lo <= weight <= hi."""
    lo, hi = strength_range
    return graph.with_edges(e for e in graph.edges if lo <= e.weight <= hi)


def omit_orphans(graph: Graph) -> Graph:
    """Drop nodes with no incident edge."""
    return graph.with_nodes(n for n in graph.nodes if not n.is_orphan)


def complexity_threshold(weights: Iterable[float], complexity: float) -> Optional[float]:
    """
    Percentile threshold over the positive weights of one class.

    Returns None when there is no positive weight to threshold on.
    """
    positive = SortedList(w for w in weights if w > 0)
    if not positive:
        return None
    index = int(math.floor(len(positive) * (1.0 - complexity)))
    index = max(0, min(index, len(positive) - 1))
    return positive[index]


def filter_by_complexity(graph: Graph, complexity: float) -> Graph:
    """
    Keep the heaviest fraction of each class independently.

    Nodes with zero total weight are never dropped here.
    """
    if complexity >= 1.0:
        return graph

    thresholds = {}
    for node_class in CLASS_CHAIN:
        weights = [n.total_weight for n in graph.nodes if n.node_class == node_class]
        thresholds[node_class] = complexity_threshold(weights, complexity)

    kept = []
    for n in graph.nodes:
        threshold = thresholds.get(n.node_class)
        if threshold is None or n.total_weight == 0 or n.total_weight >= threshold:
            kept.append(n)
    return graph.with_nodes(kept)


def filter_graph(raw: Graph, controls: Optional[FilterControls] = None) -> Graph:
    """
    Run the filter pipeline over a raw graph.

    Steps: strength range, connectivity recompute, orphan policy, search,
    per-class complexity, edge re-restriction. Connectivity is judged on the
    strength-filtered edges of the whole raw graph, before search narrows the
    node set, so a search hit whose neighbours did not match is still kept
    when orphans are omitted. Every intermediate
    graph is built through Graph.derive, so derived fields always describe
    the current edge set.
    """
    if controls is None:
        controls = FilterControls()

    graph = filter_by_strength(raw, controls.strength_range)
    if controls.omit_orphans:
        graph = omit_orphans(graph)
    graph = graph.with_nodes(search(graph.nodes, controls.search_term, controls.search_mode))
    return filter_by_complexity(graph, controls.complexity)
