"""
Graph model for the research flow diagram.

This module defines the immutable records that flow through the pipeline:
- NodeClass enumeration of the three fixed node classes
- Node and Edge records with their factories
- Graph, the single construction path that enforces referential
  integrity and recomputes derived node fields
- LayoutNode and LayoutEdge, the geometry-carrying output records
- build_graph, the ingestion boundary for already-parsed records
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Optional
import logging
import math


logger = logging.getLogger(__name__)

MIN_WEIGHT = 0
MAX_WEIGHT = 4
DEFAULT_CATEGORY = 'Uncategorized'


class PySankeyFlowError(Exception):
    """Base class for errors raised by the engine."""


class DataIntegrityError(PySankeyFlowError, ValueError):
    """An edge references a node that does not exist, or carries no usable weight."""


class ConfigurationError(PySankeyFlowError, ValueError):
    """A control value violates a documented precondition."""


class NodeClass(str, Enum):
    """
    The three node classes, in structural chain order.

    Edges in the raw dataset only connect Theory -> Theme and Theme -> Study.
    """
    Theory = 'Theory'
    Theme = 'Theme'
    Study = 'Study'

    @classmethod
    def parse(cls, value: Any) -> NodeClass:
        """Coerce a class name or member, raising ConfigurationError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            raise ConfigurationError(f"unknown node class: {value!r}") from None


CLASS_CHAIN = (NodeClass.Theory, NodeClass.Theme, NodeClass.Study)
MEDIATOR_CLASS = NodeClass.Theme


def clamp_weight(value: float) -> int:
    """Round half up and clamp a weight into [MIN_WEIGHT, MAX_WEIGHT]."""
    rounded = int(math.floor(float(value) + 0.5))
    return max(MIN_WEIGHT, min(MAX_WEIGHT, rounded))


@dataclass(frozen=True)
class Node:
    """
    Research graph node.

    Attributes:
        id: Unique identifier
        node_class: One of Theory, Theme, Study
        total_weight: Sum of incident edge weights in the current edge set
        is_orphan: True iff no edge in the current edge set touches the node
        column: Position of node_class in the active stage order, once organized
        is_group: True for a node standing in for a collapsed category
        member_count: Number of nodes a group node replaces
    """
    id: str
    node_class: NodeClass
    label_short: str = ''
    label_long: str = ''
    category: str = DEFAULT_CATEGORY
    authors: str = ''
    year: Optional[int] = None
    description: str = ''
    url: str = ''
    url_page: str = ''
    url_video: str = ''
    total_weight: int = 0
    is_orphan: bool = True
    column: Optional[int] = None
    is_group: bool = False
    member_count: int = 1


@dataclass(frozen=True)
class Edge:
    """
    Directed weighted edge between two node ids.

    Attributes:
        source: Source node id
        target: Target node id
        weight: Integer strength in [0, 4]
        virtual: True only for edges synthesized across a hidden class
    """
    source: str
    target: str
    weight: int
    virtual: bool = False

    def __post_init__(self):
        if not MIN_WEIGHT <= self.weight <= MAX_WEIGHT:
            raise DataIntegrityError(
                f"edge {self.source!r} -> {self.target!r} weight {self.weight!r} outside "
                f"[{MIN_WEIGHT}, {MAX_WEIGHT}]; use make_edge to clamp"
            )


@dataclass(frozen=True)
class LayoutNode(Node):
    """Node with its computed box (x0..x1, y0..y1) and allocated slot."""
    x0: float = 0.0
    x1: float = 0.0
    y0: float = 0.0
    y1: float = 0.0
    slot_y0: float = 0.0
    slot_y1: float = 0.0

    def height(self) -> float:
        return self.y1 - self.y0


@dataclass(frozen=True)
class LayoutEdge(Edge):
    """
    Edge with endpoint geometry.

    Attributes:
        source_port: y of the centre of this edge's band on the source box
        target_port: y of the centre of this edge's band on the target box
        source_x: x of the source box side facing the target
        target_x: x of the target box side facing the source
        width: Stroke width from the edge scaling law
        source_band: Height of the port band reserved on the source box
        target_band: Height of the port band reserved on the target box
    """
    source_port: float = 0.0
    target_port: float = 0.0
    source_x: float = 0.0
    target_x: float = 0.0
    width: float = 0.0
    source_band: float = 0.0
    target_band: float = 0.0


def make_node(node_id: str, node_class: Any, **fields: Any) -> Node:
    """
    Create a node with derived fields reset.

    Derived fields passed in are ignored; they only ever come from Graph.derive.
    """
    for derived in ('total_weight', 'is_orphan'):
        fields.pop(derived, None)
    return Node(id=str(node_id), node_class=NodeClass.parse(node_class), **fields)


def make_edge(source: str, target: str, weight: float, virtual: bool = False) -> Edge:
    """Create an edge with its weight clamped to [0, 4]."""
    return Edge(source=str(source), target=str(target),
                weight=clamp_weight(weight), virtual=bool(virtual))


def incident_weights(edges: Iterable[Edge]) -> dict[str, int]:
    """Fold edge weights into a fresh map of node id -> summed incident weight."""
    totals: dict[str, int] = {}
    for e in edges:
        totals[e.source] = totals.get(e.source, 0) + e.weight
        if e.target != e.source:
            totals[e.target] = totals.get(e.target, 0) + e.weight
    return totals


@dataclass(frozen=True)
class Graph:
    """
    Immutable node/edge set.

    Build instances with Graph.derive so that referential integrity and the
    derived node fields always hold.
    """
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @classmethod
    def derive(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> Graph:
        """
        Construct a graph from candidate nodes and edges.

        Edges with an endpoint outside the node set are dropped, then every
        node is re-materialized with total_weight and is_orphan computed from
        the surviving edges.
        """
        nodes = tuple(nodes)
        ids = {n.id for n in nodes}
        kept = tuple(e for e in edges if e.source in ids and e.target in ids)

        degree: set[str] = set()
        for e in kept:
            degree.add(e.source)
            degree.add(e.target)
        totals = incident_weights(kept)

        fresh = []
        for n in nodes:
            total = totals.get(n.id, 0)
            orphan = n.id not in degree
            if n.total_weight == total and n.is_orphan == orphan:
                fresh.append(n)
            else:
                fresh.append(replace(n, total_weight=total, is_orphan=orphan))
        return cls(tuple(fresh), kept)

    @classmethod
    def empty(cls) -> Graph:
        return cls()

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def get(self, node_id: str) -> Optional[Node]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def with_nodes(self, nodes: Iterable[Node]) -> Graph:
        """Restrict to the given nodes, keeping only edges between them."""
        return Graph.derive(nodes, self.edges)

    def with_edges(self, edges: Iterable[Edge]) -> Graph:
        """Replace the edge set, keeping the current nodes."""
        return Graph.derive(self.nodes, edges)


def _text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and math.isnan(value):
        return ''
    return str(value).strip()


def _year(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _numeric(value: Any) -> Optional[float]:
    """Parse a finite number, or None for booleans, text, NaN and infinities."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def build_graph(
    node_records: Iterable[Mapping[str, Any]],
    edge_records: Iterable[Mapping[str, Any]],
    strict: bool = False
) -> Graph:
    """
    Build the raw graph from already-parsed tabular records.

    Node records missing id, node_class or label_short are skipped. Edge
    records whose endpoints do not resolve or whose weight is not numeric are
    dropped and logged, or raise DataIntegrityError when strict is True.

    Args:
        node_records: Mappings with node columns
        edge_records: Mappings with source, target and weight columns
        strict: Raise instead of dropping bad edges

    Returns:
        Graph with weights clamped to [0, 4] and derived fields populated
    """
    nodes: list[Node] = []
    seen: set[str] = set()
    for rec in node_records:
        node_id = _text(rec.get('id'))
        node_class = _text(rec.get('node_class', rec.get('class')))
        label_short = _text(rec.get('label_short'))
        if not node_id or not node_class or not label_short:
            logger.warning("skipping node record without id, class or label: %r", dict(rec))
            continue
        if node_id in seen:
            logger.warning("skipping duplicate node id %r", node_id)
            continue
        seen.add(node_id)
        nodes.append(make_node(
            node_id,
            node_class,
            label_short=label_short,
            label_long=_text(rec.get('label_long')) or label_short,
            category=_text(rec.get('category')) or DEFAULT_CATEGORY,
            authors=_text(rec.get('authors')),
            year=_year(rec.get('year')),
            description=_text(rec.get('description')),
            url=_text(rec.get('url')),
            url_page=_text(rec.get('url_page')),
            url_video=_text(rec.get('url_video')),
        ))

    edges: list[Edge] = []
    for rec in edge_records:
        source = _text(rec.get('source'))
        target = _text(rec.get('target'))
        weight = _numeric(rec.get('weight'))
        problem = None
        if source not in seen or target not in seen:
            problem = f"edge {source!r} -> {target!r} references a missing node"
        elif weight is None:
            problem = f"edge {source!r} -> {target!r} has non-numeric weight {rec.get('weight')!r}"
        if problem is not None:
            if strict:
                raise DataIntegrityError(problem)
            logger.warning("dropping %s", problem)
            continue
        edges.append(make_edge(source, target, weight))

    return Graph.derive(nodes, edges)
