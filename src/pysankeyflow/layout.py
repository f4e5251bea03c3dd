"""
Layered layout for the flow diagram.

This module positions an organized graph on a canvas:
- One column per active stage, nodes centred horizontally in their column
- Equal-height slots per column, stacked in organizer order
- Node boxes scaled by total weight and centred in their slot
- Edge widths scaled by weight, with ports stacked by cumulative weight
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Optional, Sequence, Union

import numpy as np

from .model import Edge, Graph, LayoutEdge, LayoutNode, Node
from .scaling import ScalingMode, edge_widths, node_heights
from .stages import StageOrder, validate_stage_order


NODE_WIDTH = 15.0
DEFAULT_WIDTH = 800.0
DEFAULT_HEIGHT = 600.0


@dataclass(frozen=True)
class Margins:
    top: float = 20.0
    right: float = 120.0
    bottom: float = 20.0
    left: float = 120.0


@dataclass(frozen=True)
class Canvas:
    """
    Drawing area.

    Attributes:
        width: Total width including margins
        height: Total height including margins
        margins: Space kept clear on each side
    """
    width: float = DEFAULT_WIDTH
    height: float = DEFAULT_HEIGHT
    margins: Margins = Margins()

    def usable_width(self) -> float:
        return max(self.width - self.margins.left - self.margins.right, 0.0)

    def usable_height(self) -> float:
        return max(self.height - self.margins.top - self.margins.bottom, 0.0)


def _stack_ports(
    edge_indices: list[int],
    weights: np.ndarray,
    top: float,
    height: float
) -> list[tuple[int, float, float]]:
    """
    Stack edge bands top-down over a box.

    Bands are proportional to weight and fill the box; all-zero weights
    share it equally.

    Returns:
        List of (edge index, band centre y, band height)
    """
    if not edge_indices:
        return []
    w = weights[edge_indices]
    total = float(w.sum())
    if total > 0:
        bands = height * w / total
    else:
        bands = np.full(len(edge_indices), height / len(edge_indices))
    starts = top + np.concatenate(([0.0], np.cumsum(bands)[:-1]))
    return [
        (i, float(s + b / 2), float(b))
        for i, s, b in zip(edge_indices, starts, bands)
    ]


class FlowLayout:
    """
    Configurable layered layout.

    Settings use get-or-set methods: called without an argument they return
    the current value, with an argument they set it and return self.
    """

    def __init__(self):
        self._canvas = Canvas()
        self._nodeWidth: float = NODE_WIDTH
        self._scaling: ScalingMode = ScalingMode.linear

    def size(self, v: Optional[Sequence[float]] = None) -> Union[list[float], FlowLayout]:
        """
        Get or set the canvas size.

        Args:
            v: Optional [width, height]

        Returns:
            Current [width, height] if v is None, otherwise self for chaining
        """
        if v is None:
            return [self._canvas.width, self._canvas.height]
        self._canvas = Canvas(float(v[0]), float(v[1]), self._canvas.margins)
        return self

    def margins(self, v: Optional[Margins] = None) -> Union[Margins, FlowLayout]:
        if v is None:
            return self._canvas.margins
        self._canvas = Canvas(self._canvas.width, self._canvas.height, v)
        return self

    def canvas(self, v: Optional[Canvas] = None) -> Union[Canvas, FlowLayout]:
        if v is None:
            return self._canvas
        self._canvas = v
        return self

    def node_width(self, v: Optional[float] = None) -> Union[float, FlowLayout]:
        if v is None:
            return self._nodeWidth
        self._nodeWidth = float(v)
        return self

    def scaling(self, v: Optional[Any] = None) -> Union[ScalingMode, FlowLayout]:
        """Get or set the scaling law used for node heights and edge widths."""
        if v is None:
            return self._scaling
        self._scaling = ScalingMode.parse(v)
        return self

    def compute(
        self,
        graph: Graph,
        order: Sequence[Any]
    ) -> tuple[tuple[LayoutNode, ...], tuple[LayoutEdge, ...]]:
        """
        Lay out an organized graph.

        Args:
            graph: Graph whose nodes carry columns for this order
            order: Active stage order

        Returns:
            (layout nodes, layout edges); both empty for an empty graph
        """
        stages = validate_stage_order(order)
        if not graph.nodes:
            return (), ()

        nodes = self._place_nodes(graph.nodes, stages)
        edges = self._route_edges(nodes, graph.edges)
        return nodes, edges

    def _place_nodes(self, nodes: Sequence[Node], stages: StageOrder) -> tuple[LayoutNode, ...]:
        canvas = self._canvas
        m = canvas.margins
        column_width = canvas.usable_width() / len(stages)
        offset = (column_width - self._nodeWidth) / 2
        usable_height = canvas.usable_height()

        heights = node_heights([n.total_weight for n in nodes], self._scaling)

        # Nodes without a column fall back to the position of their class.
        columns = []
        for n in nodes:
            if n.column is not None:
                columns.append(n.column)
            else:
                columns.append(stages.index(n.node_class) if n.node_class in stages else 0)

        counts: dict[int, int] = {}
        for c in columns:
            counts[c] = counts.get(c, 0) + 1

        placed = []
        row: dict[int, int] = {}
        for n, c, h in zip(nodes, columns, heights):
            slot = usable_height / counts[c]
            i = row.get(c, 0)
            row[c] = i + 1

            slot_top = m.top + i * slot
            y0 = slot_top + (slot - h) / 2
            x0 = m.left + c * column_width + offset
            placed.append(_layout_node(
                n,
                column=c,
                x0=x0,
                x1=x0 + self._nodeWidth,
                y0=float(y0),
                y1=float(y0 + h),
                slot_y0=slot_top,
                slot_y1=slot_top + slot,
            ))
        return tuple(placed)

    def _route_edges(
        self,
        nodes: tuple[LayoutNode, ...],
        edges: Sequence[Edge]
    ) -> tuple[LayoutEdge, ...]:
        if not edges:
            return ()

        position = {n.id: i for i, n in enumerate(nodes)}
        by_id = {n.id: n for n in nodes}
        weights = np.array([e.weight for e in edges], dtype=float)
        widths = edge_widths(weights, self._scaling)

        outgoing: dict[str, list[int]] = {}
        incoming: dict[str, list[int]] = {}
        for i, e in enumerate(edges):
            outgoing.setdefault(e.source, []).append(i)
            incoming.setdefault(e.target, []).append(i)

        source_ports: dict[int, tuple[float, float]] = {}
        target_ports: dict[int, tuple[float, float]] = {}
        for node_id, idx in outgoing.items():
            n = by_id[node_id]
            idx.sort(key=lambda i: position[edges[i].target])
            for i, y, band in _stack_ports(idx, weights, n.y0, n.height()):
                source_ports[i] = (y, band)
        for node_id, idx in incoming.items():
            n = by_id[node_id]
            idx.sort(key=lambda i: position[edges[i].source])
            for i, y, band in _stack_ports(idx, weights, n.y0, n.height()):
                target_ports[i] = (y, band)

        routed = []
        for i, e in enumerate(edges):
            s = by_id[e.source]
            t = by_id[e.target]
            forward = s.x0 <= t.x0
            routed.append(LayoutEdge(
                source=e.source,
                target=e.target,
                weight=e.weight,
                virtual=e.virtual,
                source_port=source_ports[i][0],
                target_port=target_ports[i][0],
                source_x=s.x1 if forward else s.x0,
                target_x=t.x0 if forward else t.x1,
                width=float(widths[i]),
                source_band=source_ports[i][1],
                target_band=target_ports[i][1],
            ))
        return tuple(routed)


def _layout_node(n: Node, **geometry: Any) -> LayoutNode:
    """Copy a node's record fields into a LayoutNode with the given geometry."""
    values = {f.name: getattr(n, f.name) for f in fields(Node)}
    values.update(geometry)
    return LayoutNode(**values)


def layout_graph(
    graph: Graph,
    order: Sequence[Any],
    canvas: Optional[Canvas] = None,
    mode: Union[ScalingMode, str] = ScalingMode.linear
) -> tuple[tuple[LayoutNode, ...], tuple[LayoutEdge, ...]]:
    """Functional form of FlowLayout().canvas(canvas).scaling(mode).compute(graph, order)."""
    layout = FlowLayout().scaling(mode)
    if canvas is not None:
        layout.canvas(canvas)
    return layout.compute(graph, order)
