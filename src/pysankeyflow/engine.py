"""
Full recomputation from the raw graph and the current view state.

The host owns an immutable EngineState and calls recompute() whenever a
control changes. Each call replays filter, organize, synthesize, group,
focus and layout over the raw graph; nothing carries over between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional
import logging

from .filters import FilterControls, SearchMode, filter_graph
from .focus import resolve_focus
from .grouping import apply_category_grouping
from .layout import Canvas, layout_graph
from .model import ConfigurationError, Graph, LayoutEdge, LayoutNode, NodeClass
from .scaling import ScalingMode
from .stages import (
    DEFAULT_STAGE_ORDER,
    StageOrder,
    drop_orphans,
    organize_stages,
    synthesize_virtual_edges,
    validate_stage_order,
)


logger = logging.getLogger(__name__)

SETTINGS_VERSION = '1.0'
SUPPORTED_SETTINGS_VERSIONS = ('1.0',)


@dataclass(frozen=True)
class DisplayOptions:
    """
    Display settings.

    Attributes:
        scaling_mode: Law used for node heights and edge widths
        show_labels: Whether the renderer draws node labels
        groups_collapsed: Whether the control panel shows category groups folded
    """
    scaling_mode: ScalingMode = ScalingMode.logarithmic
    show_labels: bool = True
    groups_collapsed: bool = True


@dataclass(frozen=True)
class EngineState:
    """
    Everything the engine needs besides the raw graph.

    Attributes:
        filters: Filter pipeline controls
        stage_order: Active classes, left to right
        focused_node_id: Node to focus on, or None
        display: Display settings
        canvas: Drawing area
        collapsed_categories: Category keys ('<Class>-<Category>') shown as one node
    """
    filters: FilterControls = FilterControls()
    stage_order: tuple[Any, ...] = DEFAULT_STAGE_ORDER
    focused_node_id: Optional[str] = None
    display: DisplayOptions = DisplayOptions()
    canvas: Canvas = Canvas()
    collapsed_categories: frozenset[str] = field(default_factory=frozenset)

    def with_focus(self, node_id: Optional[str]) -> EngineState:
        return replace(self, focused_node_id=node_id)

    def without_focus(self) -> EngineState:
        return replace(self, focused_node_id=None)

    def with_filters(self, **changes: Any) -> EngineState:
        return replace(self, filters=replace(self.filters, **changes))

    def to_snapshot(self) -> dict[str, Any]:
        """
        JSON-serializable settings snapshot.

        Canvas dimensions belong to the host and are not included.
        """
        f = self.filters
        return {
            'version': SETTINGS_VERSION,
            'filters': {
                'strengthRange': list(f.strength_range),
                'complexity': f.complexity,
                'omitOrphans': f.omit_orphans,
            },
            'search': {
                'term': f.search_term,
                'mode': SearchMode.parse(f.search_mode).value,
            },
            'stageOrder': [s.value for s in validate_stage_order(self.stage_order)],
            'displayOptions': {
                'scalingMode': ScalingMode.parse(self.display.scaling_mode).value,
                'showLabels': self.display.show_labels,
                'groupsCollapsed': self.display.groups_collapsed,
            },
            'focusedNodeId': self.focused_node_id,
            'collapsedCategories': sorted(self.collapsed_categories),
        }

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any], canvas: Optional[Canvas] = None) -> EngineState:
        """
        Rebuild a state from a settings snapshot.

        Raises:
            ConfigurationError: missing version, filters or stageOrder, an
                unsupported version, or invalid values
        """
        if not isinstance(snapshot, Mapping):
            raise ConfigurationError("settings snapshot must be a mapping")
        missing = [k for k in ('version', 'filters', 'stageOrder') if not snapshot.get(k)]
        if missing:
            raise ConfigurationError(f"invalid settings snapshot, missing {', '.join(missing)}")
        version = str(snapshot['version'])
        if version not in SUPPORTED_SETTINGS_VERSIONS:
            raise ConfigurationError(f"unsupported settings version {version!r}")

        defaults = FilterControls()
        raw_filters = snapshot['filters']
        raw_search = snapshot.get('search') or {}
        raw_display = snapshot.get('displayOptions') or {}
        for name, section in (('filters', raw_filters), ('search', raw_search),
                              ('displayOptions', raw_display)):
            if not isinstance(section, Mapping):
                raise ConfigurationError(f"settings snapshot {name} must be a mapping, got {section!r}")
        try:
            lo, hi = (float(v) for v in raw_filters.get('strengthRange', defaults.strength_range))
            filters = FilterControls(
                search_term=str(raw_search.get('term', '')),
                search_mode=SearchMode.parse(raw_search.get('mode', SearchMode.loose)),
                strength_range=(lo, hi),
                complexity=float(raw_filters.get('complexity', defaults.complexity)),
                omit_orphans=bool(raw_filters.get('omitOrphans', defaults.omit_orphans)),
            )
        except (TypeError, ValueError) as err:
            raise ConfigurationError(f"invalid filters in settings snapshot: {err}") from err

        display = DisplayOptions(
            scaling_mode=ScalingMode.parse(raw_display.get('scalingMode', ScalingMode.logarithmic)),
            show_labels=bool(raw_display.get('showLabels', True)),
            groups_collapsed=bool(raw_display.get('groupsCollapsed', True)),
        )
        return cls(
            filters=filters,
            stage_order=validate_stage_order(snapshot['stageOrder']),
            focused_node_id=snapshot.get('focusedNodeId'),
            display=display,
            canvas=canvas if canvas is not None else Canvas(),
            collapsed_categories=frozenset(snapshot.get('collapsedCategories') or ()),
        )


@dataclass(frozen=True)
class LayoutGraph:
    """Engine output: positioned nodes, routed edges and the displayed stage order."""
    nodes: tuple[LayoutNode, ...] = ()
    edges: tuple[LayoutEdge, ...] = ()
    stage_order: tuple[NodeClass, ...] = ()


def run_pipeline(raw: Graph, state: EngineState) -> tuple[Graph, StageOrder]:
    """
    Derive the displayed subgraph and stage order, without geometry.

    Raises:
        ConfigurationError: invalid stage order
    """
    stages = validate_stage_order(state.stage_order)

    filtered = filter_graph(raw, state.filters)
    organized = organize_stages(filtered, stages)
    organized = synthesize_virtual_edges(filtered, organized, stages)
    # Under a search, orphan status was settled before the node set narrowed.
    if state.filters.omit_orphans and not state.filters.is_searching():
        organized = drop_orphans(organized)
    grouped = apply_category_grouping(organized, state.collapsed_categories)
    focused, order = resolve_focus(grouped, stages, state.focused_node_id, context=filtered)

    logger.debug(
        "pipeline: raw %d/%d, filtered %d/%d, organized %d/%d, displayed %d/%d nodes/edges",
        len(raw.nodes), len(raw.edges),
        len(filtered.nodes), len(filtered.edges),
        len(organized.nodes), len(organized.edges),
        len(focused.nodes), len(focused.edges),
    )
    return focused, order


def recompute(raw: Graph, state: Optional[EngineState] = None) -> LayoutGraph:
    """
    Run the whole pipeline and lay out the result.

    Args:
        raw: Immutable raw graph, never modified
        state: View state; defaults to EngineState()

    Returns:
        LayoutGraph for the renderer

    Raises:
        ConfigurationError: invalid stage order
    """
    if state is None:
        state = EngineState()
    graph, order = run_pipeline(raw, state)
    nodes, edges = layout_graph(graph, order, state.canvas, state.display.scaling_mode)
    return LayoutGraph(nodes, edges, order)
