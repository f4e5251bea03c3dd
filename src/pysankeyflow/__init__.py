"""
PySankeyFlow: filtering and layered layout for Theory -> Theme -> Study research graphs.

Turns a raw research graph and a set of view controls into the exact
subgraph to display and its column/row geometry for a flow diagram.
"""

__version__ = "0.1.0"

from .model import (
    ConfigurationError,
    DataIntegrityError,
    Edge,
    Graph,
    LayoutEdge,
    LayoutNode,
    Node,
    NodeClass,
    PySankeyFlowError,
    build_graph,
    make_edge,
    make_node,
)
from .scaling import ScalingMode, scale_normalized, scale_value, scale_values
from .filters import FilterControls, SearchMode, filter_graph, search
from .stages import STAGE_PRESETS, organize_stages, synthesize_virtual_edges, validate_stage_order
from .focus import connected_nodes, recenter_stage_order, resolve_focus
from .grouping import apply_category_grouping, category_key
from .stats import categories_by_class, graph_stats
from .layout import Canvas, FlowLayout, Margins, layout_graph
from .engine import DisplayOptions, EngineState, LayoutGraph, recompute, run_pipeline

__all__ = [
    'ConfigurationError',
    'DataIntegrityError',
    'Edge',
    'Graph',
    'LayoutEdge',
    'LayoutNode',
    'Node',
    'NodeClass',
    'PySankeyFlowError',
    'build_graph',
    'make_edge',
    'make_node',
    'ScalingMode',
    'scale_normalized',
    'scale_value',
    'scale_values',
    'FilterControls',
    'SearchMode',
    'filter_graph',
    'search',
    'STAGE_PRESETS',
    'organize_stages',
    'synthesize_virtual_edges',
    'validate_stage_order',
    'connected_nodes',
    'recenter_stage_order',
    'resolve_focus',
    'apply_category_grouping',
    'category_key',
    'categories_by_class',
    'graph_stats',
    'Canvas',
    'FlowLayout',
    'Margins',
    'layout_graph',
    'DisplayOptions',
    'EngineState',
    'LayoutGraph',
    'recompute',
    'run_pipeline',
]
