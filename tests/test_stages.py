"""Tests for stages module."""

import pytest
from pysankeyflow.filters import FilterControls, filter_graph
from pysankeyflow.model import ConfigurationError, Graph, NodeClass, make_edge, make_node
from pysankeyflow.stages import (
    DEFAULT_STAGE_ORDER, STAGE_PRESETS, drop_orphans, mediated_paths,
    organize_stages, synthesize_virtual_edges, validate_stage_order
)


def sample_graph():
    """Two nodes per class, edges T1->M1(2), T1->M2(1), M1->S1(3), M2->S2(4)."""
    nodes = [
        make_node('T1', 'Theory'),
        make_node('S1', 'Study'),
        make_node('M1', 'Theme'),
        make_node('T2', 'Theory'),
        make_node('M2', 'Theme'),
        make_node('S2', 'Study'),
    ]
    edges = [
        make_edge('T1', 'M1', 2),
        make_edge('T1', 'M2', 1),
        make_edge('M1', 'S1', 3),
        make_edge('M2', 'S2', 4),
    ]
    return Graph.derive(nodes, edges)


def synthesize(graph, order):
    organized = organize_stages(graph, order)
    return synthesize_virtual_edges(graph, organized, order)


class TestValidateStageOrder:
    """Test stage order validation."""

    def test_valid(self):
        """Test strings are normalized to classes."""
        assert validate_stage_order(['Theory', 'Study']) == (NodeClass.Theory, NodeClass.Study)

    def test_too_short(self):
        """Test a single stage is rejected."""
        with pytest.raises(ConfigurationError):
            validate_stage_order(['Theory'])

    def test_empty(self):
        """Test an empty order is rejected."""
        with pytest.raises(ConfigurationError):
            validate_stage_order([])

    def test_too_long(self):
        """Test four stages are rejected."""
        with pytest.raises(ConfigurationError):
            validate_stage_order(['Theory', 'Theme', 'Study', 'Theory'])

    def test_duplicates(self):
        """Test duplicate classes are rejected."""
        with pytest.raises(ConfigurationError):
            validate_stage_order(['Theme', 'Theme'])

    def test_unknown_class(self):
        """Test unknown classes are rejected."""
        with pytest.raises(ConfigurationError):
            validate_stage_order(['Theory', 'Paper'])

    def test_string_rejected(self):
        """Test a bare string is not treated as a sequence of classes."""
        with pytest.raises(ConfigurationError):
            validate_stage_order('Theory')

    def test_presets_valid(self):
        """Test every preset is a valid order."""
        for order in STAGE_PRESETS.values():
            assert validate_stage_order(order) == order
        assert DEFAULT_STAGE_ORDER == (NodeClass.Theory, NodeClass.Theme, NodeClass.Study)


class TestOrganizeStages:
    """Test column assignment."""

    def test_columns(self):
        """Test columns follow the stage order."""
        g = organize_stages(sample_graph(), ['Theory', 'Theme', 'Study'])
        columns = {n.id: n.column for n in g.nodes}
        assert columns == {'T1': 0, 'T2': 0, 'M1': 1, 'M2': 1, 'S1': 2, 'S2': 2}

    def test_stable_order(self):
        """Test nodes are grouped by column keeping dataset order."""
        g = organize_stages(sample_graph(), ['Study', 'Theme', 'Theory'])
        assert [n.id for n in g.nodes] == ['S1', 'S2', 'M1', 'M2', 'T1', 'T2']

    def test_drops_inactive_classes(self):
        """Test nodes of inactive classes and their edges are removed."""
        g = organize_stages(sample_graph(), ['Theory', 'Theme'])
        assert [n.id for n in g.nodes] == ['T1', 'T2', 'M1', 'M2']
        assert [(e.source, e.target) for e in g.edges] == [('T1', 'M1'), ('T1', 'M2')]
        assert g.get('M1').total_weight == 2

    def test_does_not_touch_input(self):
        """Test the input graph keeps its records."""
        g = sample_graph()
        organize_stages(g, ['Theory', 'Study'])
        assert all(n.column is None for n in g.nodes)

    def test_invalid_order(self):
        """Test invalid orders are rejected at this boundary."""
        with pytest.raises(ConfigurationError):
            organize_stages(sample_graph(), ['Theory'])


class TestVirtualEdges:
    """Test virtual edge synthesis."""

    def test_weight_is_rounded_average(self):
        """Test A->B(3), B->C(1) gives A->C with weight 2."""
        g = Graph.derive(
            [make_node('A', 'Theory'), make_node('B', 'Theme'), make_node('C', 'Study')],
            [make_edge('A', 'B', 3), make_edge('B', 'C', 1)],
        )
        out = synthesize(g, ['Theory', 'Study'])

        assert len(out.edges) == 1
        e = out.edges[0]
        assert (e.source, e.target, e.weight, e.virtual) == ('A', 'C', 2, True)

    def test_halves_round_up(self):
        """Test (2 + 3) / 2 rounds to 3."""
        out = synthesize(sample_graph(), ['Theory', 'Study'])
        edges = [(e.source, e.target, e.weight) for e in out.edges]
        assert edges == [('T1', 'S1', 3), ('T1', 'S2', 3)]
        assert all(e.virtual for e in out.edges)

    def test_one_edge_per_mediator(self):
        """Test parallel paths through different mediators are not merged."""
        g = Graph.derive(
            [make_node('T', 'Theory'), make_node('M1', 'Theme'),
             make_node('M2', 'Theme'), make_node('S', 'Study')],
            [make_edge('T', 'M1', 2), make_edge('T', 'M2', 2),
             make_edge('M1', 'S', 2), make_edge('M2', 'S', 4)],
        )
        out = synthesize(g, ['Theory', 'Study'])

        assert [(e.source, e.target, e.weight) for e in out.edges] == [('T', 'S', 2), ('T', 'S', 3)]
        assert out.get('T').total_weight == 5

    def test_reversed_order(self):
        """Test synthesized edges keep the Theory -> Study direction."""
        out = synthesize(sample_graph(), ['Study', 'Theory'])
        assert [(e.source, e.target) for e in out.edges] == [('T1', 'S1'), ('T1', 'S2')]
        assert {n.id: n.column for n in out.nodes}['T1'] == 1

    def test_mediators_come_from_filtered_graph(self):
        """Test mediators are read from the filter output, not the organized graph."""
        g = sample_graph()
        organized = organize_stages(g, ['Theory', 'Study'])
        assert organized.edges == ()

        out = synthesize_virtual_edges(g, organized, ['Theory', 'Study'])
        assert len(out.edges) == 2

    def test_filtered_out_mediator(self):
        """Test mediators removed by filtering do not produce paths."""
        filtered = filter_graph(sample_graph(), FilterControls(strength_range=(2, 4)))
        out = synthesize(filtered, ['Theory', 'Study'])
        assert [(e.source, e.target) for e in out.edges] == [('T1', 'S1')]

    def test_non_mediator_hidden(self):
        """Test hiding Study or Theory leaves edges untouched."""
        g = sample_graph()
        organized = organize_stages(g, ['Theory', 'Theme'])
        assert synthesize_virtual_edges(g, organized, ['Theory', 'Theme']) is organized

    def test_three_stages(self):
        """Test nothing is synthesized with all classes shown."""
        g = sample_graph()
        organized = organize_stages(g, DEFAULT_STAGE_ORDER)
        out = synthesize_virtual_edges(g, organized, DEFAULT_STAGE_ORDER)
        assert out is organized
        assert not any(e.virtual for e in out.edges)

    def test_mediated_paths(self):
        """Test the two-hop path enumeration."""
        paths = [(a.source, a.target, b.target) for a, b in mediated_paths(sample_graph())]
        assert paths == [('T1', 'M1', 'S1'), ('T1', 'M2', 'S2')]


class TestDropOrphans:
    """Test the orphan sweep."""

    def test_drop(self):
        """Test nodes without edges after synthesis are dropped."""
        out = drop_orphans(synthesize(sample_graph(), ['Theory', 'Study']))
        assert [n.id for n in out.nodes] == ['T1', 'S1', 'S2']
