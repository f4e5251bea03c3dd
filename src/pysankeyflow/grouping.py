"""
Collapse whole categories into single group nodes.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from .model import Edge, Graph, MAX_WEIGHT, Node, NodeClass, make_edge


GROUP_PREFIX = 'GROUP-'


def category_key(node: Node) -> str:
    """Key identifying a node's category within its class, e.g. 'Theme-Motivation'."""
    return f"{NodeClass.parse(node.node_class).value}-{node.category}"


def group_id(key: str) -> str:
    return f"{GROUP_PREFIX}{key}"


def apply_category_grouping(graph: Graph, collapsed: Optional[Iterable[str]]) -> Graph:
    """
    Replace every node of a collapsed category by one group node.

    The group node takes the place of the category's first member. Edges are
    re-pointed to group nodes; edges that end up between the same pair
    merge, summing weights capped at MAX_WEIGHT. Edges that would become
    self-loops are dropped.

    Args:
        graph: Graph to group
        collapsed: Category keys (see category_key) to collapse

    Returns:
        Grouped graph, or the input unchanged when nothing is collapsed
    """
    collapsed = set(collapsed or ())
    if not collapsed:
        return graph

    members: dict[str, list[Node]] = {}
    for n in graph.nodes:
        key = category_key(n)
        if key in collapsed:
            members.setdefault(key, []).append(n)
    if not members:
        return graph

    mapping: dict[str, str] = {}
    nodes: list[Node] = []
    for n in graph.nodes:
        key = category_key(n)
        if key not in members:
            mapping[n.id] = n.id
            nodes.append(n)
            continue
        gid = group_id(key)
        mapping[n.id] = gid
        if members[key][0] is n:
            count = len(members[key])
            nodes.append(replace(
                n,
                id=gid,
                label_short=f"{n.category} ({count})",
                label_long=f"{n.category} - {count} items",
                authors='',
                year=None,
                description='',
                url='',
                url_page='',
                url_video='',
                is_group=True,
                member_count=count,
            ))

    # Edges between ungrouped nodes pass through untouched.
    entries: list = []
    merged: dict[tuple[str, str], list[Edge]] = {}
    for e in graph.edges:
        pair = (mapping[e.source], mapping[e.target])
        if pair == (e.source, e.target):
            entries.append(e)
            continue
        if pair[0] == pair[1]:
            continue
        if pair not in merged:
            merged[pair] = []
            entries.append(pair)
        merged[pair].append(e)

    edges = []
    for entry in entries:
        if isinstance(entry, Edge):
            edges.append(entry)
            continue
        parallel = merged[entry]
        edges.append(make_edge(
            entry[0],
            entry[1],
            min(sum(e.weight for e in parallel), MAX_WEIGHT),
            virtual=all(e.virtual for e in parallel),
        ))
    return Graph.derive(nodes, edges)
