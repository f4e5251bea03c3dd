"""
Profiling script for pysankeyflow recompute performance.

Times full recomputation over random research graphs for the control
changes a host triggers most: default view, hidden mediator, focus,
and collapsed categories.
"""

import cProfile
import io
import pstats
import time
from pstats import SortKey

import numpy as np
from pysankeyflow import EngineState, FilterControls, Graph, make_edge, make_node, recompute


CATEGORIES = ['Cognition', 'Affect', 'Behaviour', 'Social']


def create_graph(n_per_class, edge_prob, seed=42):
    """Create a random Theory -> Theme -> Study graph with n_per_class nodes per class."""
    rng = np.random.default_rng(seed)
    ids = {}
    nodes = []
    for cls, prefix in (('Theory', 'T'), ('Theme', 'M'), ('Study', 'S')):
        ids[cls] = [f"{prefix}{i}" for i in range(n_per_class)]
        for node_id in ids[cls]:
            nodes.append(make_node(
                node_id, cls,
                label_short=f"{cls} {node_id}",
                category=CATEGORIES[int(rng.integers(len(CATEGORIES)))],
            ))

    edges = []
    for a, b in (('Theory', 'Theme'), ('Theme', 'Study')):
        for s in ids[a]:
            for t in ids[b]:
                if rng.random() < edge_prob:
                    edges.append(make_edge(s, t, int(rng.integers(0, 5))))
    return Graph.derive(nodes, edges)


def profile_default(raw):
    """Profile the default three-stage view."""
    recompute(raw, EngineState())


def profile_hidden_mediator(raw):
    """Profile a Theory -> Study view with virtual edges."""
    recompute(raw, EngineState(stage_order=('Theory', 'Study')))


def profile_filters(raw):
    """Profile search, strength and complexity filters together."""
    state = EngineState(filters=FilterControls(
        search_term='theory', strength_range=(1, 4), complexity=0.5, omit_orphans=True
    ))
    recompute(raw, state)


def profile_focus(raw):
    """Profile focus on a Theory in a two-stage view."""
    recompute(raw, EngineState(stage_order=('Theory', 'Study'), focused_node_id='T0'))


def profile_grouping(raw):
    """Profile collapsing every Theme category."""
    collapsed = frozenset(f"Theme-{c}" for c in CATEGORIES)
    recompute(raw, EngineState(collapsed_categories=collapsed))


def time_scenario(func, raw, repeat=10):
    """Wall-clock milliseconds of each of repeat recomputes."""
    samples = np.empty(repeat)
    for i in range(repeat):
        start = time.perf_counter()
        func(raw)
        samples[i] = (time.perf_counter() - start) * 1000
    return samples


def benchmark_scenario(name, func, raw, repeat=10, top=15):
    """Time a scenario, then profile one more run and report its hot spots."""
    samples = time_scenario(func, raw, repeat)
    print(f"\n{name}: median {np.median(samples):.1f}ms, "
          f"min {samples.min():.1f}ms, max {samples.max():.1f}ms over {repeat} runs")

    profiler = cProfile.Profile()
    profiler.runcall(func, raw)

    report = io.StringIO()
    pstats.Stats(profiler, stream=report).sort_stats(SortKey.TIME).print_stats(top)
    print(report.getvalue())
    return profiler


def main():
    """Run all profiling scenarios."""
    print("pysankeyflow Recompute Profiling")
    print("=" * 60)

    raw = create_graph(150, 0.05)
    print(f"Graph: {len(raw.nodes)} nodes, {len(raw.edges)} edges")

    scenarios = [
        ("Default view", profile_default),
        ("Hidden mediator", profile_hidden_mediator),
        ("All filters", profile_filters),
        ("Focus in two-stage view", profile_focus),
        ("Collapsed Themes", profile_grouping),
    ]

    for name, func in scenarios:
        profiler = benchmark_scenario(name, func, raw)
        filename = f"profile_{name.lower().replace(' ', '_').replace('-', '_')}.prof"
        profiler.dump_stats(filename)
        print(f"Saved: {filename}")

    print("\nTo view a detailed profile, use:")
    print("  python -m pstats <profile_file>")


if __name__ == "__main__":
    main()
