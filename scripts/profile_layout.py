"""
Profiling script for syslayout.

Runs the layout loop to rest on random dependency graphs of increasing size,
on virtual time, and reports where the time goes.
"""

import cProfile
import io
import pstats
import sys
import time
from pathlib import Path
from pstats import SortKey

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np
from syslayout import LayoutManager, ManualClock, PositionCache, PseudoRandom, Scheduler, identify_groups
from syslayout.graph import as_node


def create_graph(n_nodes, n_links, n_groups=0, seed=42):
    """Create a random graph of n nodes, roughly n_links links and optional groups."""
    rng = np.random.default_rng(seed)
    nodes = []
    for i in range(n_nodes):
        node = {'id': f"system-{i}"}
        if n_groups:
            # most systems belong to one group, some to two
            count = 2 if rng.random() < 0.2 else 1
            node['groups'] = [f"group-{g}" for g in rng.choice(n_groups, size=count, replace=False)]
        nodes.append(node)

    links = []
    for _ in range(n_links):
        source, target = rng.integers(0, n_nodes, size=2)
        if source != target:
            links.append({'source': f"system-{source}", 'target': f"system-{target}"})

    return nodes, links


def settle(nodes, links, with_groups=False, cache=None):
    """Lay out the graph until the simulation comes to rest."""
    scheduler = Scheduler(ManualClock())
    manager = LayoutManager(node_cache=cache, scheduler=scheduler, random=PseudoRandom(1))

    groups = None
    if with_groups:
        groups, _ = identify_groups([as_node(n) for n in nodes], manager.width, manager.height)

    manager.initialize(nodes, links, groups)
    frames = scheduler.run()
    return manager, frames


def profile_small_graph():
    """Profile a small graph (20 nodes, 30 links)."""
    settle(*create_graph(20, 30))


def profile_medium_graph():
    """Profile a medium graph (100 nodes, 200 links)."""
    settle(*create_graph(100, 200))


def profile_large_graph():
    """Profile a large graph (500 nodes, 1000 links)."""
    settle(*create_graph(500, 1000))


def profile_with_groups():
    """Profile a grouped graph (120 nodes, 6 groups)."""
    settle(*create_graph(120, 200, n_groups=6), with_groups=True)


def profile_warm_start():
    """Profile a re-layout seeded from the position cache."""
    nodes, links = create_graph(100, 200)
    cache = PositionCache()
    settle(nodes, links, cache=cache)
    settle(nodes, links, cache=cache)


def benchmark_scenario(name, func):
    """Benchmark a scenario and print timing."""
    print(f"\n{'='*60}")
    print(f"Profiling: {name}")
    print('='*60)

    profiler = cProfile.Profile()

    start_time = time.perf_counter()
    profiler.enable()
    func()
    profiler.disable()
    elapsed = time.perf_counter() - start_time

    print(f"\nTotal time: {elapsed:.3f}s")

    s = io.StringIO()
    ps = pstats.Stats(profiler, stream=s).sort_stats(SortKey.CUMULATIVE)
    ps.print_stats(15)

    print("\nTop 15 functions by cumulative time:")
    print(s.getvalue())

    return profiler


def main():
    """Run all profiling scenarios."""
    print("syslayout Performance Profiling")
    print("=" * 60)

    scenarios = [
        ("Small Graph (20 nodes, 30 links)", profile_small_graph),
        ("Medium Graph (100 nodes, 200 links)", profile_medium_graph),
        ("Large Graph (500 nodes, 1000 links)", profile_large_graph),
        ("With Groups (120 nodes, 6 groups)", profile_with_groups),
        ("Warm Start (100 nodes, cached)", profile_warm_start),
    ]

    profilers = {}
    for name, func in scenarios:
        profilers[name] = benchmark_scenario(name, func)

    if "--dump" in sys.argv:
        for name, profiler in profilers.items():
            filename = "profile_" + "".join(c if c.isalnum() else "_" for c in name.lower()).strip("_") + ".prof"
            profiler.dump_stats(filename)
            print(f"Saved: {filename}")


if __name__ == "__main__":
    main()
