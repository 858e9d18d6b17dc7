"""
Initial placement of nodes that have no position yet.

New nodes are dropped near the nodes they share a group with (or near the
whole graph when they share none) on a circle around a jittered centroid, with
a small velocity toward that centroid so they ease into place instead of
jumping.
"""

from __future__ import annotations

from typing import Optional, Sequence
import math

import numpy as np

from .graph import Node
from .prng import PseudoRandom


def reference_nodes(node: Node, positioned: Sequence[Node]) -> list[Node]:
    """
    Positioned nodes sharing at least one group with node.

    The result is deduplicated and ordered by the node's group order, then
    by position in ``positioned``.
    """
    refs: dict[int, Node] = {}
    for group in node.groups:
        for other in positioned:
            if group in other.groups:
                refs.setdefault(id(other), other)
    return list(refs.values())


def apply_initial_positions(
    nodes: Sequence[Node],
    width: float,
    height: float,
    random: Optional[PseudoRandom] = None,
    group_jitter: float = 50.0,
    global_jitter: float = 150.0,
    center_jitter: float = 200.0,
    reference_radius: float = 100.0,
    fallback_radius: float = 200.0,
    speed_factor: float = 0.01
) -> int:
    """
    Assign position and velocity to every node lacking a position.

    Nodes that already have a position are left untouched. The positioned set
    is taken once up front, so nodes placed here never serve as references for
    each other.

    Args:
        nodes: Nodes to place
        width: Viewport width, used when nothing is positioned yet
        height: Viewport height
        random: Random source
        group_jitter: Full width of the target jitter for group matches
        global_jitter: Full width of the target jitter for the global fallback
        center_jitter: Full width of the target jitter around the viewport center
        reference_radius: Distance from the target when references exist
        fallback_radius: Distance from the target when nothing is positioned
        speed_factor: Initial velocity per unit of distance to the target

    Returns:
        Number of nodes placed
    """
    unpositioned = [n for n in nodes if not n.has_position]
    if not unpositioned:
        return 0

    positioned = [n for n in nodes if n.has_position]
    rand = random if random is not None else PseudoRandom()

    def jitter(span: float) -> float:
        return (rand.get_next() - 0.5) * span

    for node in unpositioned:
        refs = reference_nodes(node, positioned)
        grouped = len(refs) > 0
        if not grouped:
            refs = positioned

        if refs:
            centroid = np.mean([[r.x, r.y] for r in refs], axis=0)
            span = group_jitter if grouped else global_jitter
            tx = float(centroid[0]) + jitter(span)
            ty = float(centroid[1]) + jitter(span)
            distance = reference_radius
        else:
            tx = width / 2.0 + jitter(center_jitter)
            ty = height / 2.0 + jitter(center_jitter)
            distance = fallback_radius

        angle = rand.get_next() * 2.0 * math.pi
        node.x = tx + math.cos(angle) * distance
        node.y = ty + math.sin(angle) * distance

        node.vx = (tx - node.x) * speed_factor
        node.vy = (ty - node.y) * speed_factor

    return len(unpositioned)
