"""
Soft viewport boundary.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .forces import Force, add_velocity, node_positions
from .graph import Node


class ContainmentForce(Force):
    """
    Keep nodes within ``[padding, width - padding] x [padding, height - padding]``.

    A node past a boundary gets velocity back inward proportional to how far
    it is out. Every node's velocity is then damped, whether or not it was
    out, which keeps the whole system from building up speed. Register this
    force last so the damping applies to what the other forces produced.

    Args:
        width: Viewport width
        height: Viewport height
        padding: Distance from the viewport edge where pushback starts
        strength: Velocity added per unit of penetration
        damping: Velocity multiplier applied every tick
    """

    def __init__(
        self,
        width: float = 800.0,
        height: float = 600.0,
        padding: float = 50.0,
        strength: float = 0.1,
        damping: float = 0.9
    ):
        super().__init__()
        self.width = width
        self.height = height
        self.padding = padding
        self.strength = strength
        self.damping = damping

    def bounds(self) -> tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) of the allowed area."""
        p = self.padding
        return p, p, self.width - p, self.height - p

    def apply(self, nodes: Sequence[Node], alpha: float) -> None:
        if not nodes:
            return
        min_x, min_y, max_x, max_y = self.bounds()
        xs, ys = node_positions(nodes)

        push_x = np.where(xs < min_x, min_x - xs, np.where(xs > max_x, max_x - xs, 0.0))
        push_y = np.where(ys < min_y, min_y - ys, np.where(ys > max_y, max_y - ys, 0.0))

        add_velocity(nodes, push_x * self.strength, push_y * self.strength)
        for node in nodes:
            node.vx *= self.damping
            node.vy *= self.damping
