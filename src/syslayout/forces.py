"""
Physical forces applied by the simulation on every tick.

A force reads node positions and adds to node velocities (the center force
translates positions instead). Forces are plain objects registered on the
simulation by name and applied in registration order.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence, Union
import logging
import math

import numpy as np

from .graph import Link, Node, as_link
from .prng import PseudoRandom

logger = logging.getLogger(__name__)

NodeNumericAccessor = Callable[[Node], float]
LinkNumericAccessor = Callable[[Link], float]


class Force:
    """
    Base class for simulation forces.

    ``initialize`` is called whenever the simulation's node list changes or
    the force is registered; ``apply`` once per tick with the current alpha.
    """

    def __init__(self):
        self._random: Optional[PseudoRandom] = None

    def initialize(self, nodes: Sequence[Node], random: PseudoRandom) -> None:
        self._random = random

    def apply(self, nodes: Sequence[Node], alpha: float) -> None:
        raise NotImplementedError

    def jiggle(self) -> float:
        if self._random is None:
            self._random = PseudoRandom()
        return self._random.jiggle()


def node_positions(nodes: Sequence[Node]) -> tuple[np.ndarray, np.ndarray]:
    xs = np.fromiter((n.x for n in nodes), dtype=float, count=len(nodes))
    ys = np.fromiter((n.y for n in nodes), dtype=float, count=len(nodes))
    return xs, ys


def add_velocity(nodes: Sequence[Node], dvx: np.ndarray, dvy: np.ndarray) -> None:
    for node, ax, ay in zip(nodes, dvx, dvy):
        node.vx += float(ax)
        node.vy += float(ay)


class LinkForce(Force):
    """
    Spring between linked nodes pulling toward a target separation.

    Each link's strength is ``1 / min(degree(source), degree(target))`` so
    hubs are not torn apart, and the correction is split between the ends in
    proportion to their degrees. Links naming an unknown node are inert.

    Args:
        links: Links by node id
        distance: Target separation, constant or per-link accessor
        iterations: Passes per tick
    """

    def __init__(
        self,
        links: Iterable = (),
        distance: Union[float, LinkNumericAccessor] = 150.0,
        iterations: int = 1
    ):
        super().__init__()
        self._links: list[Link] = [as_link(l) for l in links]
        self._distance = distance
        self._iterations = iterations
        self._resolved: list[tuple[Node, Node, float, float, float]] = []
        self.inert_links = 0

    def links(self, v: Optional[Iterable] = None):
        """Get or set the links."""
        if v is None:
            return self._links
        self._links = [as_link(l) for l in v]
        return self

    def distance(self, v: Optional[Union[float, LinkNumericAccessor]] = None):
        """Get or set the target distance."""
        if v is None:
            return self._distance
        self._distance = v
        return self

    def get_distance(self, link: Link) -> float:
        if callable(self._distance):
            return float(self._distance(link))
        return float(self._distance)

    def initialize(self, nodes: Sequence[Node], random: PseudoRandom) -> None:
        super().initialize(nodes, random)
        by_id = {n.id: n for n in nodes}

        pairs = []
        self.inert_links = 0
        for link in self._links:
            source = by_id.get(link.source)
            target = by_id.get(link.target)
            if source is None or target is None:
                self.inert_links += 1
                continue
            pairs.append((link, source, target))

        if self.inert_links:
            logger.debug("Ignoring %d links with unknown endpoints", self.inert_links)

        count: dict[int, int] = {}
        for _, source, target in pairs:
            count[id(source)] = count.get(id(source), 0) + 1
            count[id(target)] = count.get(id(target), 0) + 1

        self._resolved = []
        for link, source, target in pairs:
            cs = count[id(source)]
            ct = count[id(target)]
            bias = cs / (cs + ct)
            strength = 1.0 / min(cs, ct)
            self._resolved.append((source, target, bias, strength, self.get_distance(link)))

    def apply(self, nodes: Sequence[Node], alpha: float) -> None:
        for _ in range(self._iterations):
            for source, target, bias, strength, distance in self._resolved:
                x = target.x + target.vx - source.x - source.vx or self.jiggle()
                y = target.y + target.vy - source.y - source.vy or self.jiggle()
                l = math.sqrt(x * x + y * y)
                l = (l - distance) / l * alpha * strength
                x *= l
                y *= l
                target.vx -= x * bias
                target.vy -= y * bias
                source.vx += x * (1 - bias)
                source.vy += y * (1 - bias)


class ChargeForce(Force):
    """
    Pairwise inverse-distance interaction between all nodes.

    Negative strength repels. Computed exactly over all pairs.

    Args:
        strength: Charge per node, constant or per-node accessor
        distance_min: Distances below this are softened to avoid blow-ups
        distance_max: Pairs farther apart than this do not interact
    """

    def __init__(
        self,
        strength: Union[float, NodeNumericAccessor] = -300.0,
        distance_min: float = 1.0,
        distance_max: float = math.inf
    ):
        super().__init__()
        self._strength = strength
        self._distance_min2 = distance_min * distance_min
        self._distance_max2 = distance_max * distance_max
        self._strengths = np.zeros(0)

    def strength(self, v: Optional[Union[float, NodeNumericAccessor]] = None):
        """Get or set the charge strength."""
        if v is None:
            return self._strength
        self._strength = v
        return self

    def initialize(self, nodes: Sequence[Node], random: PseudoRandom) -> None:
        super().initialize(nodes, random)
        if callable(self._strength):
            self._strengths = np.array([float(self._strength(n)) for n in nodes])
        else:
            self._strengths = np.full(len(nodes), float(self._strength))

    def apply(self, nodes: Sequence[Node], alpha: float) -> None:
        n = len(nodes)
        if n < 2:
            return
        if len(self._strengths) != n:
            self.initialize(nodes, self._random)

        xs, ys = node_positions(nodes)

        # dx[i, j] points from node i to node j
        dx = xs[np.newaxis, :] - xs[:, np.newaxis]
        dy = ys[np.newaxis, :] - ys[:, np.newaxis]
        off_diagonal = ~np.eye(n, dtype=bool)

        for d in (dx, dy):
            coincident = np.argwhere((d == 0) & off_diagonal)
            for i, j in coincident:
                d[i, j] = self.jiggle()

        l = dx * dx + dy * dy
        near = l < self._distance_min2
        l[near] = np.sqrt(self._distance_min2 * l[near])

        with np.errstate(divide='ignore', invalid='ignore'):
            w = np.where(off_diagonal & (l < self._distance_max2),
                         self._strengths[np.newaxis, :] * alpha / l, 0.0)

        add_velocity(nodes, np.sum(dx * w, axis=1), np.sum(dy * w, axis=1))


class CenterForce(Force):
    """
    Shift all nodes so their centroid moves onto (x, y).

    Moves positions directly; relative layout and velocities are untouched.
    """

    def __init__(self, x: float = 0.0, y: float = 0.0, strength: float = 1.0):
        super().__init__()
        self.x = x
        self.y = y
        self.strength = strength

    def apply(self, nodes: Sequence[Node], alpha: float) -> None:
        if not nodes:
            return
        xs, ys = node_positions(nodes)
        sx = (float(xs.mean()) - self.x) * self.strength
        sy = (float(ys.mean()) - self.y) * self.strength
        for node in nodes:
            node.x -= sx
            node.y -= sy


class CollisionForce(Force):
    """
    Push apart nodes whose circles overlap.

    Works on positions predicted one step ahead (``x + vx``) and splits each
    correction between the pair by squared radius, so small nodes move more.

    Args:
        radius: Node radius, constant or per-node accessor
        strength: Fraction of the overlap resolved per pass, in [0, 1]
        iterations: Passes per tick
    """

    def __init__(
        self,
        radius: Union[float, NodeNumericAccessor] = 60.0,
        strength: float = 1.0,
        iterations: int = 1
    ):
        super().__init__()
        self._radius = radius
        self._strength = strength
        self._iterations = iterations
        self._radii: list[float] = []

    def radius(self, v: Optional[Union[float, NodeNumericAccessor]] = None):
        """Get or set the collision radius."""
        if v is None:
            return self._radius
        self._radius = v
        return self

    def initialize(self, nodes: Sequence[Node], random: PseudoRandom) -> None:
        super().initialize(nodes, random)
        if callable(self._radius):
            self._radii = [float(self._radius(n)) for n in nodes]
        else:
            self._radii = [float(self._radius)] * len(nodes)

    def apply(self, nodes: Sequence[Node], alpha: float) -> None:
        n = len(nodes)
        if len(self._radii) != n:
            self.initialize(nodes, self._random)
        radii = self._radii

        for _ in range(self._iterations):
            for i in range(n):
                node = nodes[i]
                ri = radii[i]
                ri2 = ri * ri
                xi = node.x + node.vx
                yi = node.y + node.vy

                for j in range(i + 1, n):
                    other = nodes[j]
                    rj = radii[j]
                    r = ri + rj
                    x = xi - other.x - other.vx
                    y = yi - other.y - other.vy
                    l = x * x + y * y
                    if l >= r * r:
                        continue

                    if x == 0:
                        x = self.jiggle()
                        l += x * x
                    if y == 0:
                        y = self.jiggle()
                        l += y * y

                    l = math.sqrt(l)
                    l = (r - l) / l * self._strength
                    x *= l
                    y *= l
                    rj2 = rj * rj
                    share = rj2 / (ri2 + rj2)
                    node.vx += x * share
                    node.vy += y * share
                    other.vx -= x * (1 - share)
                    other.vy -= y * (1 - share)
