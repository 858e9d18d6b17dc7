"""
Layout loop for the system dependency graph.

``LayoutManager`` ties the pieces together: it seeds positions from the
position cache and the initial placement, builds the force set, runs the
simulation on the scheduler and keeps the cache up to date while it runs.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
import logging

from .cache import PositionCache
from .clustering import MultiGroupClusterForce, group_centers
from .containment import ContainmentForce
from .forces import CenterForce, ChargeForce, CollisionForce, LinkForce
from .graph import Node, as_link, as_node
from .interaction import InteractionController
from .options import LayoutOptions
from .placement import apply_initial_positions
from .prng import PseudoRandom
from .scheduler import ScheduledTask, Scheduler
from .simulation import Event, Simulation

logger = logging.getLogger(__name__)


def _noop(*args) -> None:
    pass


class LayoutManager:
    """
    Owns one simulation at a time over the caller's nodes and links.

    Args:
        options: Layout parameters; keyword arguments override fields
        node_cache: Shared position cache, or None to run without one
        scheduler: Frame and timer source shared with the host
        random: Random source for placement and jiggle
        on_tick: Called with no arguments after every simulation step
        on_end: Called with no arguments when the simulation settles
        on_toggle_fixed: Called with (node_id, state) after a pin change
    """

    def __init__(
        self,
        options: Optional[LayoutOptions] = None,
        node_cache: Optional[PositionCache] = None,
        scheduler: Optional[Scheduler] = None,
        random: Optional[PseudoRandom] = None,
        on_tick: Optional[Callable[[], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        on_toggle_fixed: Optional[Callable[[str, bool], None]] = None,
        **overrides: Any
    ):
        self.options = replace(options if options is not None else LayoutOptions(), **overrides)

        self.node_cache = node_cache
        self.scheduler = scheduler if scheduler is not None else Scheduler()
        self.random = random if random is not None else PseudoRandom()
        self.simulation: Optional[Simulation] = None

        self.last_cache_update: Optional[float] = None

        self.on_tick = on_tick or _noop
        self.on_end = on_end or _noop
        self.on_toggle_fixed = on_toggle_fixed or _noop

        self._nodes_by_id: dict[str, Node] = {}
        self._pending_releases: dict[str, ScheduledTask] = {}
        self.interaction = InteractionController(self)

    @property
    def width(self) -> float:
        return self.options.width

    @property
    def height(self) -> float:
        return self.options.height

    def nodes(self) -> list[Node]:
        """Nodes of the current simulation."""
        return self.simulation.nodes() if self.simulation is not None else []

    def get_node_by_id(self, node_id: str) -> Optional[Node]:
        """
        Look up a node of the current simulation.

        Returns:
            The node, or None if the id is unknown
        """
        return self._nodes_by_id.get(node_id)

    def initialize(
        self,
        nodes: Iterable,
        links: Iterable,
        groups: Optional[Mapping[str, Any]] = None
    ) -> Simulation:
        """
        Start a new simulation, replacing the current one.

        Cached positions are applied first, then nodes still lacking a
        position are placed, so placement never overwrites a cache hit.

        Args:
            nodes: Node records (Node instances are used as-is)
            links: Link records by node id
            groups: Group name -> center; enables the clustering force

        Returns:
            The new simulation
        """
        self.stop()
        self.cancel_pending_releases()
        self.interaction.active_drags = 0

        nodes = [as_node(n) for n in nodes]
        links = [as_link(l) for l in links]
        self._nodes_by_id = {n.id: n for n in nodes if n.id is not None}

        cache_hits = 0
        if self.node_cache is not None:
            cache_hits = self.apply_node_positions_from_cache(nodes)

        placed = apply_initial_positions(nodes, self.width, self.height, self.random)

        opts = self.options
        simulation = Simulation(nodes, self.scheduler, self.random)
        simulation.force("link", LinkForce(links, distance=opts.link_distance))
        simulation.force("charge", ChargeForce(strength=opts.charge_strength))
        simulation.force("center", CenterForce(self.width / 2.0, self.height / 2.0))
        simulation.force("collision", CollisionForce(radius=opts.collision_radius))

        centers = group_centers(groups)
        if centers:
            simulation.force("group", MultiGroupClusterForce(centers, strength=opts.group_force_strength))

        simulation.force("containment", ContainmentForce(self.width, self.height, padding=opts.padding))

        simulation.on("tick", self._handle_tick)
        simulation.on("end", self._handle_end)

        self.simulation = simulation
        self.last_cache_update = None

        logger.debug(
            "Initialized layout: %d nodes, %d links, %d groups, %d cache hits, %d placed",
            len(nodes), len(links), len(centers), cache_hits, placed
        )
        return simulation

    def apply_node_positions_from_cache(self, nodes: Sequence[Node]) -> int:
        """
        Seed nodes from their cache entries.

        A hit restores the cached position, a damped copy of the cached
        velocity and the pin flag, and pins the node where it was. Nodes not
        explicitly fixed are released again after ``transient_pin_delay``.

        Returns:
            Number of cache hits
        """
        if not nodes or self.node_cache is None:
            return 0

        factor = self.options.cached_velocity_factor
        hits = 0
        for node in nodes:
            if not node.id:
                continue
            cached = self.node_cache.get(node.id)
            if cached is None:
                continue

            node.x = cached['x']
            node.y = cached['y']
            node.vx = (cached.get('vx') or 0.0) * factor
            node.vy = (cached.get('vy') or 0.0) * factor

            node.fx = cached['x']
            node.fy = cached['y']
            node.is_fixed = bool(cached.get('isFixed'))

            if not node.is_fixed:
                self.schedule_release(node)
            hits += 1

        return hits

    def schedule_release(self, node: Node) -> ScheduledTask:
        """Unpin node after ``transient_pin_delay`` unless it gets fixed first."""
        self.cancel_pending_release(node.id)

        def release() -> None:
            self._pending_releases.pop(node.id, None)
            if not node.is_fixed:
                node.fx = None
                node.fy = None

        task = self.scheduler.call_later(self.options.transient_pin_delay, release)
        self._pending_releases[node.id] = task
        return task

    def cancel_pending_release(self, node_id: str) -> bool:
        task = self._pending_releases.pop(node_id, None)
        return task.cancel() if task is not None else False

    def cancel_pending_releases(self) -> None:
        for task in self._pending_releases.values():
            task.cancel()
        self._pending_releases.clear()

    def has_pending_release(self, node_id: str) -> bool:
        return node_id in self._pending_releases

    def throttled_update_node_cache(self) -> bool:
        """
        Write all nodes to the cache unless that was done within the interval.

        Returns:
            True if the cache was written
        """
        if self.node_cache is None or self.simulation is None:
            return False

        now = self.scheduler.now()
        if self.last_cache_update is not None and now - self.last_cache_update <= self.options.cache_update_interval:
            return False

        self.last_cache_update = now
        self.node_cache.update_batch(self.simulation.nodes())
        return True

    def _handle_tick(self, event: Event) -> None:
        self.throttled_update_node_cache()
        self.on_tick()

    def _handle_end(self, event: Event) -> None:
        if self.node_cache is not None and self.simulation is not None:
            self.node_cache.update_batch(self.simulation.nodes())
        self.on_end()

    def restart(self, alpha: float = 0.3) -> None:
        """Reheat to alpha and resume stepping."""
        if self.simulation is not None:
            self.simulation.alpha(alpha).restart()

    def stop(self) -> None:
        """Stop stepping. Idempotent."""
        if self.simulation is not None:
            self.simulation.stop()

    def update_size(self, width: float, height: float) -> None:
        """
        Resize the viewport the center and containment forces work in.

        The simulation is reheated gently so nodes drift into the new area.
        """
        self.options.width = width
        self.options.height = height

        if self.simulation is not None:
            center = self.simulation.force("center")
            if center is not None:
                center.x = width / 2.0
                center.y = height / 2.0

            containment = self.simulation.force("containment")
            if containment is not None:
                containment.width = width
                containment.height = height

            self.restart(0.1)

    # Interaction shortcuts

    def set_node_fixed(self, node_id: str, state: bool) -> Optional[bool]:
        return self.interaction.set_node_fixed(node_id, state)

    def toggle_node_fixed(self, node_id: str) -> Optional[bool]:
        return self.interaction.toggle_node_fixed(node_id)

    def is_node_fixed(self, node_id: str) -> bool:
        return self.interaction.is_node_fixed(node_id)
