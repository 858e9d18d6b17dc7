"""
Force simulation engine.

This module implements the Simulation class which provides:
- Alpha annealing (alpha decays toward a target, scaling every force)
- An ordered, named force pipeline
- Velocity integration with per-axis pinning (fx/fy)
- Frame-driven stepping through a Scheduler
- Event system (tick/end events)
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, TypedDict, Union
from enum import IntEnum
import math

from .forces import Force
from .graph import Node, as_node
from .prng import PseudoRandom
from .scheduler import FrameTimer, Scheduler

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3.0 - math.sqrt(5.0))

_MISSING = object()


class EventType(IntEnum):
    """
    The simulation fires two events:
    - tick: fired once per frame step, listen to this to re-render
    - end: alpha dropped below alpha_min and the simulation stopped itself
    """
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event dictionary passed to event listeners."""
    type: EventType
    alpha: float


class Simulation:
    """
    Annealed force simulation over a list of nodes.

    Every tick, alpha moves a fraction ``alpha_decay`` of the way toward
    ``alpha_target``, each registered force is applied with the new alpha, and
    positions are integrated: an axis with a pin target snaps to it and loses
    its velocity, a free axis keeps ``1 - velocity_decay`` of its velocity and
    moves by it.

    The simulation starts running as soon as it is created; the scheduler
    calls ``step`` once per frame until alpha falls below ``alpha_min``.

    Args:
        nodes: Initial nodes
        scheduler: Frame source; a private real-time one by default
        random: Random source for jiggle
    """

    def __init__(
        self,
        nodes: Optional[Iterable] = None,
        scheduler: Optional[Scheduler] = None,
        random: Optional[PseudoRandom] = None
    ):
        self._nodes: list[Node] = []
        self._alpha = 1.0
        self._alpha_min = 0.001
        self._alpha_decay = 1.0 - math.pow(self._alpha_min, 1.0 / 300.0)
        self._alpha_target = 0.0
        self._velocity_decay = 0.6
        self._forces: dict[str, Force] = {}
        self._random = random if random is not None else PseudoRandom()
        self.scheduler = scheduler if scheduler is not None else Scheduler()

        # Event system
        self.event: Optional[dict] = None

        self.nodes(list(nodes) if nodes is not None else [])
        self._timer: FrameTimer = self.scheduler.frame_timer(self.step)

    def on(self, e: Union[EventType, str], listener: Optional[Callable[[Event], None]]) -> Simulation:
        """
        Subscribe a listener to an event, replacing any previous one.

        Args:
            e: Event type (EventType enum or string name)
            listener: Function to call when event fires, None to unsubscribe

        Returns:
            self for method chaining
        """
        if self.event is None:
            self.event = {}

        event_type = EventType[e] if isinstance(e, str) else EventType(e)
        if listener is None:
            self.event.pop(event_type, None)
        else:
            self.event[event_type] = listener
        return self

    def trigger(self, e: Event) -> None:
        """Call the listener registered for the event's type."""
        if self.event and e['type'] in self.event:
            self.event[e['type']](e)

    @property
    def running(self) -> bool:
        return self._timer.active

    def step(self) -> None:
        """
        Frame callback: tick once, notify, and stop when cooled down.

        The end event fires once, after the tick event of the last step, and
        not at all if a tick listener stopped the simulation.
        """
        self.tick()
        self.trigger({'type': EventType.tick, 'alpha': self._alpha})
        if not self._timer.active:
            # stopped or replaced by a tick listener
            return

        if self._alpha < self._alpha_min:
            self._timer.stop()
            self.trigger({'type': EventType.end, 'alpha': self._alpha})

    def tick(self, iterations: int = 1) -> Simulation:
        """
        Advance the simulation without firing events.

        Args:
            iterations: Number of ticks

        Returns:
            self for method chaining
        """
        for _ in range(iterations):
            self._alpha += (self._alpha_target - self._alpha) * self._alpha_decay

            for force in self._forces.values():
                force.apply(self._nodes, self._alpha)

            for node in self._nodes:
                if node.fx is None:
                    node.vx *= self._velocity_decay
                    node.x += node.vx
                else:
                    node.x = node.fx
                    node.vx = 0.0

                if node.fy is None:
                    node.vy *= self._velocity_decay
                    node.y += node.vy
                else:
                    node.y = node.fy
                    node.vy = 0.0

        return self

    def restart(self) -> Simulation:
        """Resume stepping on the next frame."""
        self._timer.restart(self.step)
        return self

    def stop(self) -> Simulation:
        """Stop stepping. Idempotent; safe from inside listeners."""
        self._timer.stop()
        return self

    def _initialize_nodes(self) -> None:
        for i, node in enumerate(self._nodes):
            node.index = i
            if node.fx is not None:
                node.x = node.fx
            if node.fy is not None:
                node.y = node.fy

            if node.x is None or node.y is None or math.isnan(node.x) or math.isnan(node.y):
                radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                node.x = radius * math.cos(angle)
                node.y = radius * math.sin(angle)

            if node.vx is None or node.vy is None or math.isnan(node.vx) or math.isnan(node.vy):
                node.vx = 0.0
                node.vy = 0.0

    def nodes(self, v: Optional[list] = None) -> Union[list[Node], Simulation]:
        """
        Get or set the list of nodes.

        Setting nodes assigns indices, seeds missing positions on a
        phyllotaxis spiral around the origin, zeroes missing velocities and
        re-initializes every force.

        Args:
            v: Optional list of nodes (Node instances or mappings)

        Returns:
            Current nodes list if v is None, otherwise self for chaining
        """
        if v is None:
            return self._nodes

        self._nodes = [as_node(n) for n in v]
        self._initialize_nodes()
        for force in self._forces.values():
            force.initialize(self._nodes, self._random)
        return self

    def force(self, name: str, f=_MISSING) -> Union[Optional[Force], Simulation]:
        """
        Get, set or remove a named force.

        Forces are applied in the order they were first registered.

        Args:
            name: Force name
            f: Force to register, None to remove

        Returns:
            The named force (or None) when f is omitted, otherwise self
        """
        if f is _MISSING:
            return self._forces.get(name)

        if f is None:
            self._forces.pop(name, None)
        else:
            f.initialize(self._nodes, self._random)
            self._forces[name] = f
        return self

    def force_names(self) -> list[str]:
        """Names of the registered forces, in application order."""
        return list(self._forces)

    def alpha(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set alpha (current temperature)."""
        if x is None:
            return self._alpha
        self._alpha = float(x)
        return self

    def alpha_min(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set the alpha below which the simulation stops itself."""
        if x is None:
            return self._alpha_min
        self._alpha_min = float(x)
        return self

    def alpha_decay(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set the per-tick fraction of the distance to alpha_target covered."""
        if x is None:
            return self._alpha_decay
        self._alpha_decay = float(x)
        return self

    def alpha_target(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """
        Get or set the value alpha decays toward.

        A positive target keeps the simulation warm, e.g. while dragging.
        """
        if x is None:
            return self._alpha_target
        self._alpha_target = float(x)
        return self

    def velocity_decay(self, x: Optional[float] = None) -> Union[float, Simulation]:
        """Get or set the fraction of velocity lost per tick (friction)."""
        if x is None:
            return 1.0 - self._velocity_decay
        self._velocity_decay = 1.0 - float(x)
        return self

    def find(self, x: float, y: float, radius: float = math.inf) -> Optional[Node]:
        """
        Find the node closest to (x, y) within radius.

        Returns:
            The closest node, or None if no node is within radius
        """
        closest = None
        best = radius * radius
        for node in self._nodes:
            dx = x - node.x
            dy = y - node.y
            d2 = dx * dx + dy * dy
            if d2 < best:
                closest = node
                best = d2
        return closest
