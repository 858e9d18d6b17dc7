"""
Pointer interaction with the layout: pinning and dragging nodes.

Every pin change is written through to the position cache so that it
survives a reload.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional
import logging

from .cache import make_entry
from .graph import Node

if TYPE_CHECKING:
    from .manager import LayoutManager

logger = logging.getLogger(__name__)

DRAG_ALPHA_TARGET = 0.3
PIN_RESTART_ALPHA = 0.1


class InteractionController:
    """
    Translates pin toggles and drag gestures into node pin state.

    A drag pins the node for good: the drop point becomes its fixed position
    until it is explicitly unpinned. While at least one drag is active the
    simulation is kept warm so the rest of the graph follows the pointer.

    Args:
        manager: Layout whose simulation and cache are acted on
    """

    def __init__(self, manager: LayoutManager):
        self.manager = manager
        self.active_drags = 0

    def _write_through(self, node: Node, x: float, y: float, vx: Optional[float], vy: Optional[float]) -> None:
        cache = self.manager.node_cache
        if cache is not None and node.id:
            cache.set(node.id, make_entry(x, y, vx, vy, node.is_fixed))

    def is_node_fixed(self, node_id: str) -> bool:
        """True if the node exists and is explicitly pinned."""
        node = self.manager.get_node_by_id(node_id)
        return bool(node.is_fixed) if node is not None else False

    def set_node_fixed(self, node_id: str, state: bool) -> Optional[bool]:
        """
        Pin a node where it is, or release it.

        Args:
            node_id: Node to change
            state: True to pin, False to release

        Returns:
            The node's resulting fixed state, or None if the id is unknown
        """
        node = self.manager.get_node_by_id(node_id)
        if node is None:
            logger.debug("Ignoring pin change for unknown node %r", node_id)
            return None

        self.manager.cancel_pending_release(node_id)
        if state:
            node.is_fixed = True
            node.fx = node.x
            node.fy = node.y
        else:
            node.is_fixed = False
            node.fx = None
            node.fy = None

        self._write_through(node, node.x, node.y, node.vx, node.vy)
        self.manager.restart(PIN_RESTART_ALPHA)
        self.manager.on_toggle_fixed(node_id, state)

        return node.is_fixed

    def toggle_node_fixed(self, node_id: str) -> Optional[bool]:
        """Flip the pin state of a node; None if the id is unknown."""
        node = self.manager.get_node_by_id(node_id)
        if node is None:
            return None
        return self.set_node_fixed(node_id, not node.is_fixed)

    def drag_start(self, node_id: str, x: Optional[float] = None, y: Optional[float] = None) -> Optional[bool]:
        """
        Begin dragging a node.

        The first concurrent drag reheats the simulation and keeps it warm.
        The node is pinned at (x, y), or where it is when no pointer position
        is given.

        Returns:
            True, or None if the id is unknown
        """
        node = self.manager.get_node_by_id(node_id)
        simulation = self.manager.simulation
        if node is None or simulation is None:
            return None

        if self.active_drags == 0:
            simulation.alpha_target(DRAG_ALPHA_TARGET).restart()
        self.active_drags += 1

        if x is not None and y is not None:
            node.x = x
            node.y = y
        node.fx = node.x
        node.fy = node.y
        self.set_node_fixed(node_id, True)
        return True

    def drag_move(self, node_id: str, x: float, y: float) -> Optional[bool]:
        """Move a dragged node's pin target to the pointer."""
        node = self.manager.get_node_by_id(node_id)
        if node is None:
            return None
        node.fx = x
        node.fy = y
        return True

    def drag_end(self, node_id: str) -> Optional[bool]:
        """
        Drop a dragged node.

        The last concurrent drag lets the simulation cool down again. The
        node stays pinned at the drop point and is cached there at rest.

        Returns:
            True, or None if the id is unknown
        """
        if self.active_drags > 0:
            self.active_drags -= 1
            simulation = self.manager.simulation
            if self.active_drags == 0 and simulation is not None:
                simulation.alpha_target(0)

        node = self.manager.get_node_by_id(node_id)
        if node is None:
            return None

        x = node.fx if node.fx is not None else node.x
        y = node.fy if node.fy is not None else node.y
        node.vx = 0.0
        node.vy = 0.0
        self._write_through(node, x, y, 0.0, 0.0)
        return True
