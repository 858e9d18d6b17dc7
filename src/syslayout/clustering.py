"""
Group clustering: pull nodes toward the centers of the groups they belong to.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence
import logging
import math

from .forces import Force
from .graph import Node

logger = logging.getLogger(__name__)

UNGROUPED_GROUP_NAME = "ungrouped"

Center = tuple[float, float]


def resolve_center(value: Any) -> Optional[Center]:
    """
    Read a group center from a tuple, a mapping or an object with x/y.

    Returns:
        (x, y), or None when the value has no usable coordinates
    """
    if value is None:
        return None
    try:
        if isinstance(value, Mapping):
            x, y = value['x'], value['y']
        elif isinstance(value, (tuple, list)):
            x, y = value[0], value[1]
        else:
            x, y = value.x, value.y
        x, y = float(x), float(y)
    except (AttributeError, IndexError, KeyError, TypeError, ValueError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return x, y


def group_centers(groups: Optional[Mapping[str, Any]]) -> dict[str, Center]:
    """Normalize a group -> center mapping, dropping unresolvable centers."""
    centers: dict[str, Center] = {}
    for name, value in (groups or {}).items():
        center = resolve_center(value)
        if center is not None:
            centers[name] = center
    return centers


class MultiGroupClusterForce(Force):
    """
    Pull each node toward the centers of all its groups.

    Every declared group of a node weighs ``1 / len(node.groups)``, so being
    in many groups does not add up to a stronger pull. The weight stays the
    same when some of those groups have no known center; their share of the
    pull is simply lost.

    Args:
        centers: Group name -> center
        strength: Pull per unit of distance at alpha 1
    """

    def __init__(self, centers: Optional[Mapping[str, Any]] = None, strength: float = 0.1):
        super().__init__()
        self._centers = group_centers(centers)
        self._strength = strength

    def centers(self, v: Optional[Mapping[str, Any]] = None):
        """Get or set the group centers."""
        if v is None:
            return self._centers
        self._centers = group_centers(v)
        return self

    def strength(self, v: Optional[float] = None):
        """Get or set the pull strength."""
        if v is None:
            return self._strength
        self._strength = float(v)
        return self

    def apply(self, nodes: Sequence[Node], alpha: float) -> None:
        for node in nodes:
            groups = node.groups
            if not groups:
                continue

            k = self._strength * alpha / len(groups)
            fx = 0.0
            fy = 0.0
            for name in groups:
                center = self._centers.get(name)
                if center is None:
                    continue
                fx += (center[0] - node.x) * k
                fy += (center[1] - node.y) * k

            node.vx += fx
            node.vy += fy


class GroupInfo:
    """
    A group as laid out for clustering.

    Attributes:
        name: Representative group name
        x, y: Center the group's members are pulled toward
        node_ids: Ids of the member nodes
        aliases: Other group names with exactly the same members
    """

    def __init__(self, name: str):
        self.name = name
        self.x = 0.0
        self.y = 0.0
        self.node_ids: list[str] = []
        self.aliases: list[str] = []

    def __repr__(self) -> str:
        return f"GroupInfo({self.name!r}, x={self.x:.1f}, y={self.y:.1f}, nodes={len(self.node_ids)})"


def identify_groups(
    nodes: Sequence[Node],
    width: float,
    height: float,
    merge_identical: bool = True
) -> tuple[dict[str, GroupInfo], dict[str, str]]:
    """
    Collect the groups present in nodes and spread their centers on a circle.

    Nodes without groups are collected under ``UNGROUPED_GROUP_NAME``. Groups
    whose member sets are identical are merged into the first one seen; the
    others are listed as its aliases. Centers sit evenly on a circle of radius
    ``0.4 * min(width, height)`` around the viewport center, the ungrouped
    bucket first.

    Args:
        nodes: Nodes to inspect
        width: Viewport width
        height: Viewport height
        merge_identical: Merge groups with identical members

    Returns:
        (groups by representative name, group name -> representative name)
    """
    initial: dict[str, GroupInfo] = {}
    for node in nodes:
        if node.id is None:
            continue
        for name in node.groups or (UNGROUPED_GROUP_NAME,):
            info = initial.setdefault(name, GroupInfo(name))
            if node.id not in info.node_ids:
                info.node_ids.append(node.id)

    final: dict[str, GroupInfo] = {}
    representative: dict[str, str] = {}

    if UNGROUPED_GROUP_NAME in initial:
        final[UNGROUPED_GROUP_NAME] = initial[UNGROUPED_GROUP_NAME]

    by_signature: dict[tuple, GroupInfo] = {}
    for name, info in initial.items():
        if name == UNGROUPED_GROUP_NAME:
            continue
        signature = tuple(sorted(info.node_ids)) if merge_identical else (name,)
        primary = by_signature.get(signature)
        if primary is None:
            by_signature[signature] = info
            final[name] = info
            representative[name] = name
        else:
            primary.aliases.append(name)
            representative[name] = primary.name
            logger.debug("Merged identical group %s into %s", name, primary.name)

    radius = min(width, height) * 0.4
    for index, info in enumerate(final.values()):
        angle = index / len(final) * 2.0 * math.pi
        info.x = width / 2.0 + radius * math.cos(angle)
        info.y = height / 2.0 + radius * math.sin(angle)

    return final, representative
