"""
Node and link types consumed by the layout core.

The data layer owns node identity and group membership; the layout only
reads those and writes the physical fields (position, velocity, pin).
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union


def normalize_groups(groups: Any = None, group: Any = None) -> tuple[str, ...]:
    """
    Reduce legacy and current group membership forms to one ordered tuple.

    A non-empty ``groups`` sequence wins; otherwise a non-empty single
    ``group`` string; otherwise no groups. Duplicates are dropped, first
    occurrence kept.

    Args:
        groups: Sequence of group names (current form)
        group: Single group name (legacy form)

    Returns:
        Ordered tuple of unique group names
    """
    if isinstance(groups, str):
        groups = [groups]
    if groups:
        names: Iterable[Any] = groups
    elif isinstance(group, str) and group:
        names = [group]
    else:
        return ()

    seen: dict[str, None] = {}
    for name in names:
        if name is None or name == '':
            continue
        seen.setdefault(str(name), None)
    return tuple(seen)


class Node:
    """
    Simulated point representing one system.

    Attributes:
        id: Stable identity of the system
        x, y: Position, None until placed
        vx, vy: Velocity
        fx, fy: Pin target; a non-None value holds that axis in place
        is_fixed: Explicit user pin, survives drags and reloads
        groups: Ordered group names the node belongs to
        index: Position in the simulation's node list
    """

    def __init__(self, id: Optional[str] = None, **kwargs):
        """Initialize node with optional properties."""
        self.id = id
        self.index: Optional[int] = kwargs.pop('index', None)
        self.x: Optional[float] = kwargs.pop('x', None)
        self.y: Optional[float] = kwargs.pop('y', None)
        self.vx: Optional[float] = kwargs.pop('vx', None)
        self.vy: Optional[float] = kwargs.pop('vy', None)
        self.fx: Optional[float] = kwargs.pop('fx', None)
        self.fy: Optional[float] = kwargs.pop('fy', None)
        self.is_fixed: bool = bool(kwargs.pop('is_fixed', kwargs.pop('isFixed', False)))
        self.groups: tuple[str, ...] = normalize_groups(
            kwargs.pop('groups', None), kwargs.pop('group', None)
        )

        # Copy over any additional properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"Node(id={self.id!r}, x={self.x!r}, y={self.y!r})"

    @property
    def has_position(self) -> bool:
        return self.x is not None and self.y is not None

    @property
    def pinned(self) -> bool:
        """True when either axis is held by a pin target."""
        return self.fx is not None or self.fy is not None


class Link:
    """
    Dependency edge between two systems, by id.

    Attributes:
        source: Source node id
        target: Target node id
    """

    def __init__(self, source: Union[Node, str], target: Union[Node, str], **kwargs):
        """Initialize link."""
        self.source = source.id if isinstance(source, Node) else source
        self.target = target.id if isinstance(target, Node) else target

        # Copy over any additional properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"Link({self.source!r} -> {self.target!r})"


def as_node(data: Union[Node, dict, Any]) -> Node:
    """
    Coerce a node record into a ``Node``.

    ``Node`` instances are returned as-is so callers keep sharing them with
    the layout; mappings are unpacked; other objects are read through their
    public attributes.
    """
    if isinstance(data, Node):
        return data
    if isinstance(data, dict):
        return Node(**data)

    attrs = {
        name: getattr(data, name)
        for name in dir(data)
        if not name.startswith('_') and not callable(getattr(data, name))
    }
    return Node(**attrs)


def as_link(data: Union[Link, dict, Any]) -> Link:
    """Coerce a link record into a ``Link``."""
    if isinstance(data, Link):
        return data
    if isinstance(data, dict):
        return Link(**data)
    return Link(getattr(data, 'source', None), getattr(data, 'target', None))
