"""
Construction-time configuration of the layout loop.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping
import re


@dataclass
class LayoutOptions:
    """Tunable parameters of ``LayoutManager``. Times are in milliseconds."""
    # Forces
    link_distance: float = 150.0
    charge_strength: float = -300.0
    collision_radius: float = 60.0
    group_force_strength: float = 0.5

    # Viewport
    width: float = 800.0
    height: float = 600.0
    padding: float = 50.0

    # Cache
    cache_update_interval: float = 300.0
    transient_pin_delay: float = 500.0
    cached_velocity_factor: float = 0.3

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> LayoutOptions:
        """
        Build options from a mapping with snake_case or camelCase keys.

        ``{'linkDistance': 200}`` and ``{'link_distance': 200}`` are
        equivalent. Unknown keys raise TypeError.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()
            if name not in known:
                raise TypeError(f"Unknown layout option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)
