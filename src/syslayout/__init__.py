"""
syslayout: force-directed layout core for system dependency graphs

Computes and maintains 2D positions for a mutable graph of systems and their
dependencies, with multi-group clustering, a soft viewport boundary, position
caching across reloads and drag/pin interaction.
"""

__version__ = "0.1.0"

from .cache import CacheEntry, PositionCache
from .clustering import MultiGroupClusterForce, identify_groups
from .containment import ContainmentForce
from .forces import CenterForce, ChargeForce, CollisionForce, Force, LinkForce
from .graph import Link, Node, normalize_groups
from .interaction import InteractionController
from .manager import LayoutManager
from .options import LayoutOptions
from .placement import apply_initial_positions
from .prng import PseudoRandom
from .scheduler import ManualClock, MonotonicClock, Scheduler
from .simulation import EventType, Simulation

__all__ = [
    "CacheEntry",
    "CenterForce",
    "ChargeForce",
    "CollisionForce",
    "ContainmentForce",
    "EventType",
    "Force",
    "InteractionController",
    "LayoutManager",
    "LayoutOptions",
    "Link",
    "LinkForce",
    "ManualClock",
    "MonotonicClock",
    "MultiGroupClusterForce",
    "Node",
    "PositionCache",
    "PseudoRandom",
    "Scheduler",
    "Simulation",
    "apply_initial_positions",
    "identify_groups",
    "normalize_groups",
]
