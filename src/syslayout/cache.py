"""
Position cache keyed by node id.

Keeps the last known position, velocity and pin state of every node so a
layout can be restored across re-initializations and, with a ``path``, across
sessions. The cache is shared by the layout loop and the interaction
controller; it is not owned by either.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, TypedDict, Union
import json
import logging

from .scheduler import Scheduler, ScheduledTask

logger = logging.getLogger(__name__)


class CacheEntry(TypedDict):
    """
    Persisted state of one node.

    The key spelling is the stored schema and matches what the front end
    writes, hence ``isFixed``.
    """
    x: float
    y: float
    vx: float
    vy: float
    isFixed: bool


def make_entry(x: float, y: float, vx: Optional[float] = 0.0, vy: Optional[float] = 0.0,
               is_fixed: bool = False) -> CacheEntry:
    return {
        'x': x,
        'y': y,
        'vx': vx or 0.0,
        'vy': vy or 0.0,
        'isFixed': bool(is_fixed),
    }


class PositionCache:
    """
    In-memory id -> ``CacheEntry`` store with optional JSON persistence.

    Writes are last-write-wins. Nothing is evicted here; entries for nodes
    that disappear from the graph stay until removed by the caller.

    Args:
        path: JSON file to load from at construction and save to on change
        scheduler: When given, saves are debounced through it
        debounce: Quiet period (ms) before a debounced save
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        scheduler: Optional[Scheduler] = None,
        debounce: float = 500.0
    ):
        self._positions: dict[str, CacheEntry] = {}
        self.path: Optional[Path] = Path(path) if path is not None else None
        self.scheduler = scheduler
        self.debounce = debounce
        self._save_task: Optional[ScheduledTask] = None

        if self.path is not None:
            self.load()

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, id: str) -> bool:
        return id in self._positions

    def get(self, id: str) -> Optional[CacheEntry]:
        """
        Get the stored entry of a node.

        Returns:
            A copy of the entry, or None when the id is unknown
        """
        entry = self._positions.get(id)
        return dict(entry) if entry is not None else None

    def has(self, id: str) -> bool:
        return id in self._positions

    def set(self, id: str, entry: dict) -> None:
        """
        Store the state of a node, replacing any previous entry.

        Missing velocities default to 0 and a missing pin flag to False.
        A falsy id is ignored.
        """
        if not id:
            return

        self._positions[id] = make_entry(
            entry['x'], entry['y'], entry.get('vx'), entry.get('vy'), entry.get('isFixed', False)
        )
        self._schedule_save()

    def update_batch(self, nodes: Iterable) -> None:
        """
        Store the current state of every node that has an id and a position.

        Args:
            nodes: Objects with ``id``, ``x``, ``y``, ``vx``, ``vy``, ``is_fixed``
        """
        updated = False
        for node in nodes:
            if not node.id or node.x is None or node.y is None:
                continue
            self._positions[node.id] = make_entry(node.x, node.y, node.vx, node.vy, node.is_fixed)
            updated = True

        if updated:
            self._schedule_save()

    def remove(self, id: str) -> None:
        """Remove the entry of a node, if any."""
        if self._positions.pop(id, None) is not None:
            self._schedule_save()

    def clear(self, also_persisted: bool = False) -> None:
        """
        Drop every entry.

        Args:
            also_persisted: Also delete the backing file
        """
        self._positions.clear()
        self._cancel_save()

        if also_persisted and self.path is not None:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as error:
                logger.warning("Error removing positions file %s: %s", self.path, error)

    def _cancel_save(self) -> None:
        if self._save_task is not None:
            self._save_task.cancel()
            self._save_task = None

    def _schedule_save(self) -> None:
        if self.path is None:
            return

        if self.scheduler is None:
            self.save()
            return

        self._cancel_save()
        self._save_task = self.scheduler.call_later(self.debounce, self.save)

    def flush(self) -> None:
        """Write a pending debounced save now."""
        if self._save_task is not None and self._save_task.pending:
            self._cancel_save()
            self.save()

    def save(self) -> bool:
        """
        Write all entries to ``path`` as a JSON list of ``[id, entry]`` pairs.

        Returns:
            True on success; failures are logged, not raised
        """
        self._save_task = None
        if self.path is None:
            return False

        try:
            self.path.write_text(json.dumps(list(self._positions.items())))
        except (OSError, TypeError, ValueError) as error:
            logger.warning("Error saving positions to %s: %s", self.path, error)
            return False
        return True

    def load(self) -> int:
        """
        Replace the entries with those stored at ``path``.

        A missing file leaves the cache empty. Unreadable or malformed
        content is logged and ignored.

        Returns:
            Number of entries loaded
        """
        if self.path is None or not self.path.exists():
            return 0

        try:
            pairs = json.loads(self.path.read_text())
            positions = {
                str(id): make_entry(e['x'], e['y'], e.get('vx'), e.get('vy'), e.get('isFixed', False))
                for id, e in pairs
            }
        except (OSError, AttributeError, TypeError, ValueError, KeyError) as error:
            logger.warning("Error loading positions from %s: %s", self.path, error)
            return 0

        self._positions = positions
        logger.debug("Loaded %d cached positions from %s", len(positions), self.path)
        return len(positions)
