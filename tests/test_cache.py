"""Tests for the position cache."""

import json
import logging

import pytest
from syslayout.cache import PositionCache, make_entry
from syslayout.graph import Node
from syslayout.scheduler import ManualClock, Scheduler


class TestPositionCache:
    """Test in-memory cache behaviour."""

    def test_round_trip(self):
        """Test set followed by get returns an equal entry."""
        cache = PositionCache()
        entry = {'x': 10.0, 'y': 20.0, 'vx': 1.5, 'vy': -2.0, 'isFixed': True}
        cache.set('a', entry)
        assert cache.get('a') == entry

    def test_get_unknown(self):
        """Test get of an unknown id returns None."""
        assert PositionCache().get('missing') is None

    def test_get_returns_copy(self):
        """Test mutating a returned entry does not change the cache."""
        cache = PositionCache()
        cache.set('a', make_entry(1.0, 2.0))
        cache.get('a')['x'] = 99.0
        assert cache.get('a')['x'] == 1.0

    def test_set_defaults(self):
        """Test missing velocity and pin flag get defaults."""
        cache = PositionCache()
        cache.set('a', {'x': 1.0, 'y': 2.0})
        assert cache.get('a') == {'x': 1.0, 'y': 2.0, 'vx': 0.0, 'vy': 0.0, 'isFixed': False}

    def test_set_ignores_empty_id(self):
        """Test falsy ids are ignored."""
        cache = PositionCache()
        cache.set('', make_entry(1.0, 2.0))
        cache.set(None, make_entry(1.0, 2.0))
        assert len(cache) == 0

    def test_last_write_wins(self):
        """Test a later set overwrites an earlier one."""
        cache = PositionCache()
        cache.set('a', make_entry(1.0, 1.0))
        cache.set('a', make_entry(2.0, 3.0, is_fixed=True))
        assert cache.get('a') == make_entry(2.0, 3.0, is_fixed=True)

    def test_update_batch(self):
        """Test update_batch stores each node's latest state."""
        cache = PositionCache()
        a = Node('a', x=1.0, y=2.0, vx=0.5, vy=0.25)
        b = Node('b', x=3.0, y=4.0, vx=0.0, vy=0.0, is_fixed=True)
        cache.set('a', make_entry(100.0, 100.0))

        cache.update_batch([a, b])

        assert cache.get('a') == {'x': 1.0, 'y': 2.0, 'vx': 0.5, 'vy': 0.25, 'isFixed': False}
        assert cache.get('b') == {'x': 3.0, 'y': 4.0, 'vx': 0.0, 'vy': 0.0, 'isFixed': True}

    def test_update_batch_skips_unplaced(self):
        """Test nodes without id or position are skipped."""
        cache = PositionCache()
        cache.update_batch([Node('a'), Node(None, x=1.0, y=1.0)])
        assert len(cache) == 0

    def test_has_remove_contains(self):
        """Test membership and removal."""
        cache = PositionCache()
        cache.set('a', make_entry(0.0, 0.0))
        assert cache.has('a')
        assert 'a' in cache

        cache.remove('a')
        cache.remove('a')
        assert not cache.has('a')

    def test_clear(self):
        """Test clear drops every entry."""
        cache = PositionCache()
        cache.set('a', make_entry(0.0, 0.0))
        cache.set('b', make_entry(0.0, 0.0))
        cache.clear()
        assert len(cache) == 0


class TestPersistence:
    """Test JSON file persistence."""

    def test_save_without_scheduler_is_immediate(self, tmp_path):
        """Test writes go straight to disk without a scheduler."""
        path = tmp_path / "positions.json"
        cache = PositionCache(path)
        cache.set('a', make_entry(1.0, 2.0, is_fixed=True))

        assert path.exists()
        reloaded = PositionCache(path)
        assert reloaded.get('a') == make_entry(1.0, 2.0, is_fixed=True)

    def test_file_format(self, tmp_path):
        """Test the file holds a list of [id, entry] pairs."""
        path = tmp_path / "positions.json"
        cache = PositionCache(path)
        cache.set('a', make_entry(1.0, 2.0))

        data = json.loads(path.read_text())
        assert data == [['a', {'x': 1.0, 'y': 2.0, 'vx': 0.0, 'vy': 0.0, 'isFixed': False}]]

    def test_debounced_save(self, tmp_path):
        """Test saves wait for the debounce period."""
        path = tmp_path / "positions.json"
        scheduler = Scheduler(ManualClock())
        cache = PositionCache(path, scheduler=scheduler, debounce=250)

        cache.set('a', make_entry(1.0, 2.0))
        scheduler.advance(200)
        cache.set('b', make_entry(3.0, 4.0))
        scheduler.advance(200)
        assert not path.exists()

        scheduler.advance(50)
        assert path.exists()
        assert len(PositionCache(path)) == 2

    def test_flush(self, tmp_path):
        """Test flush writes a pending save immediately."""
        path = tmp_path / "positions.json"
        scheduler = Scheduler(ManualClock())
        cache = PositionCache(path, scheduler=scheduler)

        cache.set('a', make_entry(1.0, 2.0))
        cache.flush()
        assert path.exists()
        assert not scheduler.pending()

    def test_missing_file(self, tmp_path):
        """Test a missing file gives an empty cache."""
        cache = PositionCache(tmp_path / "nothing.json")
        assert len(cache) == 0

    def test_malformed_file_is_logged(self, tmp_path, caplog):
        """Test malformed content is logged and ignored."""
        path = tmp_path / "positions.json"
        path.write_text("{not json")

        with caplog.at_level(logging.WARNING, logger="syslayout.cache"):
            cache = PositionCache(path)

        assert len(cache) == 0
        assert "Error loading positions" in caplog.text

    def test_wrong_shape_is_logged(self, tmp_path, caplog):
        """Test well-formed JSON of the wrong shape is ignored."""
        path = tmp_path / "positions.json"
        path.write_text(json.dumps([["a", 5]]))

        with caplog.at_level(logging.WARNING, logger="syslayout.cache"):
            cache = PositionCache(path)

        assert len(cache) == 0
        assert "Error loading positions" in caplog.text

    def test_save_failure_is_logged(self, tmp_path, caplog):
        """Test unwritable path is logged, not raised."""
        path = tmp_path / "missing_dir" / "positions.json"
        cache = PositionCache(path)

        with caplog.at_level(logging.WARNING, logger="syslayout.cache"):
            cache.set('a', make_entry(1.0, 2.0))

        assert cache.get('a') is not None
        assert "Error saving positions" in caplog.text

    def test_clear_persisted(self, tmp_path):
        """Test clear can remove the backing file."""
        path = tmp_path / "positions.json"
        cache = PositionCache(path)
        cache.set('a', make_entry(1.0, 2.0))

        cache.clear(also_persisted=True)
        assert not path.exists()
        assert len(cache) == 0

    def test_clear_cancels_pending_save(self, tmp_path):
        """Test clear drops a debounced save."""
        path = tmp_path / "positions.json"
        scheduler = Scheduler(ManualClock())
        cache = PositionCache(path, scheduler=scheduler)

        cache.set('a', make_entry(1.0, 2.0))
        cache.clear()
        scheduler.advance(1000)
        assert not path.exists()
