"""Tests for the force simulation engine."""

import math

import pytest
from syslayout.forces import CenterForce, Force
from syslayout.graph import Node
from syslayout.scheduler import ManualClock, Scheduler
from syslayout.simulation import INITIAL_RADIUS, EventType, Simulation


@pytest.fixture
def scheduler():
    return Scheduler(ManualClock())


class Recorder(Force):
    """Force that records the alpha it was applied with."""

    def __init__(self, name, log):
        super().__init__()
        self.name = name
        self.log = log

    def apply(self, nodes, alpha):
        self.log.append((self.name, alpha))


class TestAlpha:
    """Test alpha annealing."""

    def test_defaults(self, scheduler):
        """Test default annealing parameters."""
        sim = Simulation(scheduler=scheduler)
        assert sim.alpha() == 1.0
        assert sim.alpha_min() == 0.001
        assert sim.alpha_target() == 0.0
        assert sim.alpha_decay() == pytest.approx(1 - 0.001 ** (1 / 300))
        assert sim.velocity_decay() == pytest.approx(0.4)

    def test_decays_toward_target(self, scheduler):
        """Test each tick covers alpha_decay of the gap to alpha_target."""
        sim = Simulation(scheduler=scheduler)
        decay = sim.alpha_decay()
        sim.tick()
        assert sim.alpha() == pytest.approx(1.0 - decay)

        sim.alpha(0.1).alpha_target(0.3).tick()
        assert sim.alpha() == pytest.approx(0.1 + 0.2 * decay)

    def test_setters_chain(self, scheduler):
        """Test setters return the simulation."""
        sim = Simulation(scheduler=scheduler)
        assert sim.alpha(0.5).alpha_min(0.01).alpha_decay(0.1).alpha_target(0.2).velocity_decay(0.5) is sim
        assert sim.velocity_decay() == pytest.approx(0.5)


class TestIntegration:
    """Test position integration."""

    def test_free_axis(self, scheduler):
        """Test velocity is decayed then added to position."""
        node = Node('a', x=0.0, y=0.0, vx=10.0, vy=-5.0)
        Simulation([node], scheduler).tick()
        assert (node.x, node.y) == pytest.approx((6.0, -3.0))
        assert (node.vx, node.vy) == pytest.approx((6.0, -3.0))

    def test_pinned_axes(self, scheduler):
        """Test a pinned axis snaps to its target and loses velocity."""
        node = Node('a', x=0.0, y=0.0, vx=10.0, vy=10.0)
        sim = Simulation([node], scheduler)
        node.fx = 42.0
        sim.tick()

        assert node.x == 42.0
        assert node.vx == 0.0
        assert node.y == pytest.approx(6.0)

    def test_pin_holds_against_forces(self, scheduler):
        """Test forces cannot move a fully pinned node."""
        node = Node('a', x=0.0, y=0.0, fx=5.0, fy=5.0)
        sim = Simulation([node], scheduler)
        sim.force("center", CenterForce(400.0, 300.0))
        sim.tick(10)
        assert (node.x, node.y) == (5.0, 5.0)

    def test_seeds_missing_positions(self, scheduler):
        """Test nodes without a position are seeded on a spiral."""
        nodes = [Node('a'), Node('b')]
        Simulation(nodes, scheduler)

        assert nodes[0].x == pytest.approx(INITIAL_RADIUS * math.sqrt(0.5))
        assert nodes[0].y == pytest.approx(0.0)
        assert math.hypot(nodes[1].x, nodes[1].y) == pytest.approx(INITIAL_RADIUS * math.sqrt(1.5))
        assert (nodes[0].vx, nodes[0].vy) == (0.0, 0.0)

    def test_initial_pin_applied(self, scheduler):
        """Test fx/fy are copied into the position at setup."""
        node = Node('a', x=1.0, y=1.0, fx=9.0)
        Simulation([node], scheduler)
        assert node.x == 9.0

    def test_nan_velocity_reset(self, scheduler):
        """Test NaN velocities are reset to zero."""
        node = Node('a', x=1.0, y=1.0, vx=math.nan, vy=1.0)
        Simulation([node], scheduler)
        assert (node.vx, node.vy) == (0.0, 0.0)

    def test_indices_and_mappings(self, scheduler):
        """Test node mappings are coerced and indexed."""
        sim = Simulation([{'id': 'a', 'x': 1.0, 'y': 2.0}, Node('b')], scheduler)
        nodes = sim.nodes()
        assert [n.id for n in nodes] == ['a', 'b']
        assert [n.index for n in nodes] == [0, 1]
        assert isinstance(nodes[0], Node)


class TestForces:
    """Test the force registry."""

    def test_applied_in_registration_order(self, scheduler):
        """Test forces run in the order they were registered."""
        log = []
        sim = Simulation([Node('a', x=0.0, y=0.0)], scheduler)
        sim.force("b", Recorder("b", log)).force("a", Recorder("a", log))
        sim.tick()

        assert [name for name, _ in log] == ["b", "a"]
        assert log[0][1] == pytest.approx(sim.alpha())
        assert sim.force_names() == ["b", "a"]

    def test_replace_keeps_position(self, scheduler):
        """Test replacing a force keeps its place in the order."""
        log = []
        sim = Simulation(scheduler=scheduler)
        sim.force("b", Recorder("b", log)).force("a", Recorder("a", log))
        sim.force("b", Recorder("b2", log))
        assert sim.force_names() == ["b", "a"]

    def test_get_and_remove(self, scheduler):
        """Test force lookup and removal."""
        sim = Simulation(scheduler=scheduler)
        center = CenterForce()
        sim.force("center", center)
        assert sim.force("center") is center

        sim.force("center", None)
        assert sim.force("center") is None
        assert sim.force_names() == []
        sim.force("missing", None)

    def test_setting_nodes_reinitializes_forces(self, scheduler):
        """Test forces see the new node list."""
        seen = []

        class Watcher(Force):
            def initialize(self, nodes, random):
                super().initialize(nodes, random)
                seen.append(len(nodes))

            def apply(self, nodes, alpha):
                pass

        sim = Simulation(scheduler=scheduler)
        sim.force("watch", Watcher())
        sim.nodes([Node('a'), Node('b')])
        assert seen == [0, 2]


class TestRunning:
    """Test frame-driven stepping and events."""

    def test_starts_running(self, scheduler):
        """Test a new simulation is scheduled immediately."""
        sim = Simulation(scheduler=scheduler)
        assert sim.running
        assert scheduler.has_active_frames()

    def test_settles_and_ends_once(self, scheduler):
        """Test alpha cools below alpha_min in about 300 ticks, then end fires once."""
        ticks = []
        ends = []
        sim = Simulation([Node('a', x=0.0, y=0.0)], scheduler)
        sim.on("tick", ticks.append).on(EventType.end, ends.append)

        frames = scheduler.run()

        assert 299 <= len(ticks) <= 301
        assert frames == len(ticks)
        assert len(ends) == 1
        assert ends[0]['type'] == EventType.end
        assert ends[0]['alpha'] < 0.001
        assert not sim.running

    def test_stop_on_last_tick_suppresses_end(self, scheduler):
        """Test stopping from the tick listener on the final step fires no end."""
        ends = []
        sim = Simulation(scheduler=scheduler)

        def on_tick(event):
            if event["alpha"] < sim.alpha_min():
                sim.stop()

        sim.on("tick", on_tick).on("end", ends.append)
        scheduler.run()

        assert ends == []
        assert not sim.running

    def test_stop_inside_listener(self, scheduler):
        """Test stop from the tick listener halts before the next frame."""
        ends = []
        sim = Simulation(scheduler=scheduler)
        sim.on("tick", lambda e: sim.stop()).on("end", ends.append)

        assert scheduler.run() == 1
        assert not sim.running
        assert ends == []

    def test_stop_is_idempotent(self, scheduler):
        """Test repeated stop calls are harmless."""
        sim = Simulation(scheduler=scheduler)
        sim.stop().stop()
        assert not sim.running
        assert scheduler.run() == 0

    def test_restart_after_end(self, scheduler):
        """Test a settled simulation can be reheated."""
        sim = Simulation(scheduler=scheduler)
        scheduler.run()
        assert not sim.running

        ends = []
        sim.on("end", ends.append)
        sim.alpha(0.3).restart()
        assert sim.running

        frames = scheduler.run()
        assert 0 < frames < 300
        assert len(ends) == 1

    def test_unsubscribe(self, scheduler):
        """Test a None listener removes the subscription."""
        ticks = []
        sim = Simulation(scheduler=scheduler)
        sim.on("tick", ticks.append)
        scheduler.run_frame()
        sim.on("tick", None)
        scheduler.run_frame()
        assert len(ticks) == 1

    def test_tick_fires_no_events(self, scheduler):
        """Test manual tick does not notify listeners."""
        ticks = []
        sim = Simulation(scheduler=scheduler)
        sim.on("tick", ticks.append)
        sim.tick(5)
        assert ticks == []


class TestFind:
    """Test Simulation.find."""

    def test_closest(self, scheduler):
        """Test the closest node is returned."""
        a = Node('a', x=0.0, y=0.0)
        b = Node('b', x=10.0, y=0.0)
        sim = Simulation([a, b], scheduler)
        assert sim.find(8.0, 1.0) is b

    def test_radius(self, scheduler):
        """Test nothing outside the radius is found."""
        sim = Simulation([Node('a', x=0.0, y=0.0)], scheduler)
        assert sim.find(100.0, 0.0, radius=10.0) is None
        assert Simulation(scheduler=scheduler).find(0.0, 0.0) is None
