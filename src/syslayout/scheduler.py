"""
Cooperative scheduling for the layout loop.

The layout never spawns threads. A host drives it by calling
``Scheduler.run_frame()`` from its animation loop (or ``Scheduler.run()`` for
headless use). Each frame first fires one-shot tasks that have come due, then
calls every active frame timer exactly once.

Time is measured in milliseconds and read from a pluggable clock, so tests can
drive the whole system on virtual time with ``ManualClock``.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol
import itertools
import time

from sortedcontainers import SortedList


class Clock(Protocol):
    """Source of time in milliseconds."""

    def now(self) -> float: ...

    def sleep(self, ms: float) -> None: ...


class MonotonicClock:
    """Real wall-clock time backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def sleep(self, ms: float) -> None:
        if ms > 0:
            time.sleep(ms / 1000.0)


class ManualClock:
    """Virtual clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def sleep(self, ms: float) -> None:
        if ms > 0:
            self._now += ms

    advance = sleep


class ScheduledTask:
    """
    Handle for a one-shot callback registered with ``Scheduler.call_later``.

    Attributes:
        due: Time (ms) at which the callback becomes runnable
        callback: Function called with no arguments
    """

    def __init__(self, scheduler: Scheduler, due: float, seq: int, callback: Callable[[], None]):
        self._scheduler = scheduler
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False
        self.done = False

    @property
    def pending(self) -> bool:
        """True until the task has run or been cancelled."""
        return not (self.cancelled or self.done)

    def cancel(self) -> bool:
        """
        Cancel the task if it has not run yet.

        Returns:
            True if the task was pending and is now cancelled
        """
        if not self.pending:
            return False
        self.cancelled = True
        self._scheduler._discard(self)
        return True


class FrameTimer:
    """Repeating callback fired once per frame while active."""

    def __init__(self, scheduler: Scheduler, callback: Callable[[], None]):
        self._scheduler = scheduler
        self.callback = callback
        self.active = False

    def restart(self, callback: Optional[Callable[[], None]] = None) -> FrameTimer:
        """(Re)activate the timer, optionally replacing its callback."""
        if callback is not None:
            self.callback = callback
        self.active = True
        if self not in self._scheduler._frames:
            self._scheduler._frames.append(self)
        return self

    def stop(self) -> FrameTimer:
        """Deactivate the timer. Safe to call repeatedly and from the callback."""
        self.active = False
        return self


class Scheduler:
    """
    Single-threaded host loop for frame timers and delayed tasks.

    Args:
        clock: Time source; defaults to ``MonotonicClock``
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock: Clock = clock if clock is not None else MonotonicClock()
        self._tasks = SortedList(key=lambda t: (t.due, t.seq))
        self._frames: list[FrameTimer] = []
        self._seq = itertools.count()

    def now(self) -> float:
        """Current time in milliseconds."""
        return self.clock.now()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """
        Run callback once, no earlier than delay ms from now.

        Args:
            delay: Delay in milliseconds
            callback: Function called with no arguments

        Returns:
            Cancellable task handle
        """
        task = ScheduledTask(self, self.now() + max(0.0, delay), next(self._seq), callback)
        self._tasks.add(task)
        return task

    def frame_timer(self, callback: Callable[[], None], start: bool = True) -> FrameTimer:
        """Create a frame timer, active by default."""
        timer = FrameTimer(self, callback)
        if start:
            timer.restart()
        return timer

    def _discard(self, task: ScheduledTask) -> None:
        self._tasks.discard(task)

    def run_due(self) -> int:
        """
        Fire every task whose due time has passed, in due order.

        Returns:
            Number of tasks fired
        """
        fired = 0
        now = self.now()
        while self._tasks and self._tasks[0].due <= now:
            task = self._tasks.pop(0)
            task.done = True
            task.callback()
            fired += 1
        return fired

    def run_frame(self) -> bool:
        """
        Run one frame: due tasks first, then each active frame timer once.

        Returns:
            True if frame timers or tasks are still pending afterwards
        """
        self.run_due()
        self._frames = [t for t in self._frames if t.active]
        for timer in list(self._frames):
            # a callback earlier in this frame may have stopped it
            if timer.active:
                timer.callback()
        self._frames = [t for t in self._frames if t.active]
        return self.pending()

    def has_active_frames(self) -> bool:
        return any(t.active for t in self._frames)

    def pending(self) -> bool:
        """True while any frame timer is active or any task is waiting."""
        return self.has_active_frames() or len(self._tasks) > 0

    def advance(self, ms: float) -> int:
        """Let ms pass on the clock, then fire due tasks."""
        self.clock.sleep(ms)
        return self.run_due()

    def run(self, max_frames: int = 100000, frame_interval: float = 16.0) -> int:
        """
        Run frames until no frame timer is active.

        Args:
            max_frames: Upper bound on frames to run
            frame_interval: Time (ms) allowed to pass before each frame

        Returns:
            Number of frames run
        """
        frames = 0
        while frames < max_frames and self.has_active_frames():
            self.clock.sleep(frame_interval)
            self.run_frame()
            frames += 1
        return frames
