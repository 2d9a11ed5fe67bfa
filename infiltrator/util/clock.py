"""Time sources for the simulation.

``SimulationClock`` is the time source every core component reads: it only
moves when the owner advances it, so tests can step the simulation tick by
tick without waiting on wall-clock timers.

``TickPacer`` holds a headless run to wall-clock time when the runner asks
for it. Nothing in the core reads it.
"""

import time

from infiltrator.types import Millis


class SimulationClock:
    """Monotonic millisecond clock advanced explicitly by the engine."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = Millis(start_ms)

    def now(self) -> Millis:
        return self._now

    def advance(self, delta_ms: float) -> Millis:
        """Move time forward and return the new timestamp.

        Negative deltas are ignored; simulation time never runs backwards.
        """
        if delta_ms > 0:
            self._now = Millis(self._now + delta_ms)
        return self._now

    def set(self, now_ms: float) -> Millis:
        """Jump to ``now_ms``. Only for restoring a saved timeline."""
        self._now = Millis(max(0.0, now_ms))
        return self._now


class TickPacer:
    """Sleep between ticks so each one takes ``interval_ms`` of real time."""

    def __init__(self, interval_ms: float) -> None:
        self.interval = interval_ms / 1000
        self._next_deadline: float | None = None

    def wait(self) -> Millis:
        """Block until the next tick is due. Returns the real milliseconds waited.

        The first call returns immediately. A tick that overruns its slot
        starts the schedule over rather than rushing to catch up.
        """
        now = time.perf_counter()
        if self._next_deadline is None or now >= self._next_deadline:
            self._next_deadline = now + self.interval
            return Millis(0.0)
        waited = self._next_deadline - now
        time.sleep(waited)
        self._next_deadline += self.interval
        return Millis(waited * 1000)
