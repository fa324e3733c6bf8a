"""
Simulation clock with configurable speed multiplier.

Maps wall-clock time to simulated seconds. The run loop reads the
per-frame delta from here and hands it to each dispatch center's tick;
the centers themselves never look at wall-clock time.
"""

import time
from typing import Callable


class SimulationClock:
    """
    Simulation clock that maps wall-clock time to simulated seconds.

    Not async. Calculates sim time from wall clock when queried.
    No background thread needed.
    """

    def __init__(self, speed: float = 1.0) -> None:
        self._speed = speed
        self._running = False
        self._wall_start: float | None = None
        self._accumulated_sim = 0.0
        self._last_delta_mark = 0.0
        self._tick_callbacks: list[Callable[[float], None]] = []

    @property
    def speed(self) -> float:
        """Current speed multiplier."""
        return self._speed

    @property
    def is_running(self) -> bool:
        """Whether the clock is currently running."""
        return self._running

    def start(self) -> None:
        """Begin advancing time."""
        if self._running:
            return
        self._running = True
        self._wall_start = time.monotonic()

    def pause(self) -> None:
        """Pause time advancement. Accumulates elapsed sim time."""
        if not self._running:
            return
        self._accumulated_sim = self.get_elapsed()
        self._running = False
        self._wall_start = None

    def resume(self) -> None:
        """Resume from paused state."""
        self.start()

    def reset(self) -> None:
        """Reset clock to zero elapsed. Clock is left paused."""
        self._running = False
        self._wall_start = None
        self._accumulated_sim = 0.0
        self._last_delta_mark = 0.0

    def set_speed(self, multiplier: float) -> None:
        """Change speed multiplier. Accumulates elapsed time at old speed first."""
        if multiplier < 0:
            raise ValueError(f"Speed multiplier must be >= 0, got {multiplier}")
        if self._running:
            self._accumulated_sim = self.get_elapsed()
            self._wall_start = time.monotonic()
        self._speed = multiplier

    def get_elapsed(self) -> float:
        """Elapsed simulated seconds since start."""
        if not self._running or self._wall_start is None:
            return self._accumulated_sim
        wall_elapsed = time.monotonic() - self._wall_start
        return self._accumulated_sim + wall_elapsed * self._speed

    def delta(self) -> float:
        """Simulated seconds since the previous call (frame delta)."""
        now = self.get_elapsed()
        dt = max(0.0, now - self._last_delta_mark)
        self._last_delta_mark = now
        return dt

    def add_tick_callback(self, callback: Callable[[float], None]) -> None:
        """Register a function to be called on each tick with elapsed seconds."""
        self._tick_callbacks.append(callback)

    def tick(self) -> None:
        """Process one tick and call all registered callbacks."""
        elapsed = self.get_elapsed()
        for cb in self._tick_callbacks:
            cb(elapsed)
