"""Frame clock feeding playback time."""

import time
from typing import Callable

from rigforge.constants import MAX_DELTA_TIME
from rigforge.core.math_utils import clamp


class DeltaClock:
    """Seconds between ticks, clamped so a stalled frame cannot skip keyframes.

    While paused the clock reports zero deltas; resuming does not count the
    paused interval. ``now`` can be swapped for a fake time source.
    """

    def __init__(self, now: Callable[[], float] = time.perf_counter,
                 max_delta: float = MAX_DELTA_TIME):
        self._now = now
        self.max_delta = max_delta
        self.paused = False
        self.elapsed = 0.0
        self._last_time = now()

    def get_delta(self) -> float:
        current = self._now()
        dt = current - self._last_time
        self._last_time = current
        if self.paused:
            return 0.0
        dt = clamp(dt, 0.0, self.max_delta)
        self.elapsed += dt
        return dt

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False
        self._last_time = self._now()

    def reset(self) -> None:
        self.elapsed = 0.0
        self._last_time = self._now()
