"""Easing functions remapping the fraction between two keyframes."""

from enum import Enum
from typing import Callable


# ── Easing functions ─────────────────────────────────────────────────

def _ease_linear(t: float) -> float:
    return t


def _ease_in_out(t: float) -> float:
    return 3.0 * t * t - 2.0 * t * t * t


def _ease_in(t: float) -> float:
    return t * t


def _smootherstep(t: float) -> float:
    return t * t * t * (t * (6.0 * t - 15.0) + 10.0)


class TimeWarp(Enum):
    LINEAR = 0
    EASE_IN_OUT = 1    # cubic smoothstep: smooth start and end
    EASE_IN = 2        # quadratic: slow start, fast end
    SMOOTHERSTEP = 3   # quintic

    def __call__(self, t: float) -> float:
        return _EASING_MAP[self](t)


_EASING_MAP: dict[TimeWarp, Callable[[float], float]] = {
    TimeWarp.LINEAR: _ease_linear,
    TimeWarp.EASE_IN_OUT: _ease_in_out,
    TimeWarp.EASE_IN: _ease_in,
    TimeWarp.SMOOTHERSTEP: _smootherstep,
}
