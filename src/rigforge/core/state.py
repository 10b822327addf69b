"""Editor and playback state containers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rigforge.skeleton.bone import Bone


class Mode(Enum):
    """Whether the rig is being edited or played back."""
    EDIT = "edit"
    PLAYBACK = "playback"


class ManipulationMode(Enum):
    """What a pointer drag does. Exactly one is active at a time."""
    ORBIT = "orbit"          # camera, handled outside the engine
    ROTATE = "rotate"
    TRANSLATE = "translate"


@dataclass
class PlaybackState:
    """Playback clock plus the cached interpolated frame.

    ``last_evaluated`` is NaN until the first evaluation so that any real
    time differs from it; ``frame`` is empty until then.
    """
    time: float = 0.0
    last_evaluated: float = math.nan
    frame: list[Bone] = field(default_factory=list)
    enabled: bool = False

    def is_cached(self, time: float) -> bool:
        """True when ``frame`` already holds the pose for ``time``."""
        return time == self.last_evaluated and bool(self.frame)

    def invalidate(self) -> None:
        """Force the next evaluation to recompute the frame."""
        self.last_evaluated = math.nan

    def reset(self) -> None:
        self.time = 0.0
        self.invalidate()
        self.frame = []
