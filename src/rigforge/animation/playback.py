"""Edit/playback mode switching and the playback clock."""

from __future__ import annotations

import logging
from typing import Sequence

from rigforge.animation.keyframes import KeyframeTrack
from rigforge.constants import PLAYBACK_SPEED
from rigforge.core.clock import DeltaClock
from rigforge.core.math_utils import clamp
from rigforge.core.state import Mode, PlaybackState
from rigforge.skeleton.bone import Bone

logger = logging.getLogger(__name__)


class PlaybackActiveError(RuntimeError):
    """A keyframe edit was attempted while the track is playing."""


class PlaybackController:
    """Drives playback time over a keyframe track.

    Playback needs at least two keyframes and runs from time 0 to the
    last keyframe index, then drops back to edit mode.
    """

    def __init__(self, track: KeyframeTrack, speed: float = PLAYBACK_SPEED):
        self.track = track
        self.state = PlaybackState()
        self.speed = speed

    # ── Properties ────────────────────────────────────────────────

    @property
    def mode(self) -> Mode:
        return Mode.PLAYBACK if self.state.enabled else Mode.EDIT

    @property
    def is_playing(self) -> bool:
        return self.state.enabled

    @property
    def time(self) -> float:
        return self.state.time

    @property
    def max_time(self) -> float:
        return float(max(self.track.last_index, 0))

    # ── Control ───────────────────────────────────────────────────

    def play(self) -> bool:
        """Enter playback from time 0. Returns False if there are too few keyframes."""
        if len(self.track) < 2:
            logger.info("Playback needs at least two keyframes (have %d)", len(self.track))
            return False
        self.state.reset()
        self.state.enabled = True
        return True

    def stop(self) -> None:
        self.state.enabled = False
        self.state.time = 0.0

    def toggle(self) -> bool:
        """Switch between edit and playback; return whether now playing."""
        if self.state.enabled:
            self.stop()
            return False
        return self.play()

    def advance(self, dt: float) -> None:
        """Move playback time forward; wrap to edit mode past the last keyframe."""
        if not self.state.enabled:
            return
        self.state.time += dt * self.speed
        if self.state.time >= self.max_time:
            logger.debug("Playback reached %.2f; back to edit mode", self.max_time)
            self.stop()

    def tick(self, clock: DeltaClock) -> None:
        self.advance(clock.get_delta())

    def seek(self, time: float) -> None:
        self.state.time = clamp(time, 0.0, self.max_time)

    def require_edit_mode(self, action: str) -> None:
        if self.state.enabled:
            raise PlaybackActiveError(f"Cannot {action} during playback")

    def current_frame(self, template: Sequence[Bone]) -> list[Bone]:
        return self.track.evaluate(self.state.time, self.state, template)

    def status(self) -> str:
        if self.state.enabled:
            return f"playback: {self.state.time:.2f} / {self.max_time:.2f}"
        return f"edit: {len(self.track)} keyframes"
