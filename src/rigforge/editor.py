"""Interactive bone editing: hover selection, drag dispatch, keyframe keys.

Works on plain numbers only (ray vectors, pixel deltas, camera axes), so
any windowing layer can forward its input here.
"""

from __future__ import annotations

import logging

from rigforge.constants import NO_BONE, ROLL_SPEED, ROTATION_SPEED, TRANSLATE_SPEED
from rigforge.core.events import EventBus, EventType
from rigforge.core.math_utils import Mat4, Vec3, screen_to_ray
from rigforge.core.state import ManipulationMode
from rigforge.rig import Rig

logger = logging.getLogger(__name__)


class RigEditor:
    """Routes pointer and key input to a rig.

    Hovering picks and highlights a bone; a drag that starts over the
    highlighted bone rotates or translates it depending on the active
    manipulation mode. Bone edits are ignored while nothing is selected.
    """

    def __init__(self, rig: Rig, bus: EventBus | None = None):
        self.rig = rig
        self.bus = bus if bus is not None else EventBus()
        self.mode = ManipulationMode.ROTATE
        self.dragging = False

    @property
    def selected(self) -> int:
        return self.rig.highlighted

    # ── Selection ─────────────────────────────────────────────────

    def hover(self, origin: Vec3, direction: Vec3) -> int:
        """Pick along a world ray and highlight the hit bone."""
        if self.dragging:
            return self.rig.highlighted
        index = self.rig.pick(origin, direction)
        if index != self.rig.highlighted:
            self.rig.highlighted = index
            self.bus.publish(EventType.BONE_SELECTED, index=index)
        return index

    def hover_at(
        self,
        x: float,
        y: float,
        width: int,
        height: int,
        view: Mat4,
        proj: Mat4,
    ) -> int:
        """Pick under a viewport pixel."""
        origin, direction = screen_to_ray(x, y, width, height, view, proj)
        return self.hover(origin, direction)

    def set_mode(self, mode: ManipulationMode) -> None:
        if mode == self.mode:
            return
        self.mode = mode
        self.bus.publish(EventType.MANIPULATION_MODE_CHANGED, mode=mode)

    def toggle_move(self) -> ManipulationMode:
        """Flip between rotating and translating bones."""
        if self.mode == ManipulationMode.TRANSLATE:
            self.set_mode(ManipulationMode.ROTATE)
        else:
            self.set_mode(ManipulationMode.TRANSLATE)
        return self.mode

    # ── Dragging ──────────────────────────────────────────────────

    def begin_drag(self) -> bool:
        """Start a bone drag. Returns True if consumed (a bone is highlighted)."""
        if self.mode == ManipulationMode.ORBIT or self.selected == NO_BONE:
            return False
        self.dragging = True
        return True

    def end_drag(self) -> None:
        self.dragging = False

    def drag(self, dx: float, dy: float, right: Vec3, up: Vec3, forward: Vec3) -> bool:
        """Apply a pointer delta (pixels) to the selected bone.

        Rotate mode turns the bone about the camera's forward axis;
        translate mode moves its joint in the camera plane, bounded by the
        reach of its anchor chain. Returns True if the pose changed.
        """
        index = self.selected
        if index == NO_BONE or self.mode == ManipulationMode.ORBIT:
            return False

        if self.mode == ManipulationMode.ROTATE:
            self.rig.rotate_on_axis(index, -dx * ROTATION_SPEED, forward)
            self.rig.rotate_on_axis(index, dy * ROTATION_SPEED, forward)
            operation = "rotate"
        else:
            if not self.rig.translate(index, dx * TRANSLATE_SPEED, -dy * TRANSLATE_SPEED, right, up):
                return False
            operation = "translate"

        self.bus.publish(EventType.POSE_CHANGED, index=index, operation=operation)
        return True

    def roll(self, direction: int) -> bool:
        """Twist the selected bone; ``direction`` is +1 or -1."""
        index = self.selected
        if index == NO_BONE:
            return False
        self.rig.roll(index, direction * ROLL_SPEED)
        self.bus.publish(EventType.POSE_CHANGED, index=index, operation="roll")
        return True

    # ── Keyframes ─────────────────────────────────────────────────

    def capture_keyframe(self) -> int:
        index = self.rig.capture()
        self.bus.publish(EventType.KEYFRAME_ADDED, index=index)
        return index

    def replace_keyframe(self, index: int) -> None:
        self.rig.replace(index)
        self.bus.publish(EventType.KEYFRAME_REPLACED, index=index)

    def delete_keyframe(self, index: int) -> None:
        self.rig.delete(index)
        self.bus.publish(EventType.KEYFRAME_DELETED, index=index)

    def restore_keyframe(self, index: int) -> None:
        self.rig.restore(index)
        self.bus.publish(EventType.KEYFRAME_RESTORED, index=index)

    # ── Playback ──────────────────────────────────────────────────

    def toggle_playback(self) -> bool:
        playing = self.rig.toggle_playback()
        self.bus.publish(EventType.PLAYBACK_STARTED if playing else EventType.PLAYBACK_STOPPED)
        return playing

    def advance(self, dt: float) -> None:
        """Step playback and report progress or the wrap back to edit mode."""
        if not self.rig.playback.is_playing:
            return
        self.rig.advance(dt)
        if self.rig.playback.is_playing:
            self.bus.publish(EventType.PLAYBACK_PROGRESS,
                             time=self.rig.playback.time,
                             max_time=self.rig.playback.max_time)
        else:
            self.bus.publish(EventType.PLAYBACK_STOPPED)

    def reset(self) -> None:
        self.dragging = False
        self.rig.reset()
        self.bus.publish(EventType.TRACK_CLEARED)
        self.bus.publish(EventType.BONE_SELECTED, index=NO_BONE)
        logger.info("Editor reset")
