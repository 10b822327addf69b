"""Rig facade: one bone hierarchy with its kinematics, keyframes and exports.

Everything the input and rendering layers need goes through ``Rig`` and
only plain numbers and numpy arrays cross that boundary.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from rigforge.animation.keyframes import Keyframe, KeyframeTrack
from rigforge.animation.playback import PlaybackController
from rigforge.animation.timewarp import TimeWarp
from rigforge.constants import NO_BONE, PICK_RADIUS
from rigforge.core.clock import DeltaClock
from rigforge.core.config_loader import load_rig_config
from rigforge.core.math_utils import Vec3, as_vec3
from rigforge.skeleton.bone import Bone
from rigforge.skeleton.hierarchy import BoneHierarchy
from rigforge.skeleton.ik import FabrikSolver
from rigforge.skeleton.kinematics import ForwardKinematics
from rigforge.skeleton.picking import pick
from rigforge.skeleton.skinning import SkinnedGeometry, linear_blend_skin

logger = logging.getLogger(__name__)


class Rig:
    """A posable skeleton.

    Edits (rotate, roll, translate, drag) apply to the live bones and
    finish their propagation before returning. Keyframe edits are only
    allowed in edit mode; in playback mode the render exports come from
    the interpolated frame instead of the live bones.
    """

    def __init__(self, hierarchy: BoneHierarchy, time_warp: TimeWarp = TimeWarp.LINEAR):
        self.hierarchy = hierarchy
        self.fk = ForwardKinematics(hierarchy)
        self.ik = FabrikSolver(self.fk)
        self.fk.update_all()

        self.track = KeyframeTrack(time_warp)
        self.playback = PlaybackController(self.track)
        self.highlighted = NO_BONE
        self._rest = Keyframe.capture(hierarchy.bones)

    @classmethod
    def from_dicts(cls, records: Sequence[dict[str, Any]], **kwargs) -> Rig:
        return cls(BoneHierarchy.from_dicts(records), **kwargs)

    @classmethod
    def from_config(cls, name: str) -> Rig:
        """Load ``assets/config/rigs/<name>.json``.

        The file holds ``{"bones": [...]}`` and optionally a
        ``"time_warp"`` name such as ``"EASE_IN_OUT"``.
        """
        data = load_rig_config(name)
        time_warp = TimeWarp[data.get("time_warp", "LINEAR").upper()]
        rig = cls.from_dicts(data["bones"], time_warp=time_warp)
        logger.info("Loaded rig '%s' (%d bones)", name, len(rig.bones))
        return rig

    @property
    def bones(self) -> list[Bone]:
        return self.hierarchy.bones

    def __len__(self) -> int:
        return len(self.hierarchy)

    # ── Selection ─────────────────────────────────────────────────

    def pick(self, origin: Vec3, direction: Vec3, radius: float = PICK_RADIUS) -> int:
        return pick(self.bones, origin, direction, radius)

    # ── Direct manipulation ───────────────────────────────────────

    def rotate_on_axis(self, index: int, angle: float, world_axis: Vec3) -> None:
        self.fk.rotate_on_axis(index, angle, world_axis)

    def roll(self, index: int, angle: float) -> None:
        self.fk.roll(index, angle)

    def translate(
        self,
        index: int,
        dx: float,
        dy: float,
        right_axis: Vec3,
        up_axis: Vec3,
        max_reach: float | None = None,
        anchor_point: Vec3 | None = None,
    ) -> bool:
        """Move a joint in the camera plane.

        Without an explicit bound the move is limited by the bone's anchor
        chain: the joint may not leave the sphere its chain could reach
        around the anchor's joint.
        """
        chain = self.hierarchy.chain(index)
        if anchor_point is None:
            anchor_point = self.bones[chain[-1]].position
        if max_reach is None:
            max_reach = self.hierarchy.reach(chain)
        return self.fk.translate(index, dx, dy, right_axis, up_axis, max_reach, anchor_point)

    def drag(self, index: int, target: Vec3) -> None:
        """Pull a bone toward ``target`` with IK along its anchor chain.

        Root bones are simply moved to the target.
        """
        target = as_vec3(target)
        bone = self.bones[index]
        if bone.is_root:
            bone.position = target
            self.fk.update_subtree(index)
            return
        self.ik.solve(self.hierarchy.chain(index), target)

    # ── Keyframes ─────────────────────────────────────────────────

    def capture(self) -> int:
        self.playback.require_edit_mode("capture a keyframe")
        index = self.track.capture(self.bones)
        self.playback.state.invalidate()
        return index

    def replace(self, index: int) -> None:
        self.playback.require_edit_mode("replace a keyframe")
        self.track.replace(index, self.bones)
        self.playback.state.invalidate()

    def delete(self, index: int) -> None:
        self.playback.require_edit_mode("delete a keyframe")
        self.track.delete(index)
        self.playback.state.invalidate()

    def restore(self, index: int) -> None:
        """Load keyframe ``index`` back into the live pose."""
        self.playback.require_edit_mode("restore a keyframe")
        self.hierarchy.replace_bones(self.track.restore(index, self.bones))

    def clear_keyframes(self) -> None:
        self.playback.require_edit_mode("clear keyframes")
        self.track.clear()
        self.playback.state.invalidate()

    def evaluate(self, time: float) -> list[Bone]:
        return self.track.evaluate(time, self.playback.state, self.bones)

    # ── Playback ──────────────────────────────────────────────────

    def toggle_playback(self) -> bool:
        return self.playback.toggle()

    def advance(self, dt: float) -> None:
        self.playback.advance(dt)

    def tick(self, clock: DeltaClock) -> None:
        self.playback.tick(clock)

    def status(self) -> str:
        return self.playback.status()

    def current_pose(self) -> list[Bone]:
        if self.playback.is_playing:
            return self.playback.current_frame(self.bones)
        return self.bones

    # ── Render exports ────────────────────────────────────────────

    def bone_translations(self) -> NDArray[np.float32]:
        """World joint positions, 3 floats per bone in index order."""
        pose = self.current_pose()
        return np.array([b.position for b in pose], dtype=np.float32).reshape(-1)

    def bone_rotations(self) -> NDArray[np.float32]:
        """World rotations as [x, y, z, w], 4 floats per bone in index order."""
        pose = self.current_pose()
        return np.array([b.rotation for b in pose], dtype=np.float32).reshape(-1)

    def skin(self, geometry: SkinnedGeometry) -> NDArray[np.float32]:
        """Deformed vertex positions, 3 floats per vertex."""
        return linear_blend_skin(geometry, self.bone_translations(), self.bone_rotations()).reshape(-1)

    # ── Reset ─────────────────────────────────────────────────────

    def reset(self) -> None:
        """Back to the rest pose with an empty track and nothing selected."""
        self.playback.stop()
        self.track.clear()
        self.playback.state.reset()
        self.hierarchy.replace_bones(self._rest.to_bones(self.bones))
        self.highlighted = NO_BONE
        logger.info("Rig reset to rest pose")
