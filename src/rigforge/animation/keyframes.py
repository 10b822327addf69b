"""Keyframe snapshots of a rig pose and their interpolation.

A keyframe is a full deep copy of every bone's pose at capture time;
keyframes are identified only by their position in the track. Playback
time is measured in keyframe indices: time 1.5 lies halfway between
keyframes 1 and 2.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from rigforge.animation.timewarp import TimeWarp
from rigforge.core.math_utils import lerp_vec3, quat_slerp
from rigforge.core.state import PlaybackState
from rigforge.skeleton.bone import Bone
from rigforge.skeleton.kinematics import compose_world_rotation, propagate

logger = logging.getLogger(__name__)


class PlaybackRangeError(IndexError):
    """Playback time has no keyframe pair to interpolate."""


def _frozen(a) -> NDArray[np.float64]:
    arr = np.array(a, dtype=np.float64)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class Keyframe:
    """Immutable per-bone pose arrays, stacked in bone-index order."""
    positions: NDArray[np.float64]        # (N, 3)
    endpoints: NDArray[np.float64]        # (N, 3)
    local_rotations: NDArray[np.float64]  # (N, 4)
    local_offsets: NDArray[np.float64]    # (N, 3)
    rest_endpoints: NDArray[np.float64]   # (N, 3)

    @classmethod
    def capture(cls, bones: Sequence[Bone]) -> Keyframe:
        return cls(
            positions=_frozen([b.position for b in bones]),
            endpoints=_frozen([b.endpoint for b in bones]),
            local_rotations=_frozen([b.local_rotation for b in bones]),
            local_offsets=_frozen([b.local_offset for b in bones]),
            rest_endpoints=_frozen([b.rest_endpoint_local for b in bones]),
        )

    @property
    def bone_count(self) -> int:
        return len(self.positions)

    def to_bones(self, template: Sequence[Bone]) -> list[Bone]:
        """Fresh live bones holding this pose, structure taken from ``template``."""
        bones = []
        for i, t in enumerate(template):
            bone = t.copy()
            bone.position = self.positions[i].copy()
            bone.endpoint = self.endpoints[i].copy()
            bone.local_rotation = self.local_rotations[i].copy()
            bone.local_offset = self.local_offsets[i].copy()
            bone.rest_endpoint_local = self.rest_endpoints[i].copy()
            bones.append(bone)
        for bone in bones:
            bone.rotation = compose_world_rotation(bones, bone.index)
            bone.update_collider()
        return bones


class KeyframeTrack:
    """Ordered list of keyframes plus eased slerp evaluation."""

    def __init__(self, time_warp: TimeWarp = TimeWarp.LINEAR):
        self.keyframes: list[Keyframe] = []
        self._time_warp = time_warp

    @property
    def time_warp(self) -> TimeWarp:
        """Easing applied to every segment; fixed for the life of the track."""
        return self._time_warp

    def __len__(self) -> int:
        return len(self.keyframes)

    def __getitem__(self, index: int) -> Keyframe:
        return self.keyframes[index]

    @property
    def last_index(self) -> int:
        return len(self.keyframes) - 1

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.keyframes):
            raise IndexError(f"Keyframe {index} out of range (track has {len(self.keyframes)})")

    # ── Editing ───────────────────────────────────────────────────

    def capture(self, bones: Sequence[Bone]) -> int:
        """Append a snapshot of ``bones``; return its index."""
        self.keyframes.append(Keyframe.capture(bones))
        logger.info("Captured keyframe %d (%d bones)", self.last_index, len(bones))
        return self.last_index

    def replace(self, index: int, bones: Sequence[Bone]) -> None:
        self._check_index(index)
        self.keyframes[index] = Keyframe.capture(bones)
        logger.info("Replaced keyframe %d", index)

    def delete(self, index: int) -> None:
        self._check_index(index)
        del self.keyframes[index]
        logger.info("Deleted keyframe %d (%d left)", index, len(self.keyframes))

    def clear(self) -> None:
        self.keyframes.clear()

    def restore(self, index: int, template: Sequence[Bone]) -> list[Bone]:
        """Deep copy of keyframe ``index`` as live bones."""
        self._check_index(index)
        return self.keyframes[index].to_bones(template)

    # ── Playback ──────────────────────────────────────────────────

    def segment(self, time: float) -> tuple[int, float]:
        """Start keyframe and fraction for a playback time.

        ``time == last_index`` is treated as the end of the final segment
        (fraction 1).
        """
        if len(self.keyframes) < 2:
            raise PlaybackRangeError(
                f"Need at least two keyframes to interpolate, have {len(self.keyframes)}"
            )
        if not 0.0 <= time <= self.last_index:
            raise PlaybackRangeError(f"Time {time} outside [0, {self.last_index}]")
        start = min(int(math.floor(time)), self.last_index - 1)
        return start, time - start

    def evaluate(
        self,
        time: float,
        state: PlaybackState,
        template: Sequence[Bone],
    ) -> list[Bone]:
        """Interpolated pose at ``time``, cached in ``state``.

        Local rotations are slerped (shortest path) with the eased
        fraction and root joints are lerped; everything else follows by
        forward kinematics using the rest offsets of ``template``.
        """
        if state.is_cached(time):
            return state.frame

        start, fraction = self.segment(time)
        k0 = self.keyframes[start]
        k1 = self.keyframes[start + 1]
        t = self.time_warp(fraction)

        frame = [b.copy() for b in template]
        for i, bone in enumerate(frame):
            bone.local_rotation = quat_slerp(k0.local_rotations[i], k1.local_rotations[i], t)
            bone.rest_endpoint_local = k0.rest_endpoints[i].copy()
            if bone.is_root:
                bone.position = lerp_vec3(k0.positions[i], k1.positions[i], t)

        for bone in frame:
            if bone.is_root:
                propagate(frame, bone.index)

        state.frame = frame
        state.last_evaluated = time
        return frame
