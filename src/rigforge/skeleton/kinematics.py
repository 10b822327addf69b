"""Forward kinematics: world transforms and subtree propagation.

World transform of a bone::

    root:     World = Translate(position) * Rotate(local_rotation)
    non-root: World = World(parent) * Translate(parent tip + local_offset)
                      * Rotate(local_rotation)

Because every child's joint is kept at
``parent.endpoint + R_parent * local_offset``, both forms reduce to
``Translate(position) * Rotate(world_rotation)``, which is what
``world_matrix`` builds.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from rigforge.constants import EPSILON
from rigforge.core.math_utils import (
    Mat4, Quat, Vec3,
    mat4_rigid, normalize, quat_conjugate, quat_from_axis_angle, quat_identity,
    quat_multiply, quat_normalize, quat_rotate_vec3,
)
from rigforge.skeleton.bone import Bone
from rigforge.skeleton.hierarchy import BoneHierarchy

logger = logging.getLogger(__name__)


def compose_world_rotation(bones: Sequence[Bone], index: int) -> Quat:
    """Product of local rotations from the root down to ``index``."""
    q = bones[index].local_rotation
    p = bones[index].parent
    while p >= 0:
        q = quat_multiply(bones[p].local_rotation, q)
        p = bones[p].parent
    return q


def propagate(bones: Sequence[Bone], index: int) -> None:
    """Recompute ``index`` and every bone below it from its joint position.

    For each visited bone: world rotation and endpoint are rebuilt from
    the local rotation, then each child's joint is placed at
    ``endpoint + R * child.local_offset``. Uses an explicit stack.
    """
    parent = bones[index].parent
    parent_world = compose_world_rotation(bones, parent) if parent >= 0 else quat_identity()

    stack = [(index, parent_world)]
    while stack:
        i, parent_world = stack.pop()
        bone = bones[i]
        world = quat_multiply(parent_world, bone.local_rotation)
        bone.rotation = world
        bone.endpoint = bone.position + quat_rotate_vec3(world, bone.rest_endpoint_local)
        bone.update_collider()
        for c in reversed(bone.children):
            child = bones[c]
            child.position = bone.endpoint + quat_rotate_vec3(world, child.local_offset)
            stack.append((c, world))


class ForwardKinematics:
    """Direct manipulation of a hierarchy's pose.

    Every mutating call finishes its subtree propagation before
    returning, so readers never observe a half-updated rig.
    """

    def __init__(self, hierarchy: BoneHierarchy):
        self.hierarchy = hierarchy

    @property
    def bones(self) -> list[Bone]:
        return self.hierarchy.bones

    # ── Transforms ────────────────────────────────────────────────

    def world_rotation(self, index: int) -> Quat:
        return compose_world_rotation(self.bones, index)

    def parent_world_rotation(self, index: int) -> Quat:
        parent = self.bones[index].parent
        if parent < 0:
            return quat_identity()
        return compose_world_rotation(self.bones, parent)

    def world_matrix(self, index: int) -> Mat4:
        return mat4_rigid(self.bones[index].position, self.world_rotation(index))

    # ── Propagation ───────────────────────────────────────────────

    def update_subtree(self, index: int) -> None:
        propagate(self.bones, index)

    def update_all(self) -> None:
        for root in self.hierarchy.roots:
            propagate(self.bones, root)

    # ── Edits ─────────────────────────────────────────────────────

    def rotate_on_axis(self, index: int, angle: float, world_axis: Vec3) -> None:
        """Rotate a bone by ``angle`` radians about a world-space axis.

        The axis is brought into the bone's current frame, so right
        multiplying into ``local_rotation`` turns the bone about the
        world axis through its joint.
        """
        bone = self.bones[index]
        local_axis = normalize(quat_rotate_vec3(quat_conjugate(self.world_rotation(index)),
                                                np.asarray(world_axis, dtype=np.float64)))
        if np.linalg.norm(local_axis) < EPSILON:
            logger.debug("Ignoring rotation of bone %d about a zero axis", index)
            return
        q = quat_from_axis_angle(local_axis, angle)
        bone.local_rotation = quat_normalize(quat_multiply(bone.local_rotation, q))
        self.update_subtree(index)

    def roll(self, index: int, angle: float) -> None:
        """Twist a bone about its own length."""
        bone = self.bones[index]
        if bone.length < EPSILON:
            logger.debug("Ignoring roll of zero-length bone %d", index)
            return
        q = quat_from_axis_angle(bone.rest_endpoint_local, angle)
        bone.local_rotation = quat_normalize(quat_multiply(bone.local_rotation, q))
        self.update_subtree(index)

    def translate(
        self,
        index: int,
        dx: float,
        dy: float,
        right_axis: Vec3,
        up_axis: Vec3,
        max_reach: float,
        anchor_point: Vec3,
    ) -> bool:
        """Move a bone's joint in the plane spanned by two world axes.

        Non-root bones only move while the new joint stays within
        ``max_reach`` of ``anchor_point``. Returns whether the move was
        applied.
        """
        bone = self.bones[index]
        candidate = (bone.position
                     + dx * np.asarray(right_axis, dtype=np.float64)
                     + dy * np.asarray(up_axis, dtype=np.float64))
        if not bone.is_root:
            distance = float(np.linalg.norm(candidate - anchor_point))
            if distance > max_reach:
                logger.debug("Rejected move of bone %d: %.3f beyond reach %.3f",
                             index, distance, max_reach)
                return False
        bone.position = candidate
        self.update_subtree(index)
        return True
