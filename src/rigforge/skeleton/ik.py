"""Single-pass FABRIK inverse kinematics over a bone chain.

A chain lists bone indices from the end effector up to the bone sitting
on the fixed base. One forward pass (effector -> base) followed by one
backward pass (base -> effector) is run; there is no iteration to
convergence, so unreachable targets get a best-effort pose.

The base bone's world orientation is pinned: after the passes its local
rotation is reset so its world rotation matches what it was before the
solve. Only its position contribution reaches the rest of the chain.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from rigforge.constants import EPSILON
from rigforge.core.math_utils import (
    Vec3,
    as_vec3, normalize, quat_between_directions, quat_inverse, quat_multiply,
    quat_normalize, quat_rotate_vec3,
)
from rigforge.skeleton.kinematics import ForwardKinematics

logger = logging.getLogger(__name__)


class FabrikSolver:
    """Two-pass FABRIK solver that writes back through forward kinematics."""

    def __init__(self, fk: ForwardKinematics):
        self.fk = fk

    @property
    def bones(self):
        return self.fk.bones

    def _step(self, index: int, start: Vec3, toward: Vec3) -> Vec3:
        """Lay bone ``index`` from ``start`` toward a point; return the new tip."""
        bone = self.bones[index]
        direction = normalize(toward - start)
        if np.linalg.norm(direction) < EPSILON:
            # Target sits on the joint: keep the bone's current heading.
            direction = normalize(bone.endpoint - bone.position)
            if np.linalg.norm(direction) < EPSILON:
                direction = normalize(quat_rotate_vec3(bone.rotation, bone.rest_endpoint_local))
            logger.debug("Degenerate IK direction for bone %d; keeping heading", index)
        bone.position = start.copy()
        bone.endpoint = start + direction * bone.length
        return direction

    def forward_pass(self, chain: Sequence[int], target: Vec3, base: Vec3) -> None:
        """Walk effector -> base, pulling each bone onto the running effector."""
        effector = as_vec3(target)
        for i in range(len(chain) - 1):
            self._step(chain[i], effector, self.bones[chain[i + 1]].endpoint)
            effector = self.bones[chain[i]].endpoint.copy()
        self._step(chain[-1], effector, as_vec3(base))

    def backward_pass(self, chain: Sequence[int], target: Vec3, base: Vec3) -> None:
        """Walk base -> effector, re-laying bones from the base and updating frames."""
        reverse = list(reversed(chain))
        effector = as_vec3(base)
        for i in range(len(reverse) - 1):
            direction = self._step(reverse[i], effector, self.bones[reverse[i + 1]].endpoint)
            self.update_frame(reverse[i], direction)
            effector = self.bones[reverse[i]].endpoint.copy()
        direction = self._step(reverse[-1], effector, as_vec3(target))
        self.update_frame(reverse[-1], direction)

    def update_frame(self, index: int, direction: Vec3) -> None:
        """Set a bone's rotation so its rest tip points along ``direction``.

        The world-facing rotation is the shortest arc from the rest
        direction; the local rotation strips the parent's accumulated
        world rotation from it.
        """
        bone = self.bones[index]
        bone.update_collider()
        rotation = quat_between_directions(bone.rest_endpoint_local, direction)
        bone.rotation = rotation
        if bone.is_root:
            bone.local_rotation = rotation
        else:
            parent_world = self.fk.world_rotation(bone.parent)
            bone.local_rotation = quat_normalize(quat_multiply(quat_inverse(parent_world), rotation))

    def pin_base(self, index: int, world_rotation) -> None:
        """Force bone ``index`` back to a given world rotation."""
        bone = self.bones[index]
        if bone.is_root:
            bone.local_rotation = quat_normalize(np.array(world_rotation, dtype=np.float64))
        else:
            parent_world = self.fk.world_rotation(bone.parent)
            bone.local_rotation = quat_normalize(quat_multiply(quat_inverse(parent_world), world_rotation))

    def solve(self, chain: Sequence[int], target: Vec3, base: Vec3 | None = None) -> None:
        """Pull the chain's effector toward ``target`` with the last bone fixed at ``base``.

        ``base`` defaults to the base bone's current joint position.
        """
        if len(chain) == 0:
            raise ValueError("IK chain is empty")
        base_index = chain[-1]
        if base is None:
            base = self.bones[base_index].position.copy()
        pinned = self.fk.world_rotation(base_index)

        self.forward_pass(chain, target, base)
        self.backward_pass(chain, target, base)

        self.pin_base(base_index, pinned)
        self.bones[base_index].position = as_vec3(base)
        self.fk.update_subtree(base_index)
        logger.debug("IK solve over chain %s toward %s", list(chain), np.round(target, 4))
