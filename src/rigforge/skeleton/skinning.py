"""CPU linear blend skinning driven by exported bone transforms.

Mirrors the skinning vertex shader: each vertex stores its position in
the joint frame of up to four bones, and the skinned position is
``sum_i w_i * (t_j + q_j * v_i)`` with ``t_j`` / ``q_j`` the world
translation and rotation of bone ``j = skin_indices[i]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from rigforge.constants import MAX_INFLUENCES
from rigforge.core.math_utils import batch_quat_rotate


@dataclass
class SkinnedGeometry:
    """Vertex attributes needed for skinning.

    positions / normals: (V, 3) rest-pose arrays
    skin_indices: (V, 4) bone index per influence
    skin_weights: (V, 4) weight per influence, rows summing to 1
    bone_local: (4, V, 3) vertex position in each influencing bone's joint frame
    """
    positions: NDArray[np.float32]
    normals: NDArray[np.float32]
    skin_indices: NDArray[np.int32]
    skin_weights: NDArray[np.float32]
    bone_local: NDArray[np.float32]
    vertex_count: int = 0

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        self.normals = np.asarray(self.normals, dtype=np.float32).reshape(-1, 3)
        self.skin_indices = np.asarray(self.skin_indices, dtype=np.int32).reshape(-1, MAX_INFLUENCES)
        self.skin_weights = np.asarray(self.skin_weights, dtype=np.float32).reshape(-1, MAX_INFLUENCES)
        self.bone_local = np.asarray(self.bone_local, dtype=np.float32).reshape(MAX_INFLUENCES, -1, 3)
        if self.vertex_count == 0:
            self.vertex_count = len(self.positions)

    @classmethod
    def from_rest(
        cls,
        positions,
        normals,
        skin_indices,
        skin_weights,
        joint_positions,
        joint_rotations: Optional[NDArray] = None,
    ) -> SkinnedGeometry:
        """Derive per-influence joint-frame positions from a rest pose."""
        pos = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        idx = np.asarray(skin_indices, dtype=np.int32).reshape(-1, MAX_INFLUENCES)
        joints = np.asarray(joint_positions, dtype=np.float64).reshape(-1, 3)

        local = np.empty((MAX_INFLUENCES, len(pos), 3), dtype=np.float64)
        for k in range(MAX_INFLUENCES):
            offset = pos - joints[idx[:, k]]
            if joint_rotations is not None:
                q = np.asarray(joint_rotations, dtype=np.float64).reshape(-1, 4)[idx[:, k]]
                q_inv = q * np.array([-1.0, -1.0, -1.0, 1.0])
                offset = batch_quat_rotate(q_inv, offset)
            local[k] = offset

        return cls(
            positions=pos,
            normals=normals,
            skin_indices=idx,
            skin_weights=skin_weights,
            bone_local=local,
        )


def linear_blend_skin(
    geometry: SkinnedGeometry,
    translations: NDArray,
    rotations: NDArray,
) -> NDArray[np.float32]:
    """Skinned (V, 3) vertex positions.

    ``translations`` / ``rotations`` are the flat per-bone exports
    (3 and 4 floats per bone, bone-index order).
    """
    t = np.asarray(translations, dtype=np.float64).reshape(-1, 3)
    q = np.asarray(rotations, dtype=np.float64).reshape(-1, 4)

    out = np.zeros((geometry.vertex_count, 3), dtype=np.float64)
    for k in range(MAX_INFLUENCES):
        w = geometry.skin_weights[:, k].astype(np.float64)
        if not w.any():
            continue
        j = geometry.skin_indices[:, k]
        moved = t[j] + batch_quat_rotate(q[j], geometry.bone_local[k].astype(np.float64))
        out += w[:, np.newaxis] * moved
    return out.astype(np.float32)


def skin_normals(
    geometry: SkinnedGeometry,
    rotations: NDArray,
) -> NDArray[np.float32]:
    """Skinned, renormalized (V, 3) normals."""
    q = np.asarray(rotations, dtype=np.float64).reshape(-1, 4)
    n = geometry.normals.astype(np.float64)

    out = np.zeros((geometry.vertex_count, 3), dtype=np.float64)
    for k in range(MAX_INFLUENCES):
        w = geometry.skin_weights[:, k].astype(np.float64)
        if not w.any():
            continue
        out += w[:, np.newaxis] * batch_quat_rotate(q[geometry.skin_indices[:, k]], n)

    lengths = np.linalg.norm(out, axis=1, keepdims=True)
    lengths[lengths < 1e-10] = 1.0
    return (out / lengths).astype(np.float32)
