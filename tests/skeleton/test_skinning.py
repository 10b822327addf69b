"""Tests for CPU linear blend skinning."""

import numpy as np
import pytest

from rigforge.core.math_utils import WORLD_Z
from rigforge.skeleton.skinning import SkinnedGeometry, linear_blend_skin, skin_normals


POSITIONS = np.array([
    [0.5, 0.05, 0.0],    # on bone 0
    [1.5, -0.05, 0.0],   # on bone 1
    [2.5, 0.0, 0.05],    # on bone 2
    [1.0, 0.0, 0.0],     # shared by bones 0 and 1
], dtype=np.float32)

NORMALS = np.array([
    [0, 1, 0],
    [0, -1, 0],
    [0, 0, 1],
    [0, 1, 0],
], dtype=np.float32)

SKIN_INDICES = np.array([
    [0, 0, 0, 0],
    [1, 0, 0, 0],
    [2, 0, 0, 0],
    [0, 1, 0, 0],
], dtype=np.int32)

SKIN_WEIGHTS = np.array([
    [1, 0, 0, 0],
    [1, 0, 0, 0],
    [1, 0, 0, 0],
    [0.5, 0.5, 0, 0],
], dtype=np.float32)


def _geometry(rig):
    return SkinnedGeometry.from_rest(
        POSITIONS, NORMALS, SKIN_INDICES, SKIN_WEIGHTS,
        rig.bone_translations(), rig.bone_rotations(),
    )


def test_shapes(arm_rig):
    geo = _geometry(arm_rig)
    assert geo.vertex_count == 4
    assert geo.bone_local.shape == (4, 4, 3)
    assert geo.skin_indices.dtype == np.int32


def test_rest_pose_reproduces_vertices(arm_rig):
    geo = _geometry(arm_rig)
    skinned = linear_blend_skin(geo, arm_rig.bone_translations(), arm_rig.bone_rotations())
    assert skinned.dtype == np.float32
    np.testing.assert_allclose(skinned, POSITIONS, atol=1e-5)


def test_rotated_root_carries_vertices(arm_rig):
    geo = _geometry(arm_rig)
    arm_rig.rotate_on_axis(0, np.pi / 2, WORLD_Z)
    skinned = linear_blend_skin(geo, arm_rig.bone_translations(), arm_rig.bone_rotations())
    np.testing.assert_allclose(skinned[0], [-0.05, 0.5, 0.0], atol=1e-5)
    np.testing.assert_allclose(skinned[2], [0.0, 2.5, 0.05], atol=1e-5)


def test_blended_vertex_between_bones(arm_rig):
    geo = _geometry(arm_rig)
    arm_rig.rotate_on_axis(1, np.pi / 2, WORLD_Z)
    skinned = linear_blend_skin(geo, arm_rig.bone_translations(), arm_rig.bone_rotations())
    # The shared vertex sits on bone 1's joint, which does not move
    np.testing.assert_allclose(skinned[3], [1.0, 0.0, 0.0], atol=1e-5)
    np.testing.assert_allclose(skinned[1], [1.05, 0.5, 0.0], atol=1e-5)


def test_rig_skin_is_flat(arm_rig):
    geo = _geometry(arm_rig)
    flat = arm_rig.skin(geo)
    assert flat.shape == (12,)
    np.testing.assert_allclose(flat.reshape(-1, 3), POSITIONS, atol=1e-5)


def test_normals(arm_rig):
    geo = _geometry(arm_rig)
    np.testing.assert_allclose(skin_normals(geo, arm_rig.bone_rotations()), NORMALS, atol=1e-5)
    arm_rig.rotate_on_axis(0, np.pi / 2, WORLD_Z)
    normals = skin_normals(geo, arm_rig.bone_rotations())
    np.testing.assert_allclose(normals[0], [-1, 0, 0], atol=1e-5)
    np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0, atol=1e-5)


def test_without_joint_rotations_uses_world_offsets(arm_rig):
    geo = SkinnedGeometry.from_rest(
        POSITIONS, NORMALS, SKIN_INDICES, SKIN_WEIGHTS, arm_rig.bone_translations(),
    )
    np.testing.assert_allclose(geo.bone_local[0, 1], [0.5, -0.05, 0.0], atol=1e-5)
