"""Tests for the two-pass FABRIK solver."""

import numpy as np
import pytest

from rigforge.core.math_utils import WORLD_Z, quat_angle_between, quat_rotate_vec3, vec3
from rigforge.skeleton.ik import FabrikSolver
from rigforge.skeleton.kinematics import ForwardKinematics


def _solver(hierarchy):
    fk = ForwardKinematics(hierarchy)
    fk.update_all()
    return FabrikSolver(fk)


def _assert_finite(bones):
    for bone in bones:
        assert np.all(np.isfinite(bone.position))
        assert np.all(np.isfinite(bone.endpoint))
        assert np.all(np.isfinite(bone.local_rotation))


def _assert_lengths(bones):
    for bone in bones:
        assert np.linalg.norm(bone.endpoint - bone.position) == pytest.approx(bone.length)


def test_reachable_target(arm_hierarchy):
    ik = _solver(arm_hierarchy)
    target = vec3(2, 1, 0)
    ik.solve(arm_hierarchy.chain(2), target)
    np.testing.assert_allclose(arm_hierarchy[2].endpoint, target, atol=1e-9)
    _assert_lengths(arm_hierarchy)


def test_base_rotation_pinned(arm_hierarchy):
    ik = _solver(arm_hierarchy)
    ik.fk.rotate_on_axis(0, 0.3, WORLD_Z)
    before = ik.fk.world_rotation(0)
    base = arm_hierarchy[0].position.copy()
    ik.solve([2, 1, 0], vec3(1.0, 2.0, 0.5))
    assert quat_angle_between(before, ik.fk.world_rotation(0)) < 1e-6
    np.testing.assert_allclose(arm_hierarchy[0].position, base)


def test_base_pinned_under_branch(branching_hierarchy):
    ik = _solver(branching_hierarchy)
    before = ik.fk.world_rotation(1)
    ik.solve(branching_hierarchy.chain(3), vec3(1.2, 2.8, 0.3))
    assert quat_angle_between(before, ik.fk.world_rotation(1)) < 1e-6
    # Sibling branch untouched
    np.testing.assert_allclose(branching_hierarchy[5].endpoint, [-2, 2, 0], atol=1e-9)


def test_hierarchy_consistent_after_solve(branching_hierarchy):
    ik = _solver(branching_hierarchy)
    ik.solve(branching_hierarchy.chain(3), vec3(0.5, 3.0, 1.0))
    for bone in branching_hierarchy:
        world = ik.fk.world_rotation(bone.index)
        np.testing.assert_allclose(
            bone.endpoint,
            bone.position + quat_rotate_vec3(world, bone.rest_endpoint_local),
            atol=1e-9,
        )
    _assert_lengths(branching_hierarchy)


def test_unreachable_target_best_effort(arm_hierarchy):
    ik = _solver(arm_hierarchy)
    ik.solve([2, 1, 0], vec3(10, 10, 0))
    _assert_finite(arm_hierarchy)
    _assert_lengths(arm_hierarchy)


def test_target_on_joint_keeps_heading(arm_hierarchy):
    ik = _solver(arm_hierarchy)
    ik.solve([2, 1, 0], arm_hierarchy[1].endpoint.copy())
    _assert_finite(arm_hierarchy)


def test_anti_parallel_target(arm_hierarchy):
    ik = _solver(arm_hierarchy)
    ik.solve([2, 1, 0], vec3(1.5, 0, 0))
    _assert_finite(arm_hierarchy)
    _assert_lengths(arm_hierarchy)


def test_update_frame_sets_local_rotation(arm_hierarchy):
    ik = _solver(arm_hierarchy)
    ik.update_frame(1, vec3(0, 1, 0))
    bone = arm_hierarchy[1]
    np.testing.assert_allclose(
        quat_rotate_vec3(bone.local_rotation, bone.rest_endpoint_local), [0, 1, 0], atol=1e-9,
    )


def test_single_bone_chain(arm_hierarchy):
    ik = _solver(arm_hierarchy)
    ik.solve([0], vec3(0, 1, 0))
    _assert_finite(arm_hierarchy)
    np.testing.assert_allclose(arm_hierarchy[0].position, [0, 0, 0])


def test_empty_chain():
    with pytest.raises(ValueError):
        FabrikSolver(None).solve([], vec3(0, 0, 0))
