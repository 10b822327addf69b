"""Shared rig fixtures."""

import pytest

from rigforge.rig import Rig
from rigforge.skeleton.hierarchy import BoneHierarchy


# Three unit bones end to end along +X.
ARM_RECORDS = [
    {"parent": -1, "position": [0, 0, 0], "endpoint": [1, 0, 0]},
    {"parent": 0, "position": [1, 0, 0], "endpoint": [2, 0, 0]},
    {"parent": 1, "position": [2, 0, 0], "endpoint": [3, 0, 0]},
]

# Pelvis -> spine, which branches into a left and a right two-bone arm.
BRANCHING_RECORDS = [
    {"parent": -1, "position": [0, 0, 0], "endpoint": [0, 1, 0]},
    {"parent": 0, "position": [0, 1, 0], "endpoint": [0, 2, 0]},
    {"parent": 1, "position": [0, 2, 0], "endpoint": [1, 2, 0]},
    {"parent": 2, "position": [1, 2, 0], "endpoint": [2, 2, 0]},
    {"parent": 1, "position": [0, 2, 0], "endpoint": [-1, 2, 0]},
    {"parent": 4, "position": [-1, 2, 0], "endpoint": [-2, 2, 0]},
]


@pytest.fixture
def arm_records():
    return [dict(r) for r in ARM_RECORDS]


@pytest.fixture
def branching_records():
    return [dict(r) for r in BRANCHING_RECORDS]


@pytest.fixture
def arm_hierarchy(arm_records):
    return BoneHierarchy.from_dicts(arm_records)


@pytest.fixture
def branching_hierarchy(branching_records):
    return BoneHierarchy.from_dicts(branching_records)


@pytest.fixture
def arm_rig(arm_records):
    return Rig.from_dicts(arm_records)


@pytest.fixture
def branching_rig(branching_records):
    return Rig.from_dicts(branching_records)
