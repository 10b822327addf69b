"""Bone records and their picking cylinders."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from rigforge.constants import EPSILON, NO_PARENT
from rigforge.core.math_utils import (
    Mat4, Quat, Vec3,
    WORLD_X, WORLD_Y, WORLD_Z,
    as_vec3, mat4_identity, mat4_translation, normalize, quat_identity,
)


@dataclass
class Collider:
    """Cylinder frame used for ray picking.

    Local +Z runs along the bone from its joint; the origin sits on the
    joint. ``transform`` maps cylinder space to world space and
    ``inverse`` maps world space back.
    """
    axis: Vec3
    transform: Mat4
    inverse: Mat4

    @classmethod
    def from_segment(cls, start: Vec3, end: Vec3) -> Collider:
        collider = cls(axis=WORLD_Z.copy(), transform=mat4_identity(), inverse=mat4_identity())
        collider.update(start, end)
        return collider

    def update(self, start: Vec3, end: Vec3) -> None:
        """Rebuild the frame for the segment start -> end."""
        axis = normalize(end - start)
        if np.linalg.norm(axis) < EPSILON:
            axis = WORLD_Z.copy()

        arbitrary = WORLD_Y if abs(axis[1]) < 0.99 else WORLD_X
        x_axis = normalize(np.cross(arbitrary, axis))
        y_axis = normalize(np.cross(axis, x_axis))

        m = mat4_translation(*start)
        m[:3, 0] = x_axis
        m[:3, 1] = y_axis
        m[:3, 2] = axis
        self.axis = axis
        self.transform = m
        # Orthonormal basis: the inverse is the transposed rotation.
        inv = mat4_identity()
        inv[:3, :3] = m[:3, :3].T
        inv[:3, 3] = -m[:3, :3].T @ start
        self.inverse = inv


@dataclass
class Bone:
    """One joint of a rig, addressed by its index in the hierarchy.

    ``position`` / ``endpoint`` are world-space and kept up to date by the
    kinematics. ``rest_endpoint_local`` is the tip relative to the joint in
    the bone's rest frame; ``local_offset`` is the rest displacement from
    the parent's endpoint in the parent's frame. Both are fixed at load.
    ``local_rotation`` is the only authored rotation; ``rotation`` is its
    composition with every ancestor's and is what the renderer receives.
    """
    index: int
    parent: int
    children: list[int]
    position: Vec3
    endpoint: Vec3
    rest_endpoint_local: Vec3
    local_offset: Vec3
    local_rotation: Quat = field(default_factory=quat_identity)
    rotation: Quat = field(default_factory=quat_identity)
    length: float = 0.0
    collider: Collider | None = None

    def __post_init__(self):
        if self.length == 0.0:
            self.length = float(np.linalg.norm(self.rest_endpoint_local))
        if self.collider is None:
            self.collider = Collider.from_segment(self.position, self.endpoint)

    @classmethod
    def from_rest(
        cls,
        index: int,
        parent: int,
        position,
        endpoint,
        children=(),
    ) -> Bone:
        """Create a bone in its rest pose; offsets are filled in by the hierarchy."""
        position = as_vec3(position)
        endpoint = as_vec3(endpoint)
        return cls(
            index=index,
            parent=parent,
            children=list(children),
            position=position,
            endpoint=endpoint,
            rest_endpoint_local=endpoint - position,
            local_offset=np.zeros(3, dtype=np.float64),
        )

    @property
    def is_root(self) -> bool:
        return self.parent == NO_PARENT

    def update_collider(self) -> None:
        self.collider.update(self.position, self.endpoint)

    def copy(self) -> Bone:
        """Deep copy; no array is shared with the original."""
        return Bone(
            index=self.index,
            parent=self.parent,
            children=list(self.children),
            position=self.position.copy(),
            endpoint=self.endpoint.copy(),
            rest_endpoint_local=self.rest_endpoint_local.copy(),
            local_offset=self.local_offset.copy(),
            local_rotation=self.local_rotation.copy(),
            rotation=self.rotation.copy(),
            length=self.length,
            collider=Collider(
                axis=self.collider.axis.copy(),
                transform=self.collider.transform.copy(),
                inverse=self.collider.inverse.copy(),
            ),
        )

    def __repr__(self):
        return (f"Bone(index={self.index}, parent={self.parent}, "
                f"children={self.children}, length={self.length:.3f})")
