"""Flat, index-addressed bone hierarchy with structural validation."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Iterator, Sequence

import numpy as np

from rigforge.constants import EPSILON, MAX_SHADER_JOINTS, NO_PARENT
from rigforge.core.math_utils import (
    quat_inverse, quat_multiply, quat_normalize,
    quat_rotate_vec3,
)
from rigforge.skeleton.bone import Bone

logger = logging.getLogger(__name__)


class HierarchyError(ValueError):
    """The bone list does not describe a finite tree."""


class BoneHierarchy:
    """Owns the bone array and the parent/child index relationships.

    Bones reference each other only by index. The tree is validated once
    at construction; every traversal afterwards is bounded by the bone
    count. Rest tips and parent offsets are derived from the bones' world
    joints and local rotations at that point.
    """

    def __init__(self, bones: Sequence[Bone]):
        self.bones: list[Bone] = list(bones)
        self.order: list[int] = []  # parents before children
        self.validate()
        self._derive_rest_offsets()

        if len(self.bones) > MAX_SHADER_JOINTS:
            logger.warning(
                "Rig has %d bones; skinning shaders only address %d joints",
                len(self.bones), MAX_SHADER_JOINTS,
            )

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    def from_dicts(cls, records: Sequence[dict[str, Any]]) -> BoneHierarchy:
        """Build a hierarchy from plain rest-pose records.

        Each record has ``parent`` (-1 for roots), world-space ``position``
        and ``endpoint``, and optionally ``children`` and an initial local
        ``rotation`` quaternion [x, y, z, w]. Missing children lists are
        rebuilt from the parent indices.
        """
        bones = []
        for i, rec in enumerate(records):
            try:
                parent = int(rec["parent"])
                position = rec["position"]
                endpoint = rec["endpoint"]
            except KeyError as e:
                raise HierarchyError(f"Bone {i} is missing field {e}") from None
            bones.append(Bone.from_rest(i, parent, position, endpoint, rec.get("children", ())))

        if not any("children" in rec for rec in records):
            n = len(bones)
            for bone in bones:
                if 0 <= bone.parent < n and bone.parent != bone.index:
                    bones[bone.parent].children.append(bone.index)

        for i, rec in enumerate(records):
            if "rotation" in rec:
                bones[i].local_rotation = quat_normalize(np.array(rec["rotation"], dtype=np.float64))

        hierarchy = cls(bones)
        logger.info("Built bone hierarchy: %d bones, %d roots", len(bones), len(hierarchy.roots))
        return hierarchy

    def _derive_rest_offsets(self) -> None:
        """Express rest tips and parent offsets in the owning bone's frame."""
        world = {}
        for i in self.order:
            bone = self.bones[i]
            if bone.is_root:
                world[i] = bone.local_rotation.copy()
            else:
                world[i] = quat_multiply(world[bone.parent], bone.local_rotation)

            inv = quat_inverse(world[i])
            bone.rest_endpoint_local = quat_rotate_vec3(inv, bone.endpoint - bone.position)
            bone.length = float(np.linalg.norm(bone.rest_endpoint_local))
            bone.rotation = world[i].copy()

            if bone.is_root:
                continue
            parent = self.bones[bone.parent]
            offset = quat_rotate_vec3(quat_inverse(world[parent.index]), bone.position - parent.endpoint)
            if np.linalg.norm(offset) < EPSILON:
                offset = np.zeros(3, dtype=np.float64)
            bone.local_offset = offset

    # ── Validation ────────────────────────────────────────────────

    def validate(self) -> None:
        """Check index ranges, children consistency and acyclicity.

        Raises HierarchyError on the first problem found. On success
        ``self.order`` lists every bone with parents before children.
        """
        n = len(self.bones)
        if n == 0:
            raise HierarchyError("Rig has no bones")

        for i, bone in enumerate(self.bones):
            if bone.index != i:
                raise HierarchyError(f"Bone at position {i} has index {bone.index}")
            if bone.parent == i:
                raise HierarchyError(f"Bone {i} is its own parent")
            if bone.parent != NO_PARENT and not 0 <= bone.parent < n:
                raise HierarchyError(f"Bone {i} has dangling parent index {bone.parent}")
            for c in bone.children:
                if not 0 <= c < n or self.bones[c].parent != i:
                    raise HierarchyError(f"Bone {i} lists {c} as a child, but it is not")

        for i, bone in enumerate(self.bones):
            if bone.parent != NO_PARENT and self.bones[bone.parent].children.count(i) != 1:
                raise HierarchyError(
                    f"Bone {i} is missing from the children of its parent {bone.parent}"
                )

        for i in range(n):
            visited = {i}
            p = self.bones[i].parent
            while p != NO_PARENT:
                if p in visited:
                    raise HierarchyError(f"Cycle through bone {p} (reached from bone {i})")
                visited.add(p)
                p = self.bones[p].parent

        order = []
        queue = deque(b.index for b in self.bones if b.is_root)
        while queue:
            i = queue.popleft()
            order.append(i)
            queue.extend(self.bones[i].children)
        if len(order) != n:
            raise HierarchyError("Some bones are unreachable from any root")
        self.order = order

    # ── Container protocol ────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.bones)

    def __getitem__(self, index: int) -> Bone:
        return self.bones[index]

    def __iter__(self) -> Iterator[Bone]:
        return iter(self.bones)

    # ── Queries ───────────────────────────────────────────────────

    @property
    def roots(self) -> list[int]:
        return [b.index for b in self.bones if b.is_root]

    def ancestors(self, index: int) -> list[int]:
        """Parent, grandparent, ... up to the root (nearest first)."""
        result = []
        p = self.bones[index].parent
        while p != NO_PARENT:
            result.append(p)
            p = self.bones[p].parent
        return result

    def descendants(self, index: int) -> list[int]:
        """All bones below ``index`` in depth-first pre-order."""
        result = []
        stack = list(reversed(self.bones[index].children))
        while stack:
            i = stack.pop()
            result.append(i)
            stack.extend(reversed(self.bones[i].children))
        return result

    def depth(self, index: int) -> int:
        return len(self.ancestors(index))

    def anchor(self, index: int) -> int:
        """Nearest ancestor that branches (more than one child), else the root.

        A root bone is its own anchor.
        """
        ancestors = self.ancestors(index)
        for a in ancestors:
            if len(self.bones[a].children) > 1:
                return a
        return ancestors[-1] if ancestors else index

    def chain(self, index: int) -> list[int]:
        """Bones from ``index`` up to and including its anchor."""
        anchor = self.anchor(index)
        result = [index]
        p = index
        while p != anchor:
            p = self.bones[p].parent
            result.append(p)
        return result

    def reach(self, chain: Sequence[int]) -> float:
        """How far the first bone's joint can be from the last bone's joint."""
        total = sum(self.bones[i].length for i in chain[1:])
        total += sum(float(np.linalg.norm(self.bones[i].local_offset)) for i in chain[:-1])
        return total

    def copy_bones(self) -> list[Bone]:
        return [b.copy() for b in self.bones]

    def replace_bones(self, bones: Sequence[Bone]) -> None:
        """Swap in a new pose with the same structure."""
        if len(bones) != len(self.bones):
            raise HierarchyError(
                f"Pose has {len(bones)} bones, rig has {len(self.bones)}"
            )
        for old, new in zip(self.bones, bones):
            if old.parent != new.parent or old.children != new.children:
                raise HierarchyError(f"Pose changes the parent/children of bone {old.index}")
        self.bones = list(bones)

