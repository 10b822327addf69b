"""Ray picking against per-bone cylinders."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from rigforge.constants import EPSILON, NO_BONE, PICK_RADIUS
from rigforge.core.math_utils import Vec3, normalize, transform_direction, transform_point
from rigforge.skeleton.bone import Bone


def ray_to_local(bone: Bone, origin: Vec3, direction: Vec3) -> tuple[Vec3, Vec3]:
    """Express a world ray in the bone's cylinder space (direction normalized)."""
    inv = bone.collider.inverse
    local_origin = transform_point(inv, origin)
    local_direction = normalize(transform_direction(inv, direction))
    return local_origin, local_direction


def intersect_cylinder(
    local_origin: Vec3,
    local_direction: Vec3,
    length: float,
    radius: float = PICK_RADIUS,
) -> float:
    """Nearest ray parameter hitting the finite cylinder along local +Z.

    The cylinder has the given radius around the Z axis and spans
    ``0 <= z <= length``. Hits behind the origin (negative parameter) are
    ignored. Returns ``math.inf`` when there is no hit, including rays
    parallel to the axis.
    """
    x0, y0, z0 = local_origin
    x1, y1, z1 = local_direction

    a = x1 * x1 + y1 * y1
    if abs(a) < EPSILON:
        return math.inf
    b = 2.0 * (x0 * x1 + y0 * y1)
    c = x0 * x0 + y0 * y0 - radius * radius

    discriminant = b * b - 4.0 * a * c
    if discriminant < 0.0:
        return math.inf
    root = math.sqrt(discriminant)
    t1 = (-b - root) / (2.0 * a)
    t2 = (-b + root) / (2.0 * a)
    if t1 > t2:
        t1, t2 = t2, t1

    for t in (t1, t2):
        if t < 0.0:
            continue
        z = z0 + t * z1
        if 0.0 <= z <= length:
            return t
    return math.inf


def pick(
    bones: Sequence[Bone],
    ray_origin: Vec3,
    ray_direction: Vec3,
    radius: float = PICK_RADIUS,
) -> int:
    """Index of the bone whose cylinder the ray hits first, or NO_BONE."""
    origin = np.asarray(ray_origin, dtype=np.float64)[:3]
    direction = np.asarray(ray_direction, dtype=np.float64)[:3]
    if np.linalg.norm(direction) < EPSILON:
        return NO_BONE

    best = NO_BONE
    best_t = math.inf
    for bone in bones:
        local_origin, local_direction = ray_to_local(bone, origin, direction)
        t = intersect_cylinder(local_origin, local_direction, bone.length, radius)
        if t < best_t:
            best = bone.index
            best_t = t
    return best
