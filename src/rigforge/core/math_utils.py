"""NumPy-backed math utilities: Vec3, Quaternion, Mat4 operations.

Vectors are plain numpy arrays; quaternions are [x, y, z, w] arrays.
Matrices are 4x4 numpy arrays applied to column vectors (M @ v), the
OpenGL convention used by the skinning shaders.
"""

import numpy as np
from numpy.typing import NDArray

from rigforge.constants import EPSILON

# Type aliases
Vec3 = NDArray[np.float64]
Mat4 = NDArray[np.float64]
Quat = NDArray[np.float64]  # [x, y, z, w]

WORLD_X = np.array([1.0, 0.0, 0.0], dtype=np.float64)
WORLD_Y = np.array([0.0, 1.0, 0.0], dtype=np.float64)
WORLD_Z = np.array([0.0, 0.0, 1.0], dtype=np.float64)


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> Vec3:
    return np.array([x, y, z], dtype=np.float64)


def as_vec3(v) -> Vec3:
    """Copy any 3-sequence into a fresh float64 vector."""
    return np.array(v, dtype=np.float64).reshape(3)


def mat4_identity() -> Mat4:
    return np.eye(4, dtype=np.float64)


def mat4_translation(x: float, y: float, z: float) -> Mat4:
    m = np.eye(4, dtype=np.float64)
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return m


def mat4_from_quaternion(q: Quat) -> Mat4:
    """Convert quaternion [x,y,z,w] to 4x4 rotation matrix."""
    x, y, z, w = q
    m = np.eye(4, dtype=np.float64)
    m[0, 0] = 1 - 2 * (y * y + z * z)
    m[0, 1] = 2 * (x * y - z * w)
    m[0, 2] = 2 * (x * z + y * w)
    m[1, 0] = 2 * (x * y + z * w)
    m[1, 1] = 1 - 2 * (x * x + z * z)
    m[1, 2] = 2 * (y * z - x * w)
    m[2, 0] = 2 * (x * z - y * w)
    m[2, 1] = 2 * (y * z + x * w)
    m[2, 2] = 1 - 2 * (x * x + y * y)
    return m


def mat4_rigid(position: Vec3, quaternion: Quat) -> Mat4:
    """Translate(position) @ Rotate(quaternion)."""
    m = mat4_from_quaternion(quaternion)
    m[0, 3] = position[0]
    m[1, 3] = position[1]
    m[2, 3] = position[2]
    return m


def mat4_perspective(fov_rad: float, aspect: float, near: float, far: float) -> Mat4:
    """Create perspective projection matrix."""
    f = 1.0 / np.tan(fov_rad / 2.0)
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = (2 * far * near) / (near - far)
    m[3, 2] = -1.0
    return m


def mat4_look_at(eye: Vec3, target: Vec3, up: Vec3) -> Mat4:
    """Create view matrix (camera look-at)."""
    f = normalize(target - eye)
    s = normalize(np.cross(f, up))
    # Forward parallel to up: fall back to an alternative up vector.
    if np.linalg.norm(s) < 1e-6:
        alt_up = np.array([0.0, 0.0, -1.0]) if abs(f[1]) > 0.9 else np.array([0.0, 1.0, 0.0])
        s = normalize(np.cross(f, alt_up))
    u = np.cross(s, f)
    m = np.eye(4, dtype=np.float64)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -np.dot(s, eye)
    m[1, 3] = -np.dot(u, eye)
    m[2, 3] = np.dot(f, eye)
    return m


def mat4_inverse(m: Mat4) -> Mat4:
    return np.linalg.inv(m)


# Quaternion operations

def quat_identity() -> Quat:
    return np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)


def quat_from_axis_angle(axis: Vec3, angle: float) -> Quat:
    """Create quaternion from axis-angle."""
    half = angle / 2
    s = np.sin(half)
    a = normalize(axis)
    return np.array([a[0] * s, a[1] * s, a[2] * s, np.cos(half)], dtype=np.float64)


def quat_multiply(a: Quat, b: Quat) -> Quat:
    """Multiply two quaternions (a * b)."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array([
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    ], dtype=np.float64)


def quat_conjugate(q: Quat) -> Quat:
    return np.array([-q[0], -q[1], -q[2], q[3]], dtype=np.float64)


def quat_inverse(q: Quat) -> Quat:
    """Inverse of any non-zero quaternion (conjugate for unit quaternions)."""
    n2 = float(np.dot(q, q))
    if n2 < 1e-20:
        return quat_identity()
    return quat_conjugate(q) / n2


def quat_normalize(q: Quat) -> Quat:
    n = np.linalg.norm(q)
    if n < 1e-10:
        return quat_identity()
    return q / n


def quat_slerp(a: Quat, b: Quat, t: float) -> Quat:
    """Shortest-path spherical linear interpolation between two quaternions."""
    dot = np.dot(a, b)
    if dot < 0:
        b = -b
        dot = -dot
    if dot > 0.9995:
        result = a + t * (b - a)
        return quat_normalize(result)
    theta = np.arccos(np.clip(dot, -1.0, 1.0))
    sin_theta = np.sin(theta)
    if sin_theta < 1e-10:
        return a.copy()
    wa = np.sin((1 - t) * theta) / sin_theta
    wb = np.sin(t * theta) / sin_theta
    return quat_normalize(wa * a + wb * b)


def quat_rotate_vec3(q: Quat, v: Vec3) -> Vec3:
    """Rotate a vector by a quaternion."""
    qv = q[:3]
    w = q[3]
    t = 2.0 * np.cross(qv, v)
    return v + w * t + np.cross(qv, t)


def quat_angle_between(a: Quat, b: Quat) -> float:
    """Rotation angle (radians) taking a to b; sign of either is irrelevant."""
    dot = abs(float(np.dot(quat_normalize(a), quat_normalize(b))))
    return 2.0 * float(np.arccos(min(1.0, dot)))


def quat_between_directions(rest: Vec3, target: Vec3) -> Quat:
    """Shortest rotation taking direction ``rest`` onto direction ``target``.

    Both inputs are normalized here. Near-parallel directions give the
    identity; near-opposite directions rotate 180 degrees about an axis
    orthogonal to ``rest`` (world X crossed with it, or world Y when ``rest``
    lies along X).
    """
    rest_dir = normalize(rest)
    target_dir = normalize(target)
    dot = float(np.dot(rest_dir, target_dir))

    if dot > 1.0 - EPSILON:
        return quat_identity()
    if dot < -1.0 + EPSILON:
        ortho = np.cross(WORLD_X, rest_dir)
        if np.linalg.norm(ortho) < EPSILON:
            ortho = np.cross(WORLD_Y, rest_dir)
        return quat_from_axis_angle(normalize(ortho), np.pi)

    axis = normalize(np.cross(rest_dir, target_dir))
    return quat_from_axis_angle(axis, float(np.arccos(dot)))


# Vector operations

def normalize(v: Vec3) -> Vec3:
    n = np.linalg.norm(v)
    if n < 1e-10:
        return np.zeros_like(v)
    return v / n


def lerp_vec3(a: Vec3, b: Vec3, t: float) -> Vec3:
    return a + (b - a) * t


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def transform_point(m: Mat4, p: Vec3) -> Vec3:
    """Transform a point by a 4x4 matrix."""
    v = np.array([p[0], p[1], p[2], 1.0], dtype=np.float64)
    r = m @ v
    return r[:3]


def transform_direction(m: Mat4, d: Vec3) -> Vec3:
    """Transform a direction by a 4x4 matrix (ignores translation)."""
    return (m[:3, :3] @ d)


def screen_to_ray(
    screen_x: float,
    screen_y: float,
    viewport_w: int,
    viewport_h: int,
    view: Mat4,
    proj: Mat4,
) -> tuple[Vec3, Vec3]:
    """Unproject a viewport pixel into a world-space ray.

    Returns (origin, direction): the camera position and the normalized
    direction toward the far-plane point under the pixel. Pixel (0, 0) is
    the top-left corner.
    """
    ndc_x = (2.0 * screen_x) / viewport_w - 1.0
    ndc_y = 1.0 - (2.0 * screen_y) / viewport_h

    far = mat4_inverse(proj) @ np.array([ndc_x, ndc_y, 1.0, 1.0], dtype=np.float64)
    far /= far[3]
    view_inv = mat4_inverse(view)
    far_world = view_inv @ far

    origin = view_inv[:3, 3].copy()
    return origin, normalize(far_world[:3] - origin)


# ── Batch (vectorized) quaternion operations ──────────────────────────

def batch_quat_rotate(q: NDArray, v: NDArray) -> NDArray:
    """Rotate (N, 3) vectors by (N, 4) quaternions [x, y, z, w]."""
    qx, qy, qz, qw = q[:, 0], q[:, 1], q[:, 2], q[:, 3]
    vx, vy, vz = v[:, 0], v[:, 1], v[:, 2]
    # t = 2 * cross(q.xyz, v)
    tx = 2.0 * (qy * vz - qz * vy)
    ty = 2.0 * (qz * vx - qx * vz)
    tz = 2.0 * (qx * vy - qy * vx)
    # result = v + qw * t + cross(q.xyz, t)
    return np.column_stack([
        vx + qw * tx + (qy * tz - qz * ty),
        vy + qw * ty + (qz * tx - qx * tz),
        vz + qw * tz + (qx * ty - qy * tx),
    ])
