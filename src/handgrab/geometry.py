"""Rigid-transform math: quaternions, 4x4 matrices, rays, planes and boxes.

Quaternions are stored as numpy arrays in (x, y, z, w) order. Matrices are
4x4 column-vector transforms (translation in the last column).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

EPSILON = 1e-9


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    return np.array([x, y, z], dtype=np.float64)


def normalize(v: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    return v / max(n, EPSILON)


# --- Quaternions ---

def quat_identity() -> np.ndarray:
    return np.array([0.0, 0.0, 0.0, 1.0])


def quat_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    axis = normalize(np.asarray(axis, dtype=np.float64))
    s = math.sin(angle / 2.0)
    return np.array([axis[0] * s, axis[1] * s, axis[2] * s, math.cos(angle / 2.0)])


def quat_multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product a * b (apply b first, then a)."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array([
        ax * bw + aw * bx + ay * bz - az * by,
        ay * bw + aw * by + az * bx - ax * bz,
        az * bw + aw * bz + ax * by - ay * bx,
        aw * bw - ax * bx - ay * by - az * bz,
    ])


def quat_to_matrix(q: np.ndarray) -> np.ndarray:
    """3x3 rotation matrix for a unit quaternion."""
    x, y, z, w = normalize(np.asarray(q, dtype=np.float64))
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z
    return np.array([
        [1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy)],
        [2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx)],
        [2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy)],
    ])


def quat_from_matrix(m: np.ndarray) -> np.ndarray:
    """Quaternion of a pure (unscaled) 3x3 rotation matrix."""
    m11, m12, m13 = m[0, 0], m[0, 1], m[0, 2]
    m21, m22, m23 = m[1, 0], m[1, 1], m[1, 2]
    m31, m32, m33 = m[2, 0], m[2, 1], m[2, 2]
    trace = m11 + m22 + m33

    if trace > 0:
        s = 0.5 / math.sqrt(trace + 1.0)
        q = [(m32 - m23) * s, (m13 - m31) * s, (m21 - m12) * s, 0.25 / s]
    elif m11 > m22 and m11 > m33:
        s = 2.0 * math.sqrt(1.0 + m11 - m22 - m33)
        q = [0.25 * s, (m12 + m21) / s, (m13 + m31) / s, (m32 - m23) / s]
    elif m22 > m33:
        s = 2.0 * math.sqrt(1.0 + m22 - m11 - m33)
        q = [(m12 + m21) / s, 0.25 * s, (m23 + m32) / s, (m13 - m31) / s]
    else:
        s = 2.0 * math.sqrt(1.0 + m33 - m11 - m22)
        q = [(m13 + m31) / s, (m23 + m32) / s, 0.25 * s, (m21 - m12) / s]

    return normalize(np.array(q, dtype=np.float64))


def quat_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    return quat_to_matrix(q) @ np.asarray(v, dtype=np.float64)


def quat_angle_between(a: np.ndarray, b: np.ndarray) -> float:
    """Smallest rotation angle (radians) taking a to b."""
    d = abs(float(np.dot(normalize(a), normalize(b))))
    return 2.0 * math.acos(min(1.0, d))


def look_at_matrix(eye: np.ndarray, target: np.ndarray, up: Optional[np.ndarray] = None) -> np.ndarray:
    """Rotation whose +Z axis points from target towards eye."""
    up = vec3(0, 1, 0) if up is None else np.asarray(up, dtype=np.float64)
    z = np.asarray(eye, dtype=np.float64) - np.asarray(target, dtype=np.float64)
    if np.linalg.norm(z) < EPSILON:
        z = vec3(0, 0, 1)
    z = normalize(z)

    x = np.cross(up, z)
    if np.linalg.norm(x) < EPSILON:
        # up and z are parallel; nudge z off the up axis
        nudge = vec3(0.0001, 0, 0) if abs(up[2]) == 1 else vec3(0, 0, 0.0001)
        z = normalize(z + nudge)
        x = np.cross(up, z)
    x = normalize(x)
    y = np.cross(z, x)
    return np.column_stack([x, y, z])


# --- Matrices ---

def compose(position: np.ndarray, rotation: np.ndarray, scale: np.ndarray) -> np.ndarray:
    m = np.eye(4)
    m[:3, :3] = quat_to_matrix(rotation) * np.asarray(scale, dtype=np.float64)
    m[:3, 3] = position
    return m


def decompose(m: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split a 4x4 transform into (position, rotation quaternion, scale)."""
    basis = m[:3, :3]
    sx = float(np.linalg.norm(basis[:, 0]))
    sy = float(np.linalg.norm(basis[:, 1]))
    sz = float(np.linalg.norm(basis[:, 2]))
    if np.linalg.det(basis) < 0:
        sx = -sx

    scale = np.array([sx, sy, sz])
    safe = np.where(np.abs(scale) < EPSILON, EPSILON, scale)
    rotation = quat_from_matrix(basis / safe)
    return m[:3, 3].copy(), rotation, scale


def transform_point(m: np.ndarray, p: np.ndarray) -> np.ndarray:
    return m[:3, :3] @ np.asarray(p, dtype=np.float64) + m[:3, 3]


def transform_direction(m: np.ndarray, d: np.ndarray) -> np.ndarray:
    return m[:3, :3] @ np.asarray(d, dtype=np.float64)


# --- Primitives ---

@dataclass
class Ray:
    origin: np.ndarray
    direction: np.ndarray

    def at(self, t: float) -> np.ndarray:
        return self.origin + self.direction * t

    def transformed(self, m: np.ndarray) -> Ray:
        """Ray in another frame. Direction is not renormalized so t is preserved."""
        return Ray(transform_point(m, self.origin), transform_direction(m, self.direction))

    def intersect_plane(self, plane: Plane, far: float = 100.0) -> Optional[np.ndarray]:
        """Hit point on `plane` within `far` units of the origin, or None."""
        return plane.intersect_segment(self.origin, self.at(far))

    def intersect_bounds(self, bounds: Bounds) -> Optional[float]:
        return bounds.intersect_ray(self)


@dataclass
class Plane:
    """Points p with dot(normal, p) + constant == 0."""
    normal: np.ndarray
    constant: float

    @classmethod
    def from_normal_and_point(cls, normal: np.ndarray, point: np.ndarray) -> Plane:
        n = normalize(np.asarray(normal, dtype=np.float64))
        return cls(normal=n, constant=-float(np.dot(point, n)))

    def distance_to_point(self, p: np.ndarray) -> float:
        return float(np.dot(self.normal, p)) + self.constant

    def intersect_segment(self, start: np.ndarray, end: np.ndarray) -> Optional[np.ndarray]:
        direction = end - start
        denom = float(np.dot(self.normal, direction))
        if abs(denom) < EPSILON:
            return None
        t = -(float(np.dot(start, self.normal)) + self.constant) / denom
        if t < 0 or t > 1:
            return None
        return start + direction * t


@dataclass
class Bounds:
    """Axis-aligned box. An empty box has min > max."""
    min: np.ndarray
    max: np.ndarray

    @classmethod
    def empty(cls) -> Bounds:
        return cls(np.full(3, np.inf), np.full(3, -np.inf))

    @classmethod
    def from_points(cls, points: np.ndarray) -> Bounds:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0:
            return cls.empty()
        return cls(points.min(axis=0), points.max(axis=0))

    @classmethod
    def from_center_size(cls, center: np.ndarray, size: np.ndarray) -> Bounds:
        half = np.asarray(size, dtype=np.float64) / 2.0
        center = np.asarray(center, dtype=np.float64)
        return cls(center - half, center + half)

    @property
    def is_empty(self) -> bool:
        return bool(np.any(self.max < self.min))

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    @property
    def size(self) -> np.ndarray:
        if self.is_empty:
            return np.zeros(3)
        return self.max - self.min

    def corners(self) -> np.ndarray:
        lo, hi = self.min, self.max
        return np.array([
            [x, y, z] for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])
        ])

    def transformed(self, m: np.ndarray) -> Bounds:
        if self.is_empty:
            return Bounds.empty()
        return Bounds.from_points([transform_point(m, c) for c in self.corners()])

    def union(self, other: Bounds) -> Bounds:
        return Bounds(np.minimum(self.min, other.min), np.maximum(self.max, other.max))

    def intersect_ray(self, ray: Ray) -> Optional[float]:
        """Entry distance along the ray (slab test), or None on a miss."""
        if self.is_empty:
            return None
        t_near, t_far = -np.inf, np.inf
        for axis in range(3):
            o, d = ray.origin[axis], ray.direction[axis]
            if abs(d) < EPSILON:
                if o < self.min[axis] or o > self.max[axis]:
                    return None
                continue
            t1 = (self.min[axis] - o) / d
            t2 = (self.max[axis] - o) / d
            t_near = max(t_near, min(t1, t2))
            t_far = min(t_far, max(t1, t2))
            if t_near > t_far:
                return None
        if t_far < 0:
            return None
        return float(max(t_near, 0.0))
