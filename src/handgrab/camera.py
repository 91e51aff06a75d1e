"""Desktop perspective camera: pointer rays and object framing."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from handgrab.geometry import (
    Bounds,
    Ray,
    look_at_matrix,
    normalize,
    quat_from_matrix,
    quat_identity,
    quat_rotate,
    vec3,
)


class PerspectiveCamera:
    """A camera looking down its local -Z axis.

    `fov` is the vertical field of view in degrees.
    """

    def __init__(
        self,
        fov: float = 60.0,
        aspect: float = 1.0,
        near: float = 0.1,
        far: float = 100.0,
        position: Optional[np.ndarray] = None,
        rotation: Optional[np.ndarray] = None,
    ):
        self.fov = fov
        self.aspect = aspect
        self.near = near
        self.far = far
        self.position = vec3(0, 1.4, 2.5) if position is None else np.asarray(position, dtype=np.float64)
        self.rotation = quat_identity() if rotation is None else np.asarray(rotation, dtype=np.float64)
        self.target = vec3()

    def world_direction(self) -> np.ndarray:
        return normalize(quat_rotate(self.rotation, vec3(0, 0, -1)))

    def look_at(self, target: np.ndarray):
        self.target = np.asarray(target, dtype=np.float64).copy()
        self.rotation = quat_from_matrix(look_at_matrix(self.position, self.target))

    def ray_from_ndc(self, nx: float, ny: float) -> Ray:
        """Ray from the camera through normalized device coords in [-1, 1]."""
        tan_half = math.tan(math.radians(self.fov) / 2.0)
        local = vec3(nx * tan_half * self.aspect, ny * tan_half, -1.0)
        direction = normalize(quat_rotate(self.rotation, local))
        return Ray(origin=self.position.copy(), direction=direction)

    def frame(self, bounds: Bounds) -> bool:
        """Back the camera off until `bounds` fills the view. False if empty."""
        if bounds.is_empty:
            return False
        center = bounds.center
        max_side = float(np.max(bounds.size))
        dist = max_side * 1.8 / math.tan(math.radians(self.fov * 0.5))
        self.position = center + normalize(vec3(0, 0.2, 1)) * dist
        self.look_at(center)
        return True
