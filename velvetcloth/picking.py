"""Mouse picking and dragging of cloth particles."""

from __future__ import annotations

import sys
from dataclasses import dataclass

import numpy as np

from velvetcloth.geometry import normalize
from velvetcloth.solver import ClothSolver

_PICK_DISTANCE = 0.2
_DRAG_BLEND = 0.8


@dataclass
class Ray:
    origin: np.ndarray
    direction: np.ndarray

    def __post_init__(self) -> None:
        self.origin = np.array(self.origin, dtype=float)
        self.direction = np.array(self.direction, dtype=float)


@dataclass
class RaycastCollision:
    collide: bool = False
    object_index: int = -1
    distance_to_origin: float = 0.0


def find_closest_vertex(positions, ray: Ray) -> RaycastCollision:
    """The vertex nearest to the ray line, and how far along the ray it lies."""
    positions = np.asarray(positions, dtype=float).reshape(-1, 3)
    if len(positions) == 0:
        return RaycastCollision(False, -1, 0.0)
    offsets = positions - ray.origin
    distances = np.linalg.norm(np.cross(ray.direction, offsets), axis=1)
    index = int(np.argmin(distances))
    min_distance = float(distances[index])
    if not min_distance < sys.float_info.max:
        return RaycastCollision(False, -1, 0.0)
    along = float(np.dot(ray.direction, offsets[index]))
    return RaycastCollision(min_distance < _PICK_DISTANCE, index, along)


def mouse_ray(screen_pos, screen_size, view_projection) -> Ray:
    """World-space ray through a pixel, given the camera's projection @ view matrix."""
    screen_pos = np.asarray(screen_pos, dtype=float)
    screen_size = np.asarray(screen_size, dtype=float)
    if np.any(screen_size <= 0):
        raise ValueError("screen size must be positive")
    ndc = 2.0 * screen_pos / screen_size - 1.0
    ndc[1] = -ndc[1]
    inverse = np.linalg.inv(np.asarray(view_projection, dtype=float))
    near_raw = inverse @ np.array([ndc[0], ndc[1], 0.0, 1.0])
    far_raw = inverse @ np.array([ndc[0], ndc[1], 1.0, 1.0])
    near = near_raw[:3] / near_raw[3]
    far = far_raw[:3] / far_raw[3]
    return Ray(near, normalize(far - near))


class ClothGrabber:
    """Lets a ray grab a cloth particle, pin it, and drag it along."""

    def __init__(self, solver: ClothSolver) -> None:
        self.solver = solver
        self.is_grabbing = False
        self.collision = RaycastCollision()
        self._grabbed_mass = 0.0

    def grab(self, ray: Ray) -> RaycastCollision:
        """Pick the particle nearest to the ray and pin it if it is close enough."""
        self.collision = find_closest_vertex(self.solver.positions, ray)
        if self.collision.collide:
            index = self.collision.object_index
            self.is_grabbing = True
            self._grabbed_mass = float(self.solver.inverse_mass[index])
            self.solver.inverse_mass[index] = 0.0
        return self.collision

    def release(self) -> None:
        if self.is_grabbing:
            self.is_grabbing = False
            self.solver.inverse_mass[self.collision.object_index] = self._grabbed_mass

    def update(self, ray: Ray, dt: float) -> None:
        """Move the grabbed particle towards the point on the ray at the grab distance."""
        if not self.is_grabbing:
            return
        if dt <= 0:
            raise ValueError("time step must be positive")
        index = self.collision.object_index
        mouse_pos = ray.origin + ray.direction * self.collision.distance_to_origin
        current = self.solver.positions[index].copy()
        target = mouse_pos + (current - mouse_pos) * _DRAG_BLEND
        self.solver.positions[index] = target
        self.solver.velocities[index] += (target - current) / dt