"""Signed-distance colliders that push particles out of shapes."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from velvetcloth.common import ColliderType
from velvetcloth.geometry import trs_matrix


@dataclass
class Collider:
    """A plane or sphere obstacle with a transform and tracked velocity."""

    type: ColliderType = ColliderType.SPHERE
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    enabled: bool = True
    last_pos: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    cur_transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    last_transform: np.ndarray = field(default_factory=lambda: np.eye(4))

    def __post_init__(self) -> None:
        self.position = np.array(self.position, dtype=float)
        self.rotation = np.array(self.rotation, dtype=float)
        self.scale = np.array(self.scale, dtype=float)

    def matrix(self) -> np.ndarray:
        return trs_matrix(self.position, self.rotation, self.scale)

    def start(self) -> None:
        self.last_pos = self.position.copy()
        self.cur_transform = self.matrix()
        self.last_transform = self.cur_transform.copy()

    def fixed_update(self, dt: float) -> None:
        """Record velocity and transforms for a physics step of length dt."""
        if dt <= 0:
            raise ValueError("time step must be positive")
        self.velocity = (self.position - self.last_pos) / dt
        self.last_pos = self.position.copy()
        self.last_transform = self.cur_transform
        self.cur_transform = self.matrix()

    def compute_sdf(self, position, margin: float) -> np.ndarray:
        """Correction that moves position out of this shape, or zero."""
        if self.type is ColliderType.PLANE:
            return self.compute_plane_sdf(position, margin)
        if self.type is ColliderType.SPHERE:
            return self.compute_sphere_sdf(position, margin)
        return np.zeros(3)

    def compute_plane_sdf(self, position, margin: float) -> np.ndarray:
        y = float(np.asarray(position, dtype=float)[1])
        if y < margin:
            return np.array([0.0, margin - y, 0.0])
        return np.zeros(3)

    def compute_sphere_sdf(self, position, margin: float) -> np.ndarray:
        radius = float(self.scale[0]) + margin
        diff = np.asarray(position, dtype=float) - self.position
        distance = float(np.linalg.norm(diff))
        if distance < radius:
            with np.errstate(invalid="ignore", divide="ignore"):
                direction = diff / distance
            return (radius - distance) * direction
        return np.zeros(3)