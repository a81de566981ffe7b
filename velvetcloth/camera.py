"""A perspective camera placed by position and Euler rotation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from velvetcloth.geometry import look_at, perspective, rotate_with_degree

_FRONT = np.array([0.0, 0.0, -1.0])
_UP = np.array([0.0, 1.0, 0.0])
_NEAR = 0.01
_FAR = 100.0


@dataclass
class Camera:
    """Camera with a position, a rotation in degrees and a vertical zoom angle in degrees."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    zoom: float = 45.0

    def __post_init__(self) -> None:
        self.position = np.array(self.position, dtype=float)
        self.rotation = np.array(self.rotation, dtype=float)

    def front(self) -> np.ndarray:
        return rotate_with_degree(_FRONT, self.rotation)

    def up(self) -> np.ndarray:
        return rotate_with_degree(_UP, self.rotation)

    def view(self) -> np.ndarray:
        return look_at(self.position, self.position + self.front(), self.up())

    def projection(self, width: float, height: float) -> np.ndarray:
        if width <= 0 or height <= 0:
            raise ValueError("window size must be positive")
        return perspective(math.radians(self.zoom), width / height, _NEAR, _FAR)