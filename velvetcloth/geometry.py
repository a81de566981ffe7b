"""Vector and 4x4 matrix helpers using the column-vector convention (M @ v)."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def _vec3(value: Sequence[float] | np.ndarray) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {arr.shape}")
    return arr


def normalize(vector: Sequence[float] | np.ndarray) -> np.ndarray:
    """Return the vector scaled to unit length; a zero vector gives NaNs."""
    arr = np.array(vector, dtype=float)
    with np.errstate(invalid="ignore", divide="ignore"):
        return arr / np.linalg.norm(arr)


def _rotation3(rotation: Sequence[float] | np.ndarray) -> np.ndarray:
    """Rotation from Euler angles in degrees, applied about X, then Y, then Z."""
    ax, ay, az = (math.radians(a) for a in _vec3(rotation))
    cx, sx = math.cos(ax), math.sin(ax)
    cy, sy = math.cos(ay), math.sin(ay)
    cz, sz = math.cos(az), math.sin(az)
    rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return rz @ ry @ rx


def rotate_with_degree(vector, rotation) -> np.ndarray:
    """Rotate a vector by Euler angles given in degrees."""
    return _rotation3(rotation) @ _vec3(vector)


def trs_matrix(position, rotation, scale) -> np.ndarray:
    """Model matrix: translate, then rotate (degrees), then scale."""
    matrix = np.eye(4)
    matrix[:3, :3] = _rotation3(rotation) @ np.diag(_vec3(scale))
    matrix[:3, 3] = _vec3(position)
    return matrix


def look_at(eye, center, up) -> np.ndarray:
    """Right-handed view matrix looking from eye towards center."""
    eye = _vec3(eye)
    f = normalize(_vec3(center) - eye)
    s = normalize(np.cross(f, _vec3(up)))
    u = np.cross(s, f)
    matrix = np.eye(4)
    matrix[0, :3] = s
    matrix[1, :3] = u
    matrix[2, :3] = -f
    matrix[0, 3] = -np.dot(s, eye)
    matrix[1, 3] = -np.dot(u, eye)
    matrix[2, 3] = np.dot(f, eye)
    return matrix


def perspective(fovy: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Right-handed perspective projection with depth mapped to [-1, 1]; fovy in radians."""
    if aspect == 0:
        raise ValueError("aspect ratio must be non-zero")
    if near == far:
        raise ValueError("near and far planes must differ")
    tan_half = math.tan(fovy / 2.0)
    if tan_half == 0:
        raise ValueError("field of view must be non-zero")
    matrix = np.zeros((4, 4))
    matrix[0, 0] = 1.0 / (aspect * tan_half)
    matrix[1, 1] = 1.0 / tan_half
    matrix[2, 2] = -(far + near) / (far - near)
    matrix[2, 3] = -(2.0 * far * near) / (far - near)
    matrix[3, 2] = -1.0
    return matrix