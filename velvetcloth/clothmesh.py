"""Generators for square cloth meshes."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence

import numpy as np

_CLOTH_SIZE = 2.0


@dataclass
class ClothMesh:
    """Triangle mesh: per-vertex positions, normals and uvs plus a flat index list."""

    vertices: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray


def _check_resolution(resolution: int) -> None:
    if resolution < 1:
        raise ValueError("resolution must be at least 1")


def _grid(resolution: int) -> tuple[np.ndarray, np.ndarray]:
    """Vertex positions and uvs of a regular grid, row by row."""
    steps = np.arange(resolution + 1) / resolution
    ys, xs = np.meshgrid(steps, steps, indexing="ij")
    uvs = np.stack([xs.ravel(), ys.ravel()], axis=1)
    vertices = _CLOTH_SIZE * np.stack(
        [uvs[:, 0] - 0.5, -uvs[:, 1], np.zeros(len(uvs))], axis=1
    )
    return vertices, uvs


def _vertex_index(resolution: int, x: int, y: int) -> int:
    return x * (resolution + 1) + y


def _regular_indices(resolution: int) -> np.ndarray:
    indices = []
    for x in range(resolution):
        for y in range(resolution):
            a = _vertex_index(resolution, x, y)
            b = _vertex_index(resolution, x + 1, y)
            c = _vertex_index(resolution, x, y + 1)
            d = _vertex_index(resolution, x + 1, y + 1)
            indices.extend((a, b, c, c, b, d))
    return np.array(indices, dtype=np.uint32)


def _flat_normals(count: int) -> np.ndarray:
    return np.tile(np.array([0.0, 0.0, 1.0]), (count, 1))


def generate_cloth_mesh(resolution: int) -> ClothMesh:
    """A flat square cloth of resolution x resolution cells hanging below the origin."""
    _check_resolution(resolution)
    vertices, uvs = _grid(resolution)
    return ClothMesh(vertices, _flat_normals(len(vertices)), uvs, _regular_indices(resolution))


def generate_cloth_mesh_with_offsets(
    resolution: int,
    x_indices: Sequence[int],
    y_indices: Sequence[int],
    offsets: Sequence[Sequence[float]],
) -> ClothMesh:
    """A regular cloth with selected grid vertices displaced by offset / resolution cells."""
    _check_resolution(resolution)
    if not len(x_indices) == len(y_indices) == len(offsets):
        raise ValueError("index and offset lists must have the same length")
    vertices, uvs = _grid(resolution)
    for x, y, offset in zip(x_indices, y_indices, offsets):
        if not (0 <= x <= resolution and 0 <= y <= resolution):
            raise IndexError(f"grid index ({x}, {y}) out of range")
        delta = np.asarray(offset, dtype=float) / resolution
        vertices[_vertex_index(resolution, x, y)] += _CLOTH_SIZE * delta
    return ClothMesh(vertices, _flat_normals(len(vertices)), uvs, _regular_indices(resolution))


def _angle(left: np.ndarray, mid: np.ndarray, right: np.ndarray) -> float:
    with np.errstate(invalid="ignore"):
        return float(np.arccos(np.dot(left - mid, right - mid)))


def generate_irregular_cloth_mesh(resolution: int, rng: random.Random | None = None) -> ClothMesh:
    """A cloth whose interior vertices are jittered, triangulated along the better diagonal."""
    _check_resolution(resolution)
    rng = rng or random.Random()
    noise_size = 1.0 / resolution * 0.4
    n = resolution + 1
    vertices = np.zeros((n * n, 3))
    uvs = np.zeros((n * n, 2))

    for y in range(n):
        for x in range(n):
            boundary = x in (0, resolution) or y in (0, resolution)
            if boundary:
                noise = np.zeros(2)
            else:
                noise = noise_size * np.array([rng.random(), rng.random()])
            uv = noise + np.array([x / resolution, y / resolution])
            i = y * n + x
            uvs[i] = uv
            vertices[i] = _CLOTH_SIZE * np.array([uv[0] - 0.5, -uv[1], 0.0])

    indices = []
    for y in range(resolution):
        for x in range(resolution):
            a = _vertex_index(resolution, x, y)
            b = _vertex_index(resolution, x + 1, y)
            c = _vertex_index(resolution, x, y + 1)
            d = _vertex_index(resolution, x + 1, y + 1)
            p1, p2, p3, p4 = vertices[a], vertices[b], vertices[c], vertices[d]
            angle1 = _angle(p3, p1, p2)
            angle2 = _angle(p1, p2, p4)
            angle3 = _angle(p1, p3, p4)
            angle4 = _angle(p3, p4, p2)
            if angle1 + angle4 > angle2 + angle3:
                indices.extend((a, d, c, a, b, d))
            else:
                indices.extend((a, b, c, c, b, d))

    return ClothMesh(vertices, _flat_normals(len(vertices)), uvs, np.array(indices, dtype=np.uint32))