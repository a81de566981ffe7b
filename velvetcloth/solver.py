"""Position-based cloth solver with stretch, bending, particle and SDF constraints."""

from __future__ import annotations

import math
from collections import defaultdict
from itertools import product
from typing import Iterable, Sequence

import numpy as np

from velvetcloth.collider import Collider
from velvetcloth.common import SimParams

_EPSILON = 1e-6
_NEIGHBOR_OFFSETS = list(product((-1, 0, 1), repeat=3))


def compute_friction(correction, relative_velocity, friction: float) -> np.ndarray:
    """Friction displacement opposing the tangential part of relative_velocity."""
    correction = np.asarray(correction, dtype=float)
    relative_velocity = np.asarray(relative_velocity, dtype=float)
    correction_length = float(np.linalg.norm(correction))
    if friction <= 0 or correction_length <= 0:
        return np.zeros(3)
    correction_norm = correction / correction_length
    tangential = relative_velocity - correction_norm * np.dot(relative_velocity, correction_norm)
    tangential_length = float(np.linalg.norm(tangential))
    if tangential_length == 0:
        return np.zeros(3)
    max_tangential = correction_length * friction
    return -tangential * min(max_tangential / tangential_length, 1.0)


def compute_normals(positions, indices) -> np.ndarray:
    """Area-weighted vertex normals of a triangle list; unused vertices give NaNs."""
    positions = np.asarray(positions, dtype=float)
    triangles = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    p1, p2, p3 = (positions[triangles[:, k]] for k in range(3))
    face_normals = np.cross(p2 - p1, p3 - p1)
    normals = np.zeros_like(positions)
    for k in range(3):
        np.add.at(normals, triangles[:, k], face_normals)
    with np.errstate(invalid="ignore", divide="ignore"):
        return normals / np.linalg.norm(normals, axis=1, keepdims=True)


def _neighbor_lists(points: np.ndarray, cell_size: float) -> list[list[int]]:
    """For every point, the later points lying in the same or an adjacent hash cell."""
    cells = [tuple(c) for c in np.floor(points / cell_size).astype(np.int64)]
    buckets: dict[tuple, list[int]] = defaultdict(list)
    for index, cell in enumerate(cells):
        buckets[cell].append(index)
    neighbors = []
    for index, (cx, cy, cz) in enumerate(cells):
        found = [
            j
            for dx, dy, dz in _NEIGHBOR_OFFSETS
            for j in buckets.get((cx + dx, cy + dy, cz + dz), ())
            if j > index
        ]
        neighbors.append(sorted(found))
    return neighbors


class ClothSolver:
    """Simulates a square cloth grid of (resolution + 1) ** 2 particles."""

    def __init__(self, resolution: int, params: SimParams | None = None) -> None:
        if resolution < 1:
            raise ValueError("resolution must be at least 1")
        self.resolution = resolution
        self.params = params if params is not None else SimParams()
        self.positions = np.zeros((0, 3))
        self.predicted = np.zeros((0, 3))
        self.velocities = np.zeros((0, 3))
        self.inverse_mass = np.zeros(0)
        self.stretch_constraints: list[tuple[int, int, float]] = []
        self.attachment_constraints: list[tuple[int, np.ndarray]] = []
        self.bending_constraints: list[tuple[int, int, int, int, float]] = []
        self.particle_diameter = 0.0
        self.indices = np.zeros(0, dtype=np.int64)
        self.colliders: list[Collider] = []
        self._attached_indices: list[int] = []
        self._normals = np.zeros((0, 3))
        self._initialized = False

    def set_attached_indices(self, indices: Iterable[int]) -> None:
        self._attached_indices = list(indices)

    def initialize(self, vertices, indices, model_matrix, colliders: Sequence[Collider] = ()) -> None:
        """Load mesh vertices in world space and build all constraints."""
        vertices = np.asarray(vertices, dtype=float)
        expected = (self.resolution + 1) ** 2
        if vertices.shape != (expected, 3):
            raise ValueError(f"expected {expected} vertices of 3 components, got shape {vertices.shape}")
        model_matrix = np.asarray(model_matrix, dtype=float)
        homogeneous = np.hstack([vertices, np.ones((len(vertices), 1))])
        self.positions = (homogeneous @ model_matrix.T)[:, :3].copy()
        self.indices = np.asarray(indices, dtype=np.int64)
        self.colliders = list(colliders)

        count = len(self.positions)
        self.velocities = np.zeros((count, 3))
        self.predicted = np.zeros((count, 3))
        self.inverse_mass = np.ones(count)

        self.particle_diameter = float(
            np.linalg.norm(self.positions[0] - self.positions[self.resolution + 1])
        )
        if self.particle_diameter <= 0:
            raise ValueError("cloth particles must not coincide")

        self._generate_stretch()
        self._generate_attachment(self._attached_indices)
        self._generate_bending()
        self._normals = compute_normals(self.positions, self.indices)
        self._initialized = True

    def simulate(self, dt: float) -> None:
        """Advance the cloth by one frame of length dt."""
        if not self._initialized:
            raise RuntimeError("solver is not initialized")
        if dt <= 0:
            raise ValueError("time step must be positive")
        params = self.params
        substep_time = dt / params.num_substeps

        # Pre-stabilization pass on the current positions.
        self._collide_sdf(self.positions)

        self._predict_positions(dt)
        neighbors = _neighbor_lists(self.predicted, self.particle_diameter)

        for _ in range(params.num_substeps):
            self._predict_positions(substep_time)
            for _ in range(params.num_iterations):
                self._solve_stretch()
                self._solve_bending(substep_time)
                self._collide_particles(neighbors)
                self._collide_sdf(self.predicted)
                self._solve_attachment()
            self._finalize(substep_time)

        self._normals = compute_normals(self.positions, self.indices)

    def normals(self) -> np.ndarray:
        if not self._initialized:
            raise RuntimeError("solver is not initialized")
        return self._normals.copy()

    def _vertex_at(self, x: int, y: int) -> int:
        return x * (self.resolution + 1) + y

    def _distance(self, idx1: int, idx2: int) -> float:
        return float(np.linalg.norm(self.positions[idx1] - self.positions[idx2]))

    def _generate_stretch(self) -> None:
        res = self.resolution
        pairs = []
        for x, y in product(range(res + 1), repeat=2):
            if y != res:
                pairs.append((self._vertex_at(x, y), self._vertex_at(x, y + 1)))
            if x != res:
                pairs.append((self._vertex_at(x, y), self._vertex_at(x + 1, y)))
            if x != res and y != res:
                pairs.append((self._vertex_at(x, y), self._vertex_at(x + 1, y + 1)))
                pairs.append((self._vertex_at(x, y + 1), self._vertex_at(x + 1, y)))
        self.stretch_constraints = [(a, b, self._distance(a, b)) for a, b in pairs]

    def _generate_attachment(self, indices: Iterable[int]) -> None:
        self.attachment_constraints = []
        for index in indices:
            if not 0 <= index < len(self.positions):
                raise IndexError(f"attached index {index} out of range")
            self.attachment_constraints.append((index, self.positions[index].copy()))
            self.inverse_mass[index] = 0.0

    def _generate_bending(self) -> None:
        idx = [int(i) for i in self.indices]
        self.bending_constraints = [
            (idx[i], idx[i + 1], idx[i + 2], idx[i + 5], 0.0)
            for i in range(0, len(idx) - 5, 6)
        ]

    def _predict_positions(self, dt: float) -> None:
        self.velocities += self.params.gravity * dt
        self.predicted = self.positions + self.velocities * dt

    def _solve_stretch(self) -> None:
        predicted, inv_mass = self.predicted, self.inverse_mass
        for idx1, idx2, expected in self.stretch_constraints:
            diff = predicted[idx1] - predicted[idx2]
            distance = math.sqrt(float(diff @ diff))
            w1, w2 = inv_mass[idx1], inv_mass[idx2]
            # Unilateral: only pull particles together, never push apart.
            if distance > expected and w1 + w2 > 0:
                gradient = diff / (distance + _EPSILON)
                lam = (distance - expected) / (w1 + w2)
                predicted[idx1] -= w1 * lam * gradient
                predicted[idx2] += w2 * lam * gradient

    def _solve_bending(self, dt: float) -> None:
        xpbd_bend = self.params.bend_compliance / dt / dt
        predicted, inv_mass = self.predicted, self.inverse_mass
        for c0, c1, c2, c3, expected_angle in self.bending_constraints:
            idx1, idx2, idx3, idx4 = c2, c1, c0, c3
            w1, w2, w3, w4 = (inv_mass[i] for i in (idx1, idx2, idx3, idx4))
            p1 = predicted[idx1]
            p2 = predicted[idx2] - p1
            p3 = predicted[idx3] - p1
            p4 = predicted[idx4] - p1

            c23 = np.cross(p2, p3)
            c24 = np.cross(p2, p4)
            with np.errstate(invalid="ignore", divide="ignore"):
                n1 = c23 / np.linalg.norm(c23)
                n2 = c24 / np.linalg.norm(c24)
            d = float(np.clip(np.dot(n1, n2), 0.0, 1.0))
            if math.isnan(d):
                continue
            angle = math.acos(d)
            if angle < _EPSILON:
                continue

            len23 = float(np.linalg.norm(c23)) + _EPSILON
            len24 = float(np.linalg.norm(c24)) + _EPSILON
            q3 = (np.cross(p2, n2) + np.cross(n1, p2) * d) / len23
            q4 = (np.cross(p2, n1) + np.cross(n2, p2) * d) / len24
            q2 = (
                -(np.cross(p3, n2) + np.cross(n1, p3) * d) / len23
                - (np.cross(p4, n1) + np.cross(n2, p4) * d) / len24
            )
            q1 = -q2 - q3 - q4

            denom = xpbd_bend + (
                w1 * (q1 @ q1) + w2 * (q2 @ q2) + w3 * (q3 @ q3) + w4 * (q4 @ q4)
            )
            if denom < _EPSILON:
                continue
            lam = math.sqrt(1.0 - d * d) * (angle - expected_angle) / denom

            predicted[idx1] += w1 * lam * q1
            predicted[idx2] += w2 * lam * q2
            predicted[idx3] += w3 * lam * q3
            predicted[idx4] += w4 * lam * q4

    def _collide_sdf(self, target: np.ndarray) -> None:
        active = [c for c in self.colliders if c.enabled]
        if not active:
            return
        margin = self.params.collision_margin
        friction = self.params.friction
        for point, origin in zip(target, self.positions):
            for collider in active:
                correction = collider.compute_sdf(point.copy(), margin)
                point += correction
                point += compute_friction(correction, point - origin, friction)

    def _collide_particles(self, neighbors: list[list[int]]) -> None:
        predicted, positions, inv_mass = self.predicted, self.positions, self.inverse_mass
        expected = self.particle_diameter
        friction = self.params.friction
        for idx1, others in enumerate(neighbors):
            for idx2 in others:
                diff = predicted[idx1] - predicted[idx2]
                distance = math.sqrt(float(diff @ diff))
                w1, w2 = inv_mass[idx1], inv_mass[idx2]
                if distance < expected and w1 + w2 > 0:
                    gradient = diff / (distance + _EPSILON)
                    lam = (distance - expected) / (w1 + w2)
                    common = lam * gradient
                    predicted[idx1] -= w1 * common
                    predicted[idx2] += w2 * common
                    relative = (predicted[idx1] - positions[idx1]) - (predicted[idx2] - positions[idx2])
                    fr = compute_friction(common, relative, friction)
                    predicted[idx1] += w1 * fr
                    predicted[idx2] -= w2 * fr

    def _solve_attachment(self) -> None:
        for index, position in self.attachment_constraints:
            self.predicted[index] = position

    def _finalize(self, dt: float) -> None:
        damping = 1.0 - self.params.damping * dt
        self.velocities = (self.predicted - self.positions) / dt * damping
        self.positions = self.predicted.copy()