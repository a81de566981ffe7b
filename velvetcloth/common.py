"""Simulation parameters, game state flags, callbacks and collider kinds."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np


def _vec(*values: float) -> np.ndarray:
    return np.array(values, dtype=float)


@dataclass
class SimParams:
    """Tunable parameters of the cloth solver."""

    num_substeps: int = 2
    num_iterations: int = 4
    max_num_neighbors: int = 64
    max_speed: float = 50.0

    # forces
    gravity: np.ndarray = field(default_factory=lambda: _vec(0.0, -9.8, 0.0))
    bend_compliance: float = 10.0
    damping: float = 0.25
    relaxation_factor: float = 0.3
    long_range_stretchiness: float = 1.2

    # collision
    collision_margin: float = 0.06
    friction: float = 0.1
    enable_self_collision: bool = True
    interleaved_hash: int = 3

    # runtime info
    num_particles: int = 0
    particle_diameter: float = 0.0
    delta_time: float = 0.0

    # misc
    particle_diameter_scalar: float = 1.5
    hash_cell_size_scalar: float = 1.5

    # Jacobi
    under_relax_coeff: float = 0.9

    # initial state
    init_v: np.ndarray = field(default_factory=lambda: _vec(0.0, 0.0, 0.0))
    offset_index: int = 0
    offset: np.ndarray = field(default_factory=lambda: _vec(0.0, 0.0, 0.0))


@dataclass
class GameState:
    """Flags that control the running simulation and its display."""

    step: bool = False
    pause: bool = False
    render_wireframe: bool = False
    draw_particles: bool = False
    hide_gui: bool = False
    detail_timer: bool = False


class Callback:
    """An ordered list of functions that are called together."""

    def __init__(self) -> None:
        self._funcs: list[Callable[..., Any]] = []

    def register(self, func: Callable[..., Any]) -> None:
        self._funcs.append(func)

    def invoke(self, *args: Any) -> None:
        for func in list(self._funcs):
            func(*args)

    def clear(self) -> None:
        self._funcs.clear()

    def __len__(self) -> int:
        return len(self._funcs)


class ColliderType(enum.Enum):
    SPHERE = "sphere"
    PLANE = "plane"
    CUBE = "cube"