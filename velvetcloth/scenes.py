"""Demo scenes that populate a headless simulation world with cloth and obstacles."""

from __future__ import annotations

import abc
import argparse
import math
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import numpy as np

from velvetcloth.camera import Camera
from velvetcloth.clothmesh import ClothMesh, generate_cloth_mesh
from velvetcloth.collider import Collider
from velvetcloth.common import Callback, ColliderType, SimParams
from velvetcloth.geometry import trs_matrix
from velvetcloth.solver import ClothSolver


@dataclass
class _PendingCloth:
    solver: ClothSolver
    mesh: ClothMesh
    model_matrix: np.ndarray


class World:
    """Holds colliders and cloths, and advances them in fixed physics steps."""

    def __init__(self, params: SimParams | None = None) -> None:
        self.params = params if params is not None else SimParams()
        self.colliders: list[Collider] = []
        self.cloths: list[ClothSolver] = []
        self.camera: Camera | None = None
        self.animation_update = Callback()
        self.fixed_delta_time = 0.0
        self.physics_frame_count = 0
        self._pending: list[_PendingCloth] = []
        self._started = False

    def add_collider(self, collider: Collider) -> Collider:
        self.colliders.append(collider)
        if self._started:
            collider.start()
        return collider

    def add_cloth(
        self,
        resolution: int = 16,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        scale: Sequence[float] = (1.0, 1.0, 1.0),
        rotation: Sequence[float] = (0.0, 0.0, 0.0),
        attached: Iterable[int] = (),
    ) -> ClothSolver:
        """Create a cloth; it is placed into the world on the first step."""
        mesh = generate_cloth_mesh(resolution)
        solver = ClothSolver(resolution, self.params)
        solver.set_attached_indices(attached)
        self.cloths.append(solver)
        self._pending.append(_PendingCloth(solver, mesh, trs_matrix(position, rotation, scale)))
        return solver

    def _start(self) -> None:
        if not self._started:
            for collider in self.colliders:
                collider.start()
            self._started = True
        pending, self._pending = self._pending, []
        for entry in pending:
            entry.solver.initialize(
                entry.mesh.vertices, entry.mesh.indices, entry.model_matrix, self.colliders
            )

    def step(self, dt: float) -> None:
        """Run one physics frame of length dt."""
        if dt <= 0:
            raise ValueError("time step must be positive")
        self._start()
        self.fixed_delta_time = dt
        self.animation_update.invoke()
        for collider in self.colliders:
            collider.fixed_update(dt)
        for cloth in self.cloths:
            cloth.simulate(dt)
        self.physics_frame_count += 1

    @property
    def time(self) -> float:
        return self.fixed_delta_time * self.physics_frame_count


def _corners(resolution: int) -> list[int]:
    return [
        0,
        resolution,
        (resolution + 1) * (resolution + 1) - 1,
        (resolution + 1) * resolution,
    ]


class Scene(abc.ABC):
    """A named setup of a world, with parameter changes undone on exit."""

    name = "BaseScene"

    def __init__(self) -> None:
        self.on_enter = Callback()
        self.on_exit = Callback()

    def modify_parameter(self, params: Any, name: str, value: Any) -> None:
        """On enter, set params.<name> to value; on exit, restore the previous value."""
        if not hasattr(params, name):
            raise AttributeError(f"unknown parameter {name!r}")

        def apply() -> None:
            previous = getattr(params, name)
            setattr(params, name, value)
            self.on_exit.register(lambda: setattr(params, name, previous))

        self.on_enter.register(apply)

    def enter(self) -> None:
        self.on_enter.invoke()

    def exit(self) -> None:
        self.on_exit.invoke()

    def clear_callbacks(self) -> None:
        self.on_enter.clear()
        self.on_exit.clear()

    @abc.abstractmethod
    def populate(self, world: World) -> None:
        """Add this scene's objects to the world."""

    def _spawn_camera(self, world: World) -> Camera:
        world.camera = Camera(position=(0.35, 3.3, 7.2), rotation=(-21.0, 2.25, 0.0))
        return world.camera

    def _spawn_plane(self, world: World) -> Collider:
        return world.add_collider(Collider(ColliderType.PLANE))

    def _spawn_sphere(self, world: World, position, radius: float) -> Collider:
        return world.add_collider(
            Collider(ColliderType.SPHERE, position=position, scale=(radius, radius, radius))
        )

    def _spawn_cube(self, world: World, position, size: float) -> Collider:
        return world.add_collider(
            Collider(ColliderType.CUBE, position=position, scale=(size, size, size))
        )

    def _spawn_basics(self, world: World) -> None:
        self._spawn_camera(world)
        self._spawn_plane(world)


class ClothAttachScene(Scene):
    name = "Cloth / Attach"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        radius = 0.5
        self._spawn_sphere(world, (0.0, radius, 0.0), radius)
        resolution = 40
        world.add_cloth(resolution, (0.0, 1.5, 1.0), (1.0, 1.0, 1.0), (90.0, 0.0, 0.0), _corners(resolution))


class ClothCollisionScene(Scene):
    name = "Cloth / SDF Collision"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        radius = 0.6
        sphere = self._spawn_sphere(world, (0.0, radius, -1.0), radius)

        def animate() -> None:
            t = world.time
            sphere.position = np.array([0.0, radius, -math.cos(t * 2)])

        world.animation_update.register(animate)
        resolution = 16
        world.add_cloth(resolution, (0.0, 2.5, 0.0), (1.0, 1.0, 1.0), (0.0, 0.0, 0.0), [0, resolution])


class ClothSelfCollisionScene(Scene):
    name = "Cloth / Self Collision"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        self.modify_parameter(world.params, "num_substeps", 3)
        self.modify_parameter(world.params, "num_substeps", 8)
        self.modify_parameter(world.params, "friction", 0.3)
        world.add_cloth(60, (0.0, 1.5, 1.0), (1.0, 1.0, 1.0), (-15.0, 10.0, 10.0))


class ClothFrictionScene(Scene):
    name = "Cloth / Friction"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        self.modify_parameter(world.params, "friction", 0.6)
        self.modify_parameter(world.params, "num_substeps", 5)
        self.modify_parameter(world.params, "num_iterations", 5)
        radius = 0.5
        sphere = self._spawn_sphere(world, (0.0, radius, 0.0), radius)

        def animate() -> None:
            t = world.physics_frame_count * world.fixed_delta_time - 0.5
            if t > 0:
                sphere.position = np.array([math.sin(t), radius, 0.0])
            spin = -t * 180 if int(t) % 4 > 1 else t * 180
            sphere.rotation = np.array([0.0, spin, 0.0])

        world.animation_update.register(animate)
        world.add_cloth(64, (0.0, 1.5, 1.0), (1.0, 1.0, 1.0), (90.0, 0.0, 0.0))


class ClothMultipleScene(Scene):
    name = "Cloth / Multiple Object"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        self.modify_parameter(world.params, "friction", 0.6)
        self.modify_parameter(world.params, "num_substeps", 5)
        self.modify_parameter(world.params, "num_iterations", 5)
        size = 1.0
        self._spawn_cube(world, (0.0, 0.5 * size, 0.0), size)
        for height in (1.5, 1.8, 2.1):
            world.add_cloth(64, (0.0, height, 1.0), (1.0, 1.0, 1.0), (90.0, 0.0, 0.0))


class ClothHDScene(Scene):
    name = "Cloth / High Resolution"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        self.modify_parameter(world.params, "num_substeps", 10)
        self.modify_parameter(world.params, "num_iterations", 10)
        radius = 0.6
        self._spawn_sphere(world, (0.0, radius, 0.0), radius)
        world.add_cloth(200, (0.0, 1.5, 1.0), (1.0, 1.0, 1.0), (90.0, 0.0, 0.0))


class ClothSwirlScene(Scene):
    name = "Cloth / Swirl"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        radius = 0.1
        sphere = self._spawn_sphere(world, (0.0, radius, 0.0), radius)
        sphere.enabled = False
        cloth = world.add_cloth(36, (0.0, 1.5, 1.0), (1.0, 1.0, 1.0), (90.0, 0.0, 0.0), [0])

        def animate() -> None:
            t = world.time * 3
            pos = np.array([math.sin(t), math.cos(t) + 2, 0.0])
            index, _ = cloth.attachment_constraints[0]
            cloth.attachment_constraints[0] = (index, pos.copy())
            sphere.position = pos

        world.animation_update.register(animate)


class ClothHangScene(Scene):
    name = "Cloth / Hang"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        resolution = 64
        world.add_cloth(resolution, (0.0, 2.5, 0.0), (1.0, 1.0, 1.0), (0.0, 0.0, 0.0), [0, resolution])


class ClothHangHorizontalScene(Scene):
    name = "Cloth / Hang_Horizontal"

    def populate(self, world: World) -> None:
        self._spawn_basics(world)
        self.modify_parameter(world.params, "gravity", np.zeros(3))
        resolution = 64
        self.modify_parameter(
            world.params,
            "offset_index",
            (resolution // 2) * (resolution + 1) + resolution // 2,
        )
        self.modify_parameter(world.params, "offset", np.array([0.0, 0.0, 1.0]))
        world.add_cloth(
            resolution, (0.0, 1.5, 1.0), (1.0, 1.0, 1.0), (90.0, 0.0, 0.0), _corners(resolution)
        )


def default_scenes() -> list[Scene]:
    """The scenes offered by the demo, in menu order."""
    return [
        ClothAttachScene(),
        ClothCollisionScene(),
        ClothSelfCollisionScene(),
        ClothFrictionScene(),
        ClothMultipleScene(),
        ClothHDScene(),
        ClothSwirlScene(),
        ClothHangScene(),
        ClothHangHorizontalScene(),
    ]


def main(argv: Sequence[str] | None = None) -> int:
    """Run a scene headlessly for a number of frames and report cloth extents."""
    parser = argparse.ArgumentParser(prog="velvetcloth", description="Headless cloth simulation.")
    parser.add_argument("--list", action="store_true", help="list the available scenes")
    parser.add_argument("--scene", type=int, default=0, help="index of the scene to run")
    parser.add_argument("--frames", type=int, default=10, help="number of physics frames")
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="length of one frame")
    args = parser.parse_args(argv)

    scenes = default_scenes()
    if args.list:
        for index, scene in enumerate(scenes):
            print(f"{index}: {scene.name}")
        return 0
    if not 0 <= args.scene < len(scenes):
        parser.error(f"scene must be between 0 and {len(scenes) - 1}")
    if args.frames < 0:
        parser.error("frames must not be negative")
    if args.dt <= 0:
        parser.error("dt must be positive")

    scene = scenes[args.scene]
    world = World()
    scene.populate(world)
    scene.enter()
    try:
        for _ in range(args.frames):
            world.step(args.dt)
        print(f"{scene.name}: {world.physics_frame_count} frames")
        for index, cloth in enumerate(world.cloths):
            if len(cloth.positions):
                low = cloth.positions.min(axis=0)
                high = cloth.positions.max(axis=0)
                print(f"cloth {index}: min {low.round(3).tolist()} max {high.round(3).tolist()}")
    finally:
        scene.exit()
    return 0