# velvetcloth

Cloth simulation using position-based dynamics. A square cloth grid of
`(resolution + 1) ** 2` particles is simulated with stretch and bending
constraints, plane and sphere colliders (signed-distance corrections with
friction), particle-particle collision found through a spatial hash, and
pinned (attached) vertices.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## The `velvetcloth` command

```
velvetcloth --list
velvetcloth --scene 1 --frames 120 --dt 0.0166
```

The command runs one demo scene headlessly and prints the number of frames
simulated and, for each cloth, the minimum and maximum corner of its particle
positions.

Options:

- `--list`: print the index and name of every scene and exit.
- `--scene N`: index of the scene to run (default `0`).
- `--frames N`: number of physics frames to run (default `10`).
- `--dt T`: length of one frame in seconds (default `1/60`).

The scenes, in index order: `Cloth / Attach`, `Cloth / SDF Collision`,
`Cloth / Self Collision`, `Cloth / Friction`, `Cloth / Multiple Object`,
`Cloth / High Resolution`, `Cloth / Swirl`, `Cloth / Hang`,
`Cloth / Hang_Horizontal`. The high-resolution scene uses a 200 x 200 cloth
and is slow.

## Using the library

```python
from velvetcloth.collider import Collider
from velvetcloth.common import ColliderType
from velvetcloth.scenes import World

world = World()
world.add_collider(Collider(ColliderType.PLANE))
cloth = world.add_cloth(16, (0.0, 2.5, 0.0), (1.0, 1.0, 1.0), (0.0, 0.0, 0.0), [0, 16])
for _ in range(60):
    world.step(1 / 60)
print(cloth.positions.min(axis=0))
```

Modules:

- `velvetcloth.common`: `SimParams` (substeps, iterations, gravity, bend
  compliance, damping, friction, collision margin and more), `GameState`,
  `Callback` (an ordered list of functions with `register`, `invoke`, `clear`)
  and `ColliderType` (`SPHERE`, `PLANE`, `CUBE`).
- `velvetcloth.geometry`: `normalize`, `rotate_with_degree`, `trs_matrix`,
  `look_at` and `perspective`, using 4x4 matrices that act on column vectors.
- `velvetcloth.camera`: `Camera` with `front()`, `up()`, `view()` and
  `projection(width, height)`.
- `velvetcloth.collider`: `Collider`, with `compute_sdf(position, margin)`
  returning the correction that pushes a point out of a plane (y = 0) or a
  sphere (radius `scale[0]`), and tracking its own velocity in
  `fixed_update(dt)`.
- `velvetcloth.clothmesh`: `ClothMesh` and the builders
  `generate_cloth_mesh`, `generate_cloth_mesh_with_offsets` and
  `generate_irregular_cloth_mesh`.
- `velvetcloth.solver`: `ClothSolver` (`set_attached_indices`, `initialize`,
  `simulate(dt)`, `normals()`), plus `compute_friction` and
  `compute_normals`.
- `velvetcloth.picking`: `Ray`, `RaycastCollision`, `find_closest_vertex`,
  `mouse_ray` and `ClothGrabber` for grabbing, dragging and releasing a
  particle with a ray.
- `velvetcloth.scenes`: `World` (`add_collider`, `add_cloth`, `step`),
  the abstract `Scene` with `modify_parameter`, `enter`, `exit`, and the
  scene classes returned by `default_scenes()`.

## What it does not do

- There is no window, rendering, shading, shadows or GUI: the package only
  computes particle positions and normals. Cameras and mouse rays are plain
  matrix computations for callers that draw the cloth themselves.
- There is no live mouse or keyboard input; `ClothGrabber` must be driven
  with rays by the caller.
- `CUBE` colliders produce no correction; only planes and spheres push
  particles.
- The `offset_index`, `offset`, `init_v` and several other `SimParams` fields
  are stored and can be changed by scenes, but the solver does not read them.