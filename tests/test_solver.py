import numpy as np
import pytest

from velvetcloth.clothmesh import generate_cloth_mesh
from velvetcloth.collider import Collider
from velvetcloth.common import ColliderType, SimParams
from velvetcloth.geometry import trs_matrix
from velvetcloth.solver import ClothSolver, compute_friction, compute_normals

DT = 1.0 / 60.0


def make_solver(resolution=2, matrix=None, colliders=(), params=None, attached=()):
    mesh = generate_cloth_mesh(resolution)
    solver = ClothSolver(resolution, params)
    solver.set_attached_indices(attached)
    solver.initialize(mesh.vertices, mesh.indices, np.eye(4) if matrix is None else matrix, colliders)
    return solver


def horizontal(height):
    return trs_matrix((0.0, height, 0.0), (90.0, 0.0, 0.0), (1.0, 1.0, 1.0))


def test_friction_zero_without_correction():
    result = compute_friction(np.zeros(3), np.array([1.0, 0.0, 0.0]), 0.5)
    assert np.allclose(result, 0.0)


def test_friction_zero_with_zero_coefficient():
    result = compute_friction(np.array([0.0, 1.0, 0.0]), np.array([1.0, 0.0, 0.0]), 0.0)
    assert np.allclose(result, 0.0)


def test_friction_cancels_small_tangential_motion():
    rel = np.array([0.01, 0.3, 0.0])
    result = compute_friction(np.array([0.0, 1.0, 0.0]), rel, 1.0)
    assert np.allclose(result, [-0.01, 0.0, 0.0])


def test_friction_is_bounded_and_tangential():
    correction = np.array([0.0, 0.1, 0.0])
    result = compute_friction(correction, np.array([3.0, 1.0, -2.0]), 0.2)
    assert abs(np.dot(result, correction)) < 1e-12
    assert np.linalg.norm(result) <= 0.2 * 0.1 + 1e-12


def test_normals_of_flat_mesh_point_along_z():
    mesh = generate_cloth_mesh(3)
    normals = compute_normals(mesh.vertices, mesh.indices)
    assert np.allclose(normals, [0.0, 0.0, 1.0])


def test_stretch_constraints_rest_length_matches_positions():
    solver = make_solver(3)
    for a, b, rest in solver.stretch_constraints:
        assert rest == pytest.approx(np.linalg.norm(solver.positions[a] - solver.positions[b]))


def test_constraint_counts_for_single_cell():
    solver = make_solver(1)
    assert len(solver.stretch_constraints) == 6
    assert len(solver.bending_constraints) == 1


def test_particle_diameter_is_grid_spacing():
    mesh = generate_cloth_mesh(4)
    solver = make_solver(4)
    assert solver.particle_diameter == pytest.approx(np.linalg.norm(mesh.vertices[0] - mesh.vertices[5]))


def test_model_matrix_applied_to_vertices():
    solver = make_solver(2, matrix=horizontal(0.5))
    assert np.allclose(solver.positions[:, 1], 0.5)


def test_attached_vertices_stay_in_place():
    solver = make_solver(2, attached=[0, 2])
    start = solver.positions[[0, 2]].copy()
    for _ in range(5):
        solver.simulate(DT)
    assert np.allclose(solver.positions[[0, 2]], start)
    assert solver.inverse_mass[0] == 0.0
    assert solver.inverse_mass[1] == 1.0


def test_free_cloth_falls():
    solver = make_solver(2)
    start = solver.positions[:, 1].mean()
    for _ in range(3):
        solver.simulate(DT)
    assert solver.positions[:, 1].mean() < start
    assert solver.velocities[:, 1].mean() < 0


def test_plane_keeps_cloth_above_margin():
    params = SimParams()
    solver = make_solver(3, matrix=horizontal(0.5), colliders=[Collider(ColliderType.PLANE)], params=params)
    for _ in range(40):
        solver.simulate(DT)
    assert solver.positions[:, 1].min() >= params.collision_margin - 1e-9
    assert solver.positions[:, 1].max() < 0.5


def test_sphere_pushes_particle_out():
    params = SimParams(gravity=np.zeros(3))
    sphere = Collider(ColliderType.SPHERE, position=(0.0, 0.4, -1.0), scale=(0.3, 0.3, 0.3))
    solver = make_solver(2, matrix=horizontal(0.5), colliders=[sphere], params=params)
    solver.simulate(DT)
    radius = 0.3 + params.collision_margin
    distances = np.linalg.norm(solver.positions - sphere.position, axis=1)
    assert distances.min() >= radius - 1e-9


def test_disabled_collider_is_ignored():
    params = SimParams(gravity=np.zeros(3))
    sphere = Collider(ColliderType.SPHERE, position=(0.0, 0.4, -1.0), scale=(0.3, 0.3, 0.3), enabled=False)
    solver = make_solver(2, matrix=horizontal(0.5), colliders=[sphere], params=params)
    center = solver.positions[4].copy()
    solver.simulate(DT)
    assert np.linalg.norm(solver.positions[4] - center) < 1e-3


def test_normals_are_unit_after_simulation():
    solver = make_solver(2)
    solver.simulate(DT)
    assert np.allclose(np.linalg.norm(solver.normals(), axis=1), 1.0)


def test_simulate_before_initialize_raises():
    with pytest.raises(RuntimeError):
        ClothSolver(2).simulate(DT)


def test_normals_before_initialize_raises():
    with pytest.raises(RuntimeError):
        ClothSolver(2).normals()


def test_non_positive_time_step_raises():
    solver = make_solver(2)
    with pytest.raises(ValueError):
        solver.simulate(0.0)


def test_wrong_vertex_count_raises():
    mesh = generate_cloth_mesh(2)
    with pytest.raises(ValueError):
        ClothSolver(3).initialize(mesh.vertices, mesh.indices, np.eye(4), [])


def test_bad_resolution_raises():
    with pytest.raises(ValueError):
        ClothSolver(0)


def test_attached_index_out_of_range_raises():
    with pytest.raises(IndexError):
        make_solver(2, attached=[100])