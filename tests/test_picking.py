import numpy as np
import pytest

from velvetcloth.camera import Camera
from velvetcloth.clothmesh import generate_cloth_mesh
from velvetcloth.picking import ClothGrabber, Ray, RaycastCollision, find_closest_vertex, mouse_ray
from velvetcloth.solver import ClothSolver

DT = 1.0 / 60.0


def make_solver(resolution=2):
    mesh = generate_cloth_mesh(resolution)
    solver = ClothSolver(resolution)
    solver.initialize(mesh.vertices, mesh.indices, np.eye(4), [])
    return solver


def ray_at(point):
    point = np.asarray(point, dtype=float)
    return Ray(point + np.array([0.0, 0.0, 5.0]), np.array([0.0, 0.0, -1.0]))


def test_find_closest_vertex_picks_nearest():
    positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.05, 0.0, -2.0]])
    ray = Ray((1.05, 0.0, 3.0), (0.0, 0.0, -1.0))
    hit = find_closest_vertex(positions, ray)
    assert hit.collide
    assert hit.object_index == 2
    assert hit.distance_to_origin == pytest.approx(5.0)


def test_find_closest_vertex_misses_far_points():
    positions = np.array([[5.0, 5.0, 0.0]])
    hit = find_closest_vertex(positions, Ray((0.0, 0.0, 1.0), (0.0, 0.0, -1.0)))
    assert not hit.collide
    assert hit.object_index == 0


def test_find_closest_vertex_empty():
    hit = find_closest_vertex(np.zeros((0, 3)), Ray((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)))
    assert hit == RaycastCollision(False, -1, 0.0)


def test_mouse_ray_identity_center():
    ray = mouse_ray((400.0, 300.0), (800.0, 600.0), np.eye(4))
    assert np.allclose(ray.origin, 0.0)
    assert np.allclose(ray.direction, [0.0, 0.0, 1.0])


def test_mouse_ray_through_camera_center_follows_front():
    camera = Camera(position=(0.0, 1.0, 3.0), rotation=(10.0, 20.0, 0.0))
    vp = camera.projection(800, 600) @ camera.view()
    ray = mouse_ray((400.0, 300.0), (800.0, 600.0), vp)
    assert np.allclose(ray.direction, camera.front(), atol=1e-6)
    assert np.linalg.norm(ray.direction) == pytest.approx(1.0)


def test_mouse_ray_left_edge_points_left():
    camera = Camera()
    vp = camera.projection(800, 600) @ camera.view()
    ray = mouse_ray((0.0, 300.0), (800.0, 600.0), vp)
    assert ray.direction[0] < 0


def test_mouse_ray_invalid_size():
    with pytest.raises(ValueError):
        mouse_ray((0.0, 0.0), (0.0, 600.0), np.eye(4))


def test_grab_pins_and_release_restores():
    solver = make_solver()
    grabber = ClothGrabber(solver)
    hit = grabber.grab(ray_at(solver.positions[4]))
    assert hit.collide and hit.object_index == 4
    assert grabber.is_grabbing
    assert solver.inverse_mass[4] == 0.0
    grabber.release()
    assert not grabber.is_grabbing
    assert solver.inverse_mass[4] == 1.0


def test_grab_miss_changes_nothing():
    solver = make_solver()
    grabber = ClothGrabber(solver)
    hit = grabber.grab(ray_at((10.0, 10.0, 0.0)))
    assert not hit.collide
    assert not grabber.is_grabbing
    assert np.all(solver.inverse_mass == 1.0)


def test_update_drags_towards_ray():
    solver = make_solver()
    grabber = ClothGrabber(solver)
    grabber.grab(ray_at(solver.positions[4]))
    before = solver.positions[4].copy()
    velocity_before = solver.velocities[4].copy()
    moved = Ray(before + np.array([0.5, 0.0, 5.0]), np.array([0.0, 0.0, -1.0]))
    grabber.update(moved, DT)
    after = solver.positions[4]
    goal = before + np.array([0.5, 0.0, 0.0])
    assert np.linalg.norm(after - goal) < np.linalg.norm(before - goal)
    assert np.allclose(solver.velocities[4] - velocity_before, (after - before) / DT)


def test_update_without_grab_is_noop():
    solver = make_solver()
    grabber = ClothGrabber(solver)
    before = solver.positions.copy()
    grabber.update(ray_at((0.0, 0.0, 0.0)), DT)
    assert np.array_equal(solver.positions, before)