import math

import numpy as np
import pytest

from velvetcloth.geometry import (
    look_at,
    normalize,
    perspective,
    rotate_with_degree,
    trs_matrix,
)


def _apply(matrix, point):
    v = matrix @ np.append(np.asarray(point, dtype=float), 1.0)
    return v[:3] / v[3]


def test_normalize_unit_length_and_direction():
    v = normalize([3.0, 4.0, 0.0])
    assert np.linalg.norm(v) == pytest.approx(1.0)
    assert np.allclose(np.cross(v, [3.0, 4.0, 0.0]), 0.0)


def test_normalize_zero_gives_nan():
    result = normalize([0.0, 0.0, 0.0])
    assert np.isnan(result).tolist() == [True, True, True]


def test_rotate_zero_is_identity():
    assert np.allclose(rotate_with_degree([1, 2, 3], [0, 0, 0]), [1, 2, 3])


@pytest.mark.parametrize("rotation", [[90, 0, 0], [0, 45, 0], [10, 20, 30]])
def test_rotate_preserves_length(rotation):
    v = np.array([1.0, -2.0, 0.5])
    assert np.linalg.norm(rotate_with_degree(v, rotation)) == pytest.approx(np.linalg.norm(v))


def test_rotate_full_turn_returns():
    assert np.allclose(rotate_with_degree([1, 2, 3], [360, 0, 0]), [1, 2, 3])


def test_rotate_bad_shape():
    with pytest.raises(ValueError):
        rotate_with_degree([1, 2], [0, 0, 0])


def test_trs_translation_only():
    m = trs_matrix([1, 2, 3], [0, 0, 0], [1, 1, 1])
    assert np.allclose(_apply(m, [0, 0, 0]), [1, 2, 3])


def test_trs_scale_then_translate():
    m = trs_matrix([1, 0, 0], [0, 0, 0], [2, 3, 4])
    assert np.allclose(_apply(m, [1, 1, 1]), [3, 3, 4])


def test_look_at_maps_eye_to_origin_and_center_forward():
    eye = [1.0, 2.0, 3.0]
    center = [0.0, 0.0, 0.0]
    view = look_at(eye, center, [0, 1, 0])
    assert np.allclose(_apply(view, eye), 0.0)
    c = _apply(view, center)
    assert np.allclose(c[:2], 0.0)
    assert c[2] == pytest.approx(-math.sqrt(14))


def test_look_at_is_rigid():
    view = look_at([0, 1, 5], [0, 0, 0], [0, 1, 0])
    r = view[:3, :3]
    assert np.allclose(r @ r.T, np.eye(3))


def test_perspective_near_far_map_to_ndc_bounds():
    p = perspective(math.radians(45), 1.5, 0.5, 50.0)
    assert _apply(p, [0, 0, -0.5])[2] == pytest.approx(-1.0)
    assert _apply(p, [0, 0, -50.0])[2] == pytest.approx(1.0)


def test_perspective_aspect_ratio():
    p = perspective(math.radians(60), 2.0, 0.1, 10.0)
    assert p[1, 1] / p[0, 0] == pytest.approx(2.0)


def test_perspective_rejects_zero_aspect():
    with pytest.raises(ValueError):
        perspective(1.0, 0.0, 0.1, 10.0)