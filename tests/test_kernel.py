import math

import numpy as np
import pytest
from scipy.spatial import QhullError

from latticecore import kernel
from latticecore.tolerance import merge_digits, nearest_index


def test_crossing_segments_meet_at_midpoints():
    hit = kernel.line_line_intersect(
        np.array([0.0, 0.0, 0.0]), np.array([1.0, 1.0, 0.0]),
        np.array([0.0, 1.0, 0.0]), np.array([1.0, 0.0, 0.0]),
        1e-3,
    )
    assert hit is not None
    assert math.isclose(hit[0], 0.5)
    assert math.isclose(hit[1], 0.5)


def test_skew_and_parallel_segments_do_not_intersect():
    a0, a1 = np.array([0.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])
    # passes over segment A at height 0.5
    assert kernel.line_line_intersect(a0, a1, np.array([0.5, -1.0, 0.5]), np.array([0.5, 1.0, 0.5]), 1e-3) is None
    assert kernel.line_line_intersect(a0, a1, np.array([0.0, 1.0, 0.0]), np.array([1.0, 1.0, 0.0]), 1e-3) is None
    # lines would cross, but beyond the end of segment B
    assert kernel.line_line_intersect(a0, a1, np.array([0.5, 1.0, 0.0]), np.array([0.5, 2.0, 0.0]), 1e-3) is None


def test_touching_endpoint_reports_boundary_parameter():
    hit = kernel.line_line_intersect(
        np.array([0.0, 0.0, 0.0]), np.array([2.0, 0.0, 0.0]),
        np.array([1.0, 0.0, 0.0]), np.array([1.0, 1.0, 0.0]),
        1e-3,
    )
    assert hit is not None
    assert math.isclose(hit[0], 0.5)
    assert math.isclose(hit[1], 0.0, abs_tol=1e-12)


def test_convex_hull_keeps_point_indices_and_faces_outward():
    corners = np.array([[x, y, z] for x in (0, 1) for y in (0, 1) for z in (0, 1)], dtype=float)
    points = np.vstack([corners, [[0.5, 0.5, 0.5]]])

    mesh, hull_vertices = kernel.convex_hull(points)

    assert np.allclose(mesh.vertices, points)
    assert list(hull_vertices) == list(range(8))
    assert 8 not in mesh.faces
    assert len(mesh.faces) == 12
    assert mesh.is_watertight
    assert math.isclose(mesh.volume, 1.0, rel_tol=1e-9)


def test_convex_hull_rejects_flat_input():
    square = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float)
    with pytest.raises(QhullError):
        kernel.convex_hull(square)


@pytest.mark.parametrize("direction", [(0, 0, 1), (1, 0, 0), (1, 2, 3), (-1, -1, 0.2)])
def test_perpendicular_basis_is_right_handed(direction):
    axis = np.asarray(direction, dtype=float)
    u, v = kernel.perpendicular_basis(axis)
    assert math.isclose(np.linalg.norm(u), 1.0)
    assert math.isclose(np.linalg.norm(v), 1.0)
    assert abs(np.dot(u, axis)) < 1e-12
    assert abs(np.dot(v, axis)) < 1e-12
    assert np.allclose(np.cross(u, v), axis / np.linalg.norm(axis))


def test_tolerance_helpers():
    assert nearest_index(np.zeros((0, 3)), np.zeros(3)) == -1
    points = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
    assert nearest_index(points, np.array([0.9, 0.1, 0.0])) == 1
    assert merge_digits(1e-3) == 4
