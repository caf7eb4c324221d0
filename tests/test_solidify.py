import numpy as np
import pytest

from latticecore.cell import define_cell
from latticecore.solidify import NodeFailure, solidify, validate_inputs
from latticecore.errors import LatticeInputError

from conftest import TOL, bcc_curves


V_STRUTS = [[[0, 0, 0], [1, 0, 0]], [[0, 0, 0], [0, 1, 0]]]


def test_single_tapered_strut():
    result = solidify([[[0, 0, 0], [0, 0, 1]]], start_radii=[0.1], end_radii=[0.3], sides=8, tol=TOL)

    assert result.ok
    assert result.failures == []
    mesh = result.mesh
    assert mesh.is_watertight
    assert len(mesh.faces) == 4 * 8
    # frustum volume pi*h/3*(r0^2 + r0*r1 + r1^2), slightly less for an octagon
    frustum = np.pi / 3 * (0.01 + 0.03 + 0.09)
    assert 0.8 * frustum < mesh.volume < frustum


def test_right_angle_pair():
    result = solidify(V_STRUTS, start_radii=[0.1, 0.1], sides=6, tol=TOL)

    assert result.ok
    assert result.failures == []
    assert result.mesh.is_watertight
    assert result.mesh.is_winding_consistent


def test_default_radius_is_used_without_radius_lists():
    thin = solidify(V_STRUTS, tol=TOL, default_radius=0.05)
    thick = solidify(V_STRUTS, tol=TOL, default_radius=0.1)

    assert thin.mesh.is_watertight and thick.mesh.is_watertight
    assert thick.mesh.volume > thin.mesh.volume


def test_solidified_bcc_cell_is_watertight():
    cell = define_cell(bcc_curves(), TOL).cell
    lines = cell.lines()

    result = solidify(lines, start_radii=[0.05] * len(lines), sides=6, tol=TOL)

    assert result.ok
    assert result.failures == []
    assert result.mesh.is_watertight
    assert result.mesh.volume > 0


def test_acute_junction_is_reported_and_capped():
    struts = [[[0, 0, 0], [1, 0, 0]], [[0, 0, 0], [1, 0.01, 0]]]
    result = solidify(struts, start_radii=[0.1, 0.1], sides=6, tol=TOL)

    assert result.ok
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert isinstance(failure, NodeFailure)
    assert failure.node_index == 0
    assert np.allclose(failure.point, (0, 0, 0))
    assert "sharp" in failure.reason
    # the rest of the mesh is still built
    assert result.mesh is not None
    assert len(result.mesh.faces) > 0


def test_failed_junction_leaves_other_junctions_meshed():
    struts = [
        [[0, 0, 0], [1, 0, 0]],
        [[0, 0, 0], [1, 0.01, 0]],    # too sharp to mesh
        [[5, 0, 0], [6, 0, 0]],
        [[5, 0, 0], [5, 1, 0]],       # right angle
    ]
    result = solidify(struts, start_radii=[0.1] * 4, sides=6, tol=TOL)

    assert result.ok
    assert [failure.node_index for failure in result.failures] == [0]

    # faces lying entirely next to the right-angle node belong to its hull
    near_joint = np.linalg.norm(result.mesh.vertices - [5, 0, 0], axis=1) < 0.2
    hull_faces = np.all(near_joint[result.mesh.faces], axis=1)
    # 12 ring vertices -> 20 hull triangles, minus 4 per hexagonal plate
    assert np.count_nonzero(hull_faces) == 2 * 6


def test_radii_follow_struts_through_cleaning():
    struts = [
        [[0, 0, 0], [0, 0, 1]],
        [[0, 0, 0], [0, 0, 0.01]],   # too short, removed
        [[5, 0, 0], [5, 0, 1]],
    ]
    result = solidify(struts, start_radii=[0.1, 0.2, 0.3], sides=6, tol=TOL)

    assert result.ok
    vertices = result.mesh.vertices
    near = vertices[vertices[:, 0] < 2.5]
    far = vertices[vertices[:, 0] > 2.5]
    assert np.isclose(np.max(np.linalg.norm(near[:, :2], axis=1)), 0.1)
    assert np.isclose(np.max(np.linalg.norm(far[:, :2] - [5, 0], axis=1)), 0.3)


def test_progress_is_reported():
    calls = []
    solidify(V_STRUTS, sides=6, tol=TOL, progress_callback=lambda message, percent: calls.append(percent))

    assert calls
    assert calls == sorted(calls)
    assert calls[-1] == 100


@pytest.mark.parametrize(
    "kwargs, fragment",
    [
        ({"start_radii": [0.1]}, "must match"),
        ({"start_radii": [0.1, 0.1], "end_radii": [0.1]}, "must match"),
        ({"start_radii": [0.1, -0.1]}, "positive"),
        ({"sides": 2}, "at least 3"),
    ],
)
def test_bad_input_returns_an_error(kwargs, fragment):
    result = solidify(V_STRUTS, tol=TOL, **kwargs)

    assert not result.ok
    assert result.mesh is None
    assert fragment in result.error


def test_non_linear_struts_are_rejected():
    result = solidify([[[0, 0, 0], [0.5, 0.5, 0], [1, 0, 0]]], tol=TOL)
    assert not result.ok
    assert "linear" in result.error


def test_malformed_input_returns_an_error():
    result = solidify([[[0, 0, 0], [1, 0]]], tol=TOL)
    assert not result.ok
    assert result.mesh is None
    assert "3D points" in result.error

    result = solidify(V_STRUTS, start_radii=["thick", 0.1], tol=TOL)
    assert not result.ok
    assert "numbers" in result.error


def test_network_with_only_short_struts():
    result = solidify([[[0, 0, 0], [0.01, 0, 0]]], tol=TOL)
    assert not result.ok
    assert result.mesh is None


def test_validate_inputs_fills_missing_radius_list():
    lines, start, end = validate_inputs(V_STRUTS, end_radii=[0.2, 0.3], tol=TOL)

    assert lines.shape == (2, 2, 3)
    assert list(start) == [0.2, 0.3]
    assert list(end) == [0.2, 0.3]

    with pytest.raises(LatticeInputError):
        validate_inputs(V_STRUTS, sides=4.5, tol=TOL)
