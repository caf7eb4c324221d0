import itertools

import numpy as np
import pytest

from latticecore.errors import LatticeInputError
from latticecore.topology import clean_network, curves_to_lines, extract_topology, fix_intersections

from conftest import TOL, bcc_curves


def test_curves_to_lines_accepts_collinear_polylines():
    lines = curves_to_lines([[[0, 0, 0], [0.5, 0.5, 0.5], [1, 1, 1]], [[0, 0, 0], [1, 0, 0]]], TOL)
    assert lines.shape == (2, 2, 3)
    assert np.allclose(lines[0], [[0, 0, 0], [1, 1, 1]])


def test_curves_to_lines_rejects_bad_input():
    with pytest.raises(LatticeInputError, match="linear"):
        curves_to_lines([[[0, 0, 0], [0.5, 0.2, 0], [1, 0, 0]]], TOL)
    with pytest.raises(LatticeInputError):
        curves_to_lines([], TOL)
    with pytest.raises(LatticeInputError):
        curves_to_lines([[[0, 0, 0]]], TOL)


def test_crossing_struts_share_a_node():
    lines = curves_to_lines([[[0, 0, 0], [1, 1, 0]], [[0, 1, 0], [1, 0, 0]]], TOL)

    resolved = fix_intersections(lines, TOL)
    assert resolved.shape == (4, 2, 3)

    cell = extract_topology(resolved, TOL)
    assert len(cell.nodes) == 5
    assert len(cell.struts) == 4

    center = [i for i, node in enumerate(cell.nodes) if np.allclose(node, [0.5, 0.5, 0.0])]
    assert len(center) == 1
    assert all(center[0] in strut for strut in cell.struts)


def test_fix_intersections_is_idempotent():
    lines = curves_to_lines(bcc_curves(), TOL)
    once = fix_intersections(lines, TOL)
    twice = fix_intersections(once, TOL)

    # 12 edges untouched, 4 diagonals split at the centre
    assert len(once) == 12 + 8
    assert np.allclose(once, twice)


def test_fix_intersections_does_not_mutate_input():
    lines = curves_to_lines([[[0, 0, 0], [1, 1, 0]], [[0, 1, 0], [1, 0, 0]]], TOL)
    before = lines.copy()
    fix_intersections(lines, TOL)
    assert np.array_equal(lines, before)


def test_t_junction_splits_only_the_crossed_strut():
    lines = curves_to_lines([[[0, 0, 0], [2, 0, 0]], [[1, 0, 0], [1, 1, 0]]], TOL)
    resolved = fix_intersections(lines, TOL)

    assert len(resolved) == 3
    # the untouched strut keeps its place at the front
    assert np.allclose(resolved[0], [[1, 0, 0], [1, 1, 0]])
    assert np.allclose(resolved[1], [[0, 0, 0], [1, 0, 0]])
    assert np.allclose(resolved[2], [[1, 0, 0], [2, 0, 0]])


def test_extracted_nodes_are_unique_within_tolerance():
    jitter = TOL / 4
    curves = [
        [[0, 0, 0], [1, 0, 0]],
        [[1 + jitter, 0, 0], [1, 1, 0]],
        [[1, 1 - jitter, jitter], [0, 1, 0]],
        [[0, 1, 0], [jitter, 0, 0]],
        [[0, 0, 0], [0.5, 0.5, 1]],
    ]
    cell = extract_topology(curves_to_lines(curves, TOL), TOL)

    assert len(cell.nodes) == 5
    for i, j in itertools.combinations(range(len(cell.nodes)), 2):
        assert np.linalg.norm(cell.nodes[i] - cell.nodes[j]) >= TOL
    for i, j in cell.struts:
        assert 0 <= i < len(cell.nodes) and 0 <= j < len(cell.nodes)


def test_duplicate_struts_collapse_to_one():
    curves = [
        [[0, 0, 0], [1, 0, 0]],
        [[0, 0, TOL / 2], [1, 0, 0]],
        [[1, 0, 0], [0, 0, 0]],
    ]
    cell = extract_topology(curves_to_lines(curves, TOL), TOL)
    assert len(cell.struts) == 1
    assert len(cell.nodes) == 2


def test_clean_network_drops_short_and_duplicate_struts():
    curves = [
        [[0, 0, 0], [1, 0, 0]],
        [[0, 0, 0], [0.05, 0, 0]],    # shorter than 100 * tol
        [[1, 0, 0], [0, 0, 0]],       # duplicate of the first
        [[1, 0, 0], [1, 1, 0]],
    ]
    nodes, struts, kept = clean_network(curves_to_lines(curves, TOL), TOL)

    assert kept == [0, 3]
    assert len(struts) == 2
    assert len(nodes) == 3
    # orientation is preserved
    assert np.allclose(nodes[struts[1][0]], [1, 0, 0])
    assert np.allclose(nodes[struts[1][1]], [1, 1, 0])
