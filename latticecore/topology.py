"""
Lattice Core - Strut Topology
Line geometry -> deduplicated node list + strut adjacency list

Pipeline pieces:
- curves_to_lines: input curves (point sequences) -> straight lines
- fix_intersections: split struts wherever they cross inside their span
- extract_topology: unique nodes + node-index pairs (UnitCell)
- clean_network: same dedup for solidification, keeping input indices
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .errors import LatticeInputError
from .kernel import line_line_intersect
from .tolerance import MIN_LENGTH_FACTOR, nearest_index

MAX_INTERSECTION_PASSES = 100


@dataclass(frozen=True)
class UnitCell:
    """
    Periodic unit cell topology.

    nodes:      (n, 3) node coordinates, unique within tolerance
    struts:     node index pairs
    node_paths: per node (far_x, far_y, far_z, mirror_index); filled by
                cell.format_topology, empty before that
    """
    nodes: np.ndarray
    struts: List[Tuple[int, int]] = field(default_factory=list)
    node_paths: List[Tuple[int, int, int, int]] = field(default_factory=list)

    def lines(self) -> np.ndarray:
        """Strut geometry as an (m, 2, 3) array of endpoints."""
        if not self.struts:
            return np.zeros((0, 2, 3))
        return self.nodes[np.asarray(self.struts)]


# =============================================================================
# Input conversion
# =============================================================================

def curves_to_lines(curves: Sequence[Sequence[Sequence[float]]], tol: float) -> np.ndarray:
    """
    Convert input curves to straight lines.

    A curve is a sequence of 3D points. Curves with more than two points are
    accepted only when every point lies on the line through the first and
    last point (within tol).

    Args:
        curves: list of point sequences
        tol: distance tolerance

    Returns:
        (n, 2, 3) array of line endpoints

    Raises:
        LatticeInputError: empty input, a curve with < 2 points, or a
            non-linear curve
    """
    if curves is None or len(curves) == 0:
        raise LatticeInputError("No struts given.")

    lines = []
    for i, curve in enumerate(curves):
        try:
            points = np.asarray(curve, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise LatticeInputError(f"Strut {i} needs at least two 3D points.") from e
        if points.ndim != 2 or points.shape[1] != 3 or len(points) < 2:
            raise LatticeInputError(f"Strut {i} needs at least two 3D points.")

        start, end = points[0], points[-1]
        axis = end - start
        length = np.linalg.norm(axis)

        if len(points) > 2:
            if length < tol:
                raise LatticeInputError("All struts must be linear.")
            # distance of each interior point to the start-end line
            offsets = np.cross(points[1:-1] - start, axis / length)
            if np.any(np.linalg.norm(offsets, axis=1) > tol):
                raise LatticeInputError("All struts must be linear.")

        lines.append([start, end])

    return np.asarray(lines, dtype=np.float64)


# =============================================================================
# Intersections
# =============================================================================

def _split_pass(lines: np.ndarray, tol: float) -> Tuple[np.ndarray, int]:
    """
    One pass over all line pairs. Each line is split at most once, at the
    first interior intersection found for it.
    """
    split_params = {}
    for a in range(len(lines)):
        for b in range(a + 1, len(lines)):
            hit = line_line_intersect(lines[a][0], lines[a][1], lines[b][0], lines[b][1], tol)
            if hit is None:
                continue
            param_a, param_b = hit
            # endpoint hits are not new intersections
            if tol < param_a < 1 - tol and a not in split_params:
                split_params[a] = param_a
            if tol < param_b < 1 - tol and b not in split_params:
                split_params[b] = param_b

    if not split_params:
        return lines, 0

    new_lines = []
    for index, param in split_params.items():
        start, end = lines[index]
        mid = start + param * (end - start)
        new_lines.append([start, mid])
        new_lines.append([mid, end])

    # drop split lines from the back so earlier indices stay valid
    kept = list(lines)
    for index in sorted(split_params, reverse=True):
        del kept[index]

    return np.asarray(kept + new_lines, dtype=np.float64).reshape(-1, 2, 3), len(split_params)


def fix_intersections(lines: np.ndarray, tol: float) -> np.ndarray:
    """
    Split struts at every interior intersection so all crossings become
    shared nodes.

    Passes are repeated until one finds nothing to split.

    Args:
        lines: (n, 2, 3) line endpoints
        tol: distance tolerance (also used as the parametric endpoint margin)

    Returns:
        New (m, 2, 3) array; the input is not modified
    """
    result = np.array(lines, dtype=np.float64).reshape(-1, 2, 3)
    total = 0

    for _ in range(MAX_INTERSECTION_PASSES):
        result, count = _split_pass(result, tol)
        if count == 0:
            if total:
                print(f"[TOPOLOGY] Split {total} struts at intersections -> {len(result)} struts")
            return result
        total += count

    raise RuntimeError(
        f"Intersection splitting did not settle after {MAX_INTERSECTION_PASSES} passes"
    )


# =============================================================================
# Node / strut extraction
# =============================================================================

def _node_index(nodes: List[np.ndarray], point: np.ndarray, tol: float) -> int:
    """Index of the node within tol of point, appending a new node if none."""
    if nodes:
        closest = nearest_index(np.asarray(nodes), point)
        if np.linalg.norm(nodes[closest] - point) < tol:
            return closest
    nodes.append(np.array(point, dtype=np.float64))
    return len(nodes) - 1


def extract_topology(lines: np.ndarray, tol: float) -> UnitCell:
    """
    Convert lines into a UnitCell with unique nodes and struts.

    Endpoints within tol of an existing node reuse that node. Struts that
    collapse to a single node, or that repeat an existing node pair in
    either orientation, are skipped.

    Args:
        lines: (n, 2, 3) line endpoints
        tol: distance tolerance

    Returns:
        UnitCell with nodes and struts (node_paths empty)
    """
    nodes: List[np.ndarray] = []
    struts: List[Tuple[int, int]] = []
    seen = set()

    for start, end in np.asarray(lines, dtype=np.float64).reshape(-1, 2, 3):
        i = _node_index(nodes, start, tol)
        j = _node_index(nodes, end, tol)
        key = (min(i, j), max(i, j))
        if i == j or key in seen:
            continue
        seen.add(key)
        struts.append((i, j))

    print(f"[TOPOLOGY] Extracted {len(nodes)} nodes, {len(struts)} struts")
    return UnitCell(nodes=np.asarray(nodes).reshape(-1, 3), struts=struts)


def clean_network(
    lines: np.ndarray,
    tol: float
) -> Tuple[np.ndarray, List[Tuple[int, int]], List[int]]:
    """
    Remove short and duplicate struts from a wireframe.

    Struts shorter than MIN_LENGTH_FACTOR * tol are ignored. Kept struts
    preserve their orientation (start -> end) for sleeve generation.

    Returns:
        (nodes, struts, kept_indices) where kept_indices[k] is the index in
        `lines` that strut k came from
    """
    nodes: List[np.ndarray] = []
    struts: List[Tuple[int, int]] = []
    kept: List[int] = []
    seen = set()
    min_length = MIN_LENGTH_FACTOR * tol

    for index, (start, end) in enumerate(np.asarray(lines, dtype=np.float64).reshape(-1, 2, 3)):
        if not np.all(np.isfinite([start, end])) or np.linalg.norm(end - start) < min_length:
            continue

        i = _node_index(nodes, start, tol)
        j = _node_index(nodes, end, tol)
        key = (min(i, j), max(i, j))
        if i == j or key in seen:
            continue
        seen.add(key)
        struts.append((i, j))
        kept.append(index)

    return np.asarray(nodes).reshape(-1, 3), struts, kept
