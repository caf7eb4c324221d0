"""
Lattice Core - Unit Cell Definition
Normalise, format and validate custom unit cells

A valid cell tiles space: every face of the unit cube carries at least one
node and the node pattern on each face matches the opposite face. Nodes on the
far faces (x=1, y=1, z=1) belong to the neighbouring cell once cells are
tiled, so each one records the near-face node it mirrors.
"""

import numpy as np
from dataclasses import dataclass, replace
from enum import Enum
from scipy.spatial import cKDTree
from typing import List, Optional, Sequence, Tuple

from .errors import DegenerateCellError, LatticeInputError
from .topology import UnitCell, curves_to_lines, extract_topology, fix_intersections


class CellStatus(Enum):
    VALID = "valid"
    ASYMMETRIC_FACES = "asymmetric_faces"
    EMPTY_FACE = "empty_face"
    INVALID_INPUT = "invalid_input"


CELL_MESSAGES = {
    CellStatus.VALID: "Your cell is valid!",
    CellStatus.ASYMMETRIC_FACES: "Invalid cell - opposing faces must be identical.",
    CellStatus.EMPTY_FACE: "Invalid cell - each face needs at least one node lying on it.",
}


@dataclass(frozen=True)
class CellResult:
    status: CellStatus
    cell: Optional[UnitCell]
    message: str

    @property
    def ok(self) -> bool:
        return self.status is CellStatus.VALID

    @property
    def severity(self) -> str:
        return "info" if self.ok else "error"


# =============================================================================
# Normalisation
# =============================================================================

def normalize_cell(cell: UnitCell, tol: float = 0.0) -> UnitCell:
    """
    Translate and scale a cell so its node bounding box is the unit cube.

    Scaling is non-uniform: every axis ends up with extent exactly 1.

    Args:
        cell: cell with at least one node
        tol: extents at or below this are treated as zero

    Returns:
        New UnitCell with normalised nodes (struts unchanged)

    Raises:
        DegenerateCellError: empty cell or zero extent on any axis
    """
    nodes = np.asarray(cell.nodes, dtype=np.float64)
    if len(nodes) == 0:
        raise DegenerateCellError("Cannot normalise a cell without nodes.")

    lo = nodes.min(axis=0)
    hi = nodes.max(axis=0)
    extent = hi - lo

    flat = [axis for axis, size in zip("xyz", extent) if size <= tol]
    if flat:
        raise DegenerateCellError(
            f"Cell has zero extent along {', '.join(flat)}; it cannot be normalised."
        )

    normalized = (nodes - lo) / extent
    # snap values within tol of the bounds so faces sit exactly on 0 and 1
    normalized[np.abs(nodes - lo) <= tol] = 0.0
    normalized[np.abs(nodes - hi) <= tol] = 1.0
    return replace(cell, nodes=normalized)


# =============================================================================
# Formatting
# =============================================================================

def _node_path(node: np.ndarray, index: int, tree: cKDTree, tol: float) -> Tuple[int, int, int, int]:
    """
    (far_x, far_y, far_z, mirror_index) for one normalised node.

    Priority: top face (corner, x-edge, y-edge, face), then x face (edge,
    face), then y face, then interior.
    """
    x, y, z = node
    on_x = abs(x - 1) < tol
    on_y = abs(y - 1) < tol
    on_z = abs(z - 1) < tol

    def mirror(point):
        return int(tree.query(point)[1])

    if on_z:
        if on_x and on_y:
            return 1, 1, 1, mirror((0.0, 0.0, 0.0))
        if on_x:
            return 1, 0, 1, mirror((0.0, y, 0.0))
        if on_y:
            return 0, 1, 1, mirror((x, 0.0, 0.0))
        return 0, 0, 1, mirror((x, y, 0.0))
    if on_x:
        if on_y:
            return 1, 1, 0, mirror((0.0, 0.0, z))
        return 1, 0, 0, mirror((0.0, y, z))
    if on_y:
        return 0, 1, 0, mirror((x, 0.0, z))
    return 0, 0, 0, index


def format_topology(cell: UnitCell, tol: float) -> UnitCell:
    """
    Record node paths and drop struts owned by neighbouring cells.

    A strut whose endpoints both lie on the same far face (x=1, y=1 or z=1)
    duplicates a strut of the adjacent cell and is removed.

    Args:
        cell: normalised cell
        tol: distance tolerance

    Returns:
        New UnitCell with node_paths filled and boundary struts removed
    """
    nodes = np.asarray(cell.nodes, dtype=np.float64)
    tree = cKDTree(nodes)

    node_paths = [_node_path(node, i, tree, tol) for i, node in enumerate(nodes)]

    on_far = np.abs(nodes - 1.0) < tol
    to_remove = [
        k for k, (i, j) in enumerate(cell.struts)
        if np.any(on_far[i] & on_far[j])
    ]

    struts = list(cell.struts)
    for k in reversed(to_remove):
        del struts[k]

    return replace(cell, struts=struts, node_paths=node_paths)


# =============================================================================
# Validation
# =============================================================================

def check_validity(cell: UnitCell, tol: float) -> CellStatus:
    """
    Periodicity check of a normalised cell.

    Returns:
        CellStatus.EMPTY_FACE if any of the six faces has no node,
        CellStatus.ASYMMETRIC_FACES if a face node has no mirror node on
        the opposite face, CellStatus.VALID otherwise
    """
    nodes = np.asarray(cell.nodes, dtype=np.float64)
    if len(nodes) == 0:
        return CellStatus.EMPTY_FACE

    near = np.abs(nodes) < tol
    far = np.abs(nodes - 1.0) < tol

    for axis in range(3):
        if not near[:, axis].any() or not far[:, axis].any():
            return CellStatus.EMPTY_FACE

    tree = cKDTree(nodes)
    for axis in range(3):
        for face, target in ((near, 1.0), (far, 0.0)):
            test_points = nodes[face[:, axis]].copy()
            test_points[:, axis] = target
            distances, _ = tree.query(test_points)
            if np.any(distances > tol):
                return CellStatus.ASYMMETRIC_FACES

    return CellStatus.VALID


# =============================================================================
# Pipeline
# =============================================================================

def define_cell(curves: Sequence[Sequence[Sequence[float]]], tol: float) -> CellResult:
    """
    Full custom cell pipeline: lines -> intersections -> topology ->
    normalise -> format -> validate.

    Args:
        curves: strut curves, each a sequence of points (must be linear)
        tol: distance tolerance

    Returns:
        CellResult; `cell` is only set when the cell is valid

    Raises:
        DegenerateCellError: the cell is flat along some axis
    """
    try:
        lines = curves_to_lines(curves, tol)
    except LatticeInputError as e:
        print(f"[CELL] Input rejected: {e}")
        return CellResult(CellStatus.INVALID_INPUT, None, str(e))

    print(f"[CELL] Defining cell from {len(lines)} struts (tol={tol})")

    lines = fix_intersections(lines, tol)
    cell = extract_topology(lines, tol)
    cell = normalize_cell(cell, tol)
    cell = format_topology(cell, tol)

    status = check_validity(cell, tol)
    print(f"[CELL] {CELL_MESSAGES[status]}")

    if status is not CellStatus.VALID:
        return CellResult(status, None, CELL_MESSAGES[status])
    return CellResult(status, cell, CELL_MESSAGES[status])


def boundary_node_counts(cell: UnitCell, tol: float) -> List[Tuple[int, int]]:
    """(near, far) node counts per axis, for diagnostics."""
    nodes = np.asarray(cell.nodes, dtype=np.float64)
    return [
        (int(np.sum(np.abs(nodes[:, axis]) < tol)), int(np.sum(np.abs(nodes[:, axis] - 1.0) < tol)))
        for axis in range(3)
    ]
