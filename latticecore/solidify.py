"""
Lattice Core - Heterogeneous Solidification
Wireframe + per-strut start/end radii -> one solid mesh

Steps (after the approach of Exoskeleton):
    A. radii     - start/end radius per sleeve from user lists
    B. offsets   - per junction plate offsets + sharp node fix
    C. sleeves   - tube between the two plates of every strut
    D. hulls     - end caps (1 strut) or convex hull junctions (2+ struts)
    E. assembly  - merge, clean, unify normals
"""

import numpy as np
import trimesh
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import JunctionError, LatticeInputError
from .exo_mesh import ExoMesh
from .topology import curves_to_lines
from .tolerance import DEFAULT_RADIUS, DEFAULT_SIDES, DEFAULT_TOLERANCE


@dataclass(frozen=True)
class NodeFailure:
    node_index: int
    point: Tuple[float, float, float]
    reason: str


@dataclass
class SolidifyResult:
    mesh: Optional[trimesh.Trimesh]
    failures: List[NodeFailure] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _radius_list(radii, count: int, name: str) -> Optional[np.ndarray]:
    if radii is None:
        return None
    try:
        values = np.asarray(radii, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError) as e:
        raise LatticeInputError(f"All {name} radii must be numbers.") from e
    if len(values) != count:
        raise LatticeInputError(
            f"Number of {name} radii ({len(values)}) must match the number of struts ({count})."
        )
    if np.any(~np.isfinite(values)) or np.any(values <= 0):
        raise LatticeInputError(f"All {name} radii must be positive.")
    return values


def validate_inputs(
    curves: Sequence[Sequence[Sequence[float]]],
    start_radii: Optional[Sequence[float]] = None,
    end_radii: Optional[Sequence[float]] = None,
    sides: int = DEFAULT_SIDES,
    tol: float = DEFAULT_TOLERANCE,
    default_radius: float = DEFAULT_RADIUS
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Check solidification input before any geometry work.

    Radius lists are parallel to `curves`. When only one list is given it is
    used for both ends; when neither is given every strut gets
    `default_radius`.

    Returns:
        (lines, start_radii, end_radii) as arrays

    Raises:
        LatticeInputError: describes the first problem found
    """
    lines = curves_to_lines(curves, tol)

    if int(sides) != sides or sides < 3:
        raise LatticeInputError("Sides must be an integer of at least 3.")
    if default_radius <= 0:
        raise LatticeInputError("Default radius must be positive.")

    start = _radius_list(start_radii, len(lines), "start")
    end = _radius_list(end_radii, len(lines), "end")

    if start is None and end is None:
        start = np.full(len(lines), float(default_radius))
    if start is None:
        start = end
    if end is None:
        end = start

    return lines, start, end


def solidify(
    curves: Sequence[Sequence[Sequence[float]]],
    start_radii: Optional[Sequence[float]] = None,
    end_radii: Optional[Sequence[float]] = None,
    sides: int = DEFAULT_SIDES,
    tol: float = DEFAULT_TOLERANCE,
    default_radius: float = DEFAULT_RADIUS,
    progress_callback: Callable[[str, int], None] = None
) -> SolidifyResult:
    """
    Thicken a strut wireframe into a solid mesh.

    Args:
        curves: strut curves (point sequences, must be linear)
        start_radii: radius at the start of each strut (parallel to curves)
        end_radii: radius at the end of each strut (parallel to curves)
        sides: polygon resolution of each strut
        tol: distance tolerance
        default_radius: radius used when no radius list is given
        progress_callback: optional callable(message, percent)

    Returns:
        SolidifyResult. Input errors set `error` and no mesh. Junctions that
        cannot be made convex are listed in `failures`; their struts are
        closed with end caps and the rest of the mesh is still built.
    """
    def report(message, percent):
        print(f"[SOLIDIFY] {message}")
        if progress_callback:
            progress_callback(message, percent)

    try:
        lines, start, end = validate_inputs(curves, start_radii, end_radii, sides, tol, default_radius)
    except LatticeInputError as e:
        print(f"[SOLIDIFY] Input rejected: {e}")
        return SolidifyResult(mesh=None, error=str(e))

    sides = int(sides)
    exo = ExoMesh.from_lines(lines, tol)
    if not exo.sleeves:
        return SolidifyResult(mesh=None, error="No valid struts left after cleaning the network.")

    report(f"Network: {len(exo.hulls)} nodes, {len(exo.sleeves)} struts "
           f"({len(lines) - len(exo.sleeves)} removed while cleaning)", 10)

    # A. radii (mapped through the cleaned strut indices)
    kept = np.asarray(exo.source_indices)
    exo.set_radii(start[kept], end[kept])

    # B. plate offsets
    report("Computing plate offsets...", 20)
    failures: List[NodeFailure] = []
    for i, hull in enumerate(exo.hulls):
        if len(hull.strut_indices) < 2:
            continue
        exo.compute_offsets(i, tol)
        try:
            exo.fix_sharp_nodes(i, sides, tol)
        except JunctionError as e:
            hull.failure = e.reason
    exo.update_plates(sides)

    # C. sleeves
    report("Building sleeves...", 40)
    parts = [exo.make_sleeve(i, sides) for i in range(len(exo.sleeves))]

    # D. hulls
    report("Building junctions...", 60)
    for i, hull in enumerate(exo.hulls):
        if hull.failure is None and len(hull.plate_indices) >= 2:
            try:
                parts.append(exo.make_convex_hull(i, sides, tol))
                continue
            except JunctionError as e:
                hull.failure = e.reason

        if hull.failure is not None:
            failures.append(NodeFailure(i, tuple(float(c) for c in hull.point), hull.failure))
            print(f"[SOLIDIFY] Junction {i} failed: {hull.failure}")
        parts.append(exo.make_end_face(i, sides))

    # E. assembly
    report("Assembling mesh...", 80)
    mesh = exo.assemble(parts, tol)

    report(f"Result: {len(mesh.vertices)} verts, {len(mesh.faces)} faces, "
           f"watertight={mesh.is_watertight}, failed junctions={len(failures)}", 100)
    return SolidifyResult(mesh=mesh, failures=failures)
