"""
Lattice Core - Exoskeleton Mesh
Solid mesh of a strut network with per-strut start/end radii

Structure:
    node ---[plate]==== sleeve ====[plate]--- node
                                     \\
                               hull (junction) = convex hull of all plates
                               meeting at a node, minus the plate faces

- Sleeve: tube (frustum when radii differ) between the two plates of a strut
- Plate:  ring of `sides` vertices, pushed away from its node by an offset
- Hull:   one per node; end cap for a single strut, convex hull otherwise
"""

import numpy as np
import trimesh
from dataclasses import dataclass, field
from scipy.spatial import QhullError
from typing import List, Optional, Tuple

from .errors import JunctionError
from .kernel import clean_mesh, convex_hull, perpendicular_basis
from .tolerance import DEFAULT_RADIUS, MAX_FIX_ITERATIONS
from .topology import clean_network

# Minimum plate offset at a junction, as a fraction of the strut radius there
MIN_OFFSET_RATIO = 0.5

# Below this, two strut directions are treated as collinear
COLLINEAR_EPS = 1e-9


@dataclass
class Plate:
    hull_index: int
    sleeve_index: int
    direction: np.ndarray   # unit vector from the node into the sleeve
    offset: float = 0.0
    radius: float = 0.0
    vertices: Optional[np.ndarray] = None


@dataclass
class Sleeve:
    start_index: int
    end_index: int
    start_radius: float = DEFAULT_RADIUS
    end_radius: float = DEFAULT_RADIUS
    start_plate: int = -1
    end_plate: int = -1
    mesh: Optional[trimesh.Trimesh] = None


@dataclass
class Hull:
    node_index: int
    point: np.ndarray
    strut_indices: List[int] = field(default_factory=list)
    plate_indices: List[int] = field(default_factory=list)
    failure: Optional[str] = None


class ExoMesh:
    """
    Strut/node/plate model of a wireframe.

    Build with ExoMesh.from_lines, set radii, then per node compute offsets
    and fix sharp nodes before meshing sleeves and hulls.
    """

    def __init__(self, nodes: np.ndarray, struts: List[Tuple[int, int]]):
        self.nodes = np.asarray(nodes, dtype=np.float64).reshape(-1, 3)
        self.hulls: List[Hull] = [Hull(node_index=i, point=p) for i, p in enumerate(self.nodes)]
        self.sleeves: List[Sleeve] = []
        self.plates: List[Plate] = []
        self.source_indices: List[int] = list(range(len(struts)))
        self.mesh = trimesh.Trimesh()

        for s, (i, j) in enumerate(struts):
            axis = self.nodes[j] - self.nodes[i]
            axis = axis / np.linalg.norm(axis)

            sleeve = Sleeve(start_index=i, end_index=j)
            sleeve.start_plate = self._add_plate(i, s, axis)
            sleeve.end_plate = self._add_plate(j, s, -axis)
            self.sleeves.append(sleeve)

            self.hulls[i].strut_indices.append(s)
            self.hulls[j].strut_indices.append(s)

    @classmethod
    def from_lines(cls, lines: np.ndarray, tol: float) -> "ExoMesh":
        """
        Clean a wireframe (short/duplicate struts removed) and build the model.

        `source_indices[k]` is the input line index of sleeve k.
        """
        nodes, struts, kept = clean_network(lines, tol)
        exo = cls(nodes, struts)
        exo.source_indices = kept
        return exo

    def _add_plate(self, hull_index: int, sleeve_index: int, direction: np.ndarray) -> int:
        self.plates.append(Plate(hull_index=hull_index, sleeve_index=sleeve_index, direction=direction))
        index = len(self.plates) - 1
        self.hulls[hull_index].plate_indices.append(index)
        return index

    # -------------------------------------------------------------------------
    # Geometry helpers
    # -------------------------------------------------------------------------

    def sleeve_length(self, sleeve_index: int) -> float:
        sleeve = self.sleeves[sleeve_index]
        return float(np.linalg.norm(self.nodes[sleeve.end_index] - self.nodes[sleeve.start_index]))

    def set_radii(self, start_radii, end_radii):
        """Assign start/end radius per sleeve (lists parallel to self.sleeves)."""
        for sleeve, r0, r1 in zip(self.sleeves, start_radii, end_radii):
            sleeve.start_radius = float(r0)
            sleeve.end_radius = float(r1)

    def node_radius(self, plate_index: int) -> float:
        """Strut radius at the plate's node."""
        plate = self.plates[plate_index]
        sleeve = self.sleeves[plate.sleeve_index]
        return sleeve.start_radius if plate_index == sleeve.start_plate else sleeve.end_radius

    def radius_at_offset(self, plate_index: int, offset: float) -> float:
        """Linearly interpolated strut radius at `offset` from the plate's node."""
        plate = self.plates[plate_index]
        sleeve = self.sleeves[plate.sleeve_index]
        length = self.sleeve_length(plate.sleeve_index)
        t = offset / length
        if plate_index == sleeve.end_plate:
            t = 1.0 - t
        return sleeve.start_radius + (sleeve.end_radius - sleeve.start_radius) * t

    def max_offset(self, plate_index: int, tol: float) -> float:
        """Plates of one sleeve may not cross: each stays short of the midpoint."""
        return 0.5 * self.sleeve_length(self.plates[plate_index].sleeve_index) - tol

    def plate_vertices(self, plate_index: int, sides: int, offset: Optional[float] = None) -> np.ndarray:
        """
        Ring of `sides` vertices for a plate.

        Both plates of a sleeve share the sleeve's cross-section basis, so
        vertex k of the start ring faces vertex k of the end ring.
        """
        plate = self.plates[plate_index]
        sleeve = self.sleeves[plate.sleeve_index]
        if offset is None:
            offset = plate.offset

        axis = self.nodes[sleeve.end_index] - self.nodes[sleeve.start_index]
        u, v = perpendicular_basis(axis)

        radius = self.radius_at_offset(plate_index, offset)
        center = self.nodes[plate.hull_index] + plate.direction * offset
        angles = 2.0 * np.pi * np.arange(sides) / sides
        return center + radius * (np.outer(np.cos(angles), u) + np.outer(np.sin(angles), v))

    def update_plates(self, sides: int):
        for i, plate in enumerate(self.plates):
            plate.radius = self.radius_at_offset(i, plate.offset)
            plate.vertices = self.plate_vertices(i, sides)

    # -------------------------------------------------------------------------
    # Offsets
    # -------------------------------------------------------------------------

    def compute_offsets(self, hull_index: int, tol: float):
        """
        Push every plate at a junction far enough from the node that it
        clears all neighbouring struts.

        For struts A and B at angle theta with radii rA, rB, the disc of A
        clears the cylinder of B once its offset exceeds
        (rB + rA cos theta) / sin theta.
        """
        hull = self.hulls[hull_index]
        if len(hull.plate_indices) < 2:
            return

        for a in hull.plate_indices:
            plate_a = self.plates[a]
            r_a = self.node_radius(a)
            offset = MIN_OFFSET_RATIO * r_a

            for b in hull.plate_indices:
                if a == b:
                    continue
                r_b = self.node_radius(b)
                cos_t = float(np.clip(np.dot(plate_a.direction, self.plates[b].direction), -1.0, 1.0))
                sin_t = np.sqrt(1.0 - cos_t * cos_t)

                if sin_t < COLLINEAR_EPS:
                    # overlapping struts can never be separated
                    required = np.inf if cos_t > 0 else 0.0
                else:
                    required = (r_b + r_a * cos_t) / sin_t
                offset = max(offset, required + tol)

            plate_a.offset = min(offset, self.max_offset(a, tol))

    def fix_sharp_nodes(self, hull_index: int, sides: int, tol: float) -> int:
        """
        Make the plate layout at a junction convex.

        Every plate must be a face of the junction hull: all vertices of the
        other plates have to lie behind its plane by at least tol. Offending
        plates are pushed out to the required offset plus a 2 * tol margin,
        repeated until the layout settles.

        Returns:
            Number of offset adjustments made

        Raises:
            JunctionError: a required offset exceeds the strut's limit, or
                the layout does not settle within MAX_FIX_ITERATIONS
        """
        hull = self.hulls[hull_index]
        if len(hull.plate_indices) < 2:
            return 0

        node = self.nodes[hull.node_index]
        adjustments = 0

        for _ in range(MAX_FIX_ITERATIONS):
            rings = {p: self.plate_vertices(p, sides) for p in hull.plate_indices}
            updates = {}

            for p in hull.plate_indices:
                plate = self.plates[p]
                others = np.vstack([ring for q, ring in rings.items() if q != p])
                reach = float(np.max((others - node) @ plate.direction))
                if reach > plate.offset - tol:
                    # overshoot so mutual pushes die out in a finite number of passes
                    updates[p] = reach + 2 * tol

            if not updates:
                if adjustments:
                    print(f"[EXOMESH] Node {hull.node_index}: raised {adjustments} plate offsets")
                return adjustments

            for p, offset in updates.items():
                if offset > self.max_offset(p, tol):
                    raise JunctionError(
                        hull.node_index,
                        f"struts too sharp: plate offset {offset:.4g} exceeds strut limit "
                        f"{self.max_offset(p, tol):.4g}"
                    )
            for p, offset in updates.items():
                self.plates[p].offset = offset
            adjustments += len(updates)

        raise JunctionError(hull.node_index, "plate layout did not converge")

    # -------------------------------------------------------------------------
    # Meshing
    # -------------------------------------------------------------------------

    def make_sleeve(self, sleeve_index: int, sides: int) -> trimesh.Trimesh:
        """Side wall between the start and end plate of a sleeve."""
        sleeve = self.sleeves[sleeve_index]
        start = self.plates[sleeve.start_plate].vertices
        end = self.plates[sleeve.end_plate].vertices
        if start is None or end is None:
            start = self.plate_vertices(sleeve.start_plate, sides)
            end = self.plate_vertices(sleeve.end_plate, sides)

        k = np.arange(sides)
        k1 = (k + 1) % sides
        # start ring: 0..sides-1, end ring: sides..2*sides-1
        faces = np.vstack([
            np.column_stack([k, k1, sides + k1]),
            np.column_stack([k, sides + k1, sides + k]),
        ])

        sleeve.mesh = trimesh.Trimesh(vertices=np.vstack([start, end]), faces=faces, process=False)
        return sleeve.mesh

    def make_end_face(self, hull_index: int, sides: int) -> trimesh.Trimesh:
        """Flat disc closing every plate at a node."""
        parts = []
        for p in self.hulls[hull_index].plate_indices:
            plate = self.plates[p]
            ring = plate.vertices if plate.vertices is not None else self.plate_vertices(p, sides)
            center = ring.mean(axis=0)

            k = np.arange(sides)
            faces = np.column_stack([np.full(sides, sides), k, (k + 1) % sides])

            # the disc faces away from its sleeve
            normal = np.cross(ring[1] - center, ring[2] - center)
            if np.dot(normal, plate.direction) > 0:
                faces = faces[:, ::-1]

            parts.append(trimesh.Trimesh(vertices=np.vstack([ring, center]), faces=faces, process=False))

        if not parts:
            return trimesh.Trimesh()
        return trimesh.util.concatenate(parts)

    def make_convex_hull(self, hull_index: int, sides: int, tol: float) -> trimesh.Trimesh:
        """
        Junction mesh: convex hull of all plate rings at a node, with the
        faces lying on a plate removed (the sleeves attach there).

        Raises:
            JunctionError: degenerate hull, or a plate vertex is swallowed
                by the hull (non-convex layout)
        """
        hull = self.hulls[hull_index]
        rings = []
        labels = []
        for p in hull.plate_indices:
            plate = self.plates[p]
            ring = plate.vertices if plate.vertices is not None else self.plate_vertices(p, sides)
            rings.append(ring)
            labels.append(np.full(len(ring), p))

        points = np.vstack(rings)
        labels = np.concatenate(labels)

        try:
            hull_mesh, hull_vertices = convex_hull(points)
        except QhullError as e:
            raise JunctionError(hull.node_index, f"convex hull failed: {e}") from e

        if len(hull_vertices) < len(points):
            raise JunctionError(hull.node_index, "plate vertex engulfed by junction hull")

        faces = hull_mesh.faces
        face_labels = labels[faces]
        on_plate = (face_labels[:, 0] == face_labels[:, 1]) & (face_labels[:, 1] == face_labels[:, 2])

        return trimesh.Trimesh(vertices=points, faces=faces[~on_plate], process=False)

    def assemble(self, parts: List[trimesh.Trimesh], tol: float) -> trimesh.Trimesh:
        """Append all parts into one mesh and clean it."""
        parts = [part for part in parts if len(part.faces) > 0]
        if not parts:
            self.mesh = trimesh.Trimesh()
            return self.mesh

        mesh = trimesh.util.concatenate(parts)
        self.mesh = clean_mesh(mesh, tol)
        return self.mesh
