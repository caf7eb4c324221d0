"""
Lattice Core - Geometry Kernel
Numeric services used by the topology and meshing engines

- Segment/segment intersection with parameters
- Convex hull (vertex i of the result is input point i)
- Mesh cleanup: vertex merge, degenerate faces, normal unification
"""

import numpy as np
import trimesh
from scipy.spatial import ConvexHull
from typing import Optional, Tuple

from .tolerance import merge_digits

# Below this, two directions are treated as parallel
PARALLEL_EPS = 1e-12


def line_line_intersect(
    start_a: np.ndarray,
    end_a: np.ndarray,
    start_b: np.ndarray,
    end_b: np.ndarray,
    tol: float
) -> Optional[Tuple[float, float]]:
    """
    Intersect two finite segments.

    The closest points of the two infinite lines are computed; the segments
    intersect when both parameters fall inside [0, 1] and the closest points
    are within `tol` of each other.

    Args:
        start_a, end_a: endpoints of segment A
        start_b, end_b: endpoints of segment B
        tol: distance tolerance

    Returns:
        (param_a, param_b) along each segment, or None. Parallel and
        degenerate segments never intersect.
    """
    d1 = np.asarray(end_a, dtype=np.float64) - start_a
    d2 = np.asarray(end_b, dtype=np.float64) - start_b
    r = np.asarray(start_a, dtype=np.float64) - start_b

    a = float(np.dot(d1, d1))
    e = float(np.dot(d2, d2))
    if a < PARALLEL_EPS or e < PARALLEL_EPS:
        return None

    b = float(np.dot(d1, d2))
    c = float(np.dot(d1, r))
    f = float(np.dot(d2, r))

    denom = a * e - b * b
    if denom < PARALLEL_EPS * a * e:
        return None

    s = (b * f - c * e) / denom
    t = (a * f - b * c) / denom

    # parameter slack equivalent to `tol` along each segment
    slack_a = tol / np.sqrt(a)
    slack_b = tol / np.sqrt(e)
    if s < -slack_a or s > 1 + slack_a or t < -slack_b or t > 1 + slack_b:
        return None

    s = min(max(s, 0.0), 1.0)
    t = min(max(t, 0.0), 1.0)

    point_a = start_a + s * d1
    point_b = start_b + t * d2
    if np.linalg.norm(point_a - point_b) > tol:
        return None

    return s, t


def convex_hull(points: np.ndarray) -> Tuple[trimesh.Trimesh, np.ndarray]:
    """
    Build the convex hull of a point cloud.

    Faces are wound so that their normals point out of the hull. The
    returned mesh keeps every input point as a vertex (unreferenced points
    are interior or coplanar), so face indices refer directly to `points`.

    Returns:
        (hull_mesh, hull_vertex_indices)

    Raises:
        scipy.spatial.QhullError: for flat or otherwise degenerate input
    """
    points = np.asarray(points, dtype=np.float64)
    hull = ConvexHull(points)

    faces = hull.simplices.copy()
    tri = points[faces]
    normals = np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0])
    inward = np.einsum("ij,ij->i", normals, hull.equations[:, :3]) < 0
    faces[inward] = faces[inward][:, ::-1]

    mesh = trimesh.Trimesh(vertices=points, faces=faces, process=False)
    return mesh, np.sort(hull.vertices)


def perpendicular_basis(direction: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Two unit vectors (u, v) with u x v == direction (normalised).
    """
    axis = direction / np.linalg.norm(direction)

    # pick the world axis least aligned with the direction
    helper = np.zeros(3)
    helper[int(np.argmin(np.abs(axis)))] = 1.0

    u = np.cross(helper, axis)
    u /= np.linalg.norm(u)
    v = np.cross(axis, u)
    return u, v


def clean_mesh(mesh: trimesh.Trimesh, tol: float) -> trimesh.Trimesh:
    """
    Consolidate coincident vertices, drop degenerate faces and unify the
    winding so that normals face outward.
    """
    if len(mesh.faces) == 0:
        return mesh

    mesh.merge_vertices(digits_vertex=merge_digits(tol))
    mesh.update_faces(mesh.nondegenerate_faces())
    mesh.remove_unreferenced_vertices()
    mesh.fix_normals()
    return mesh
