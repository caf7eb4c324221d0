"""
Lattice Core - Validation Module
Quality checks for solidified lattice meshes

- watertight / winding / volume checks
- failed junction summary
- text quality report
"""

import trimesh
from typing import Dict, List, Optional

DEFAULT_CONFIG = {
    "min_volume": 0.0,
    "max_faces": 500000,
}


def validate_mesh(
    mesh: trimesh.Trimesh,
    failures: Optional[List] = None,
    config: Optional[Dict] = None
) -> Dict:
    """
    Check a solidified mesh.

    Args:
        mesh: assembled lattice mesh
        failures: NodeFailure list from solidify (optional)
        config: {"min_volume": float, "max_faces": int}

    Returns:
        dict: {
            "valid": bool,
            "errors": List[str],
            "warnings": List[str],
            "metrics": Dict
        }
    """
    config = {**DEFAULT_CONFIG, **(config or {})}
    failures = failures or []

    errors = []
    warnings = []
    metrics = {}

    if mesh is None or len(mesh.faces) == 0:
        errors.append("Mesh is empty")
        return {"valid": False, "errors": errors, "warnings": warnings, "metrics": metrics}

    metrics["n_vertices"] = len(mesh.vertices)
    metrics["n_faces"] = len(mesh.faces)
    metrics["is_watertight"] = bool(mesh.is_watertight)
    metrics["is_winding_consistent"] = bool(mesh.is_winding_consistent)
    metrics["area"] = float(mesh.area)
    metrics["failed_junctions"] = len(failures)

    # volume is only meaningful for closed meshes
    if metrics["is_watertight"]:
        metrics["volume"] = float(mesh.volume)
        if metrics["volume"] <= config["min_volume"]:
            errors.append(f"Volume too small: {metrics['volume']:.4g} <= {config['min_volume']}")

    if not metrics["is_watertight"]:
        errors.append("Mesh is not watertight")

    if not metrics["is_winding_consistent"]:
        warnings.append("Face winding is inconsistent")

    if metrics["n_faces"] > config["max_faces"]:
        warnings.append(f"Too many faces: {metrics['n_faces']} > {config['max_faces']}")

    duplicate_edges = len(mesh.edges) - 2 * len(mesh.edges_unique)
    metrics["duplicate_edges"] = max(0, int(duplicate_edges))
    if duplicate_edges > 0:
        warnings.append(f"Non-manifold edges: {duplicate_edges}")

    for failure in failures:
        warnings.append(f"Junction {failure.node_index} not meshed: {failure.reason}")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "metrics": metrics
    }


def generate_quality_report(validation: Dict) -> str:
    """
    Text report of a validate_mesh result.
    """
    metrics = validation["metrics"]
    lines = []
    lines.append("=" * 60)
    lines.append("Lattice Mesh Quality Report")
    lines.append("=" * 60)
    lines.append("")

    lines.append("[METRICS]")
    if "volume" in metrics:
        lines.append(f"  Volume:           {metrics['volume']:.4f}")
    lines.append(f"  Area:             {metrics.get('area', 0):.4f}")
    lines.append(f"  Vertices:         {metrics.get('n_vertices', 0):,}")
    lines.append(f"  Faces:            {metrics.get('n_faces', 0):,}")
    lines.append(f"  Watertight:       {'[OK]' if metrics.get('is_watertight') else '[NG]'}")
    lines.append(f"  Winding:          {'[OK]' if metrics.get('is_winding_consistent') else '[NG]'}")
    lines.append(f"  Failed junctions: {metrics.get('failed_junctions', 0)}")
    lines.append("")

    if validation["errors"]:
        lines.append("[ERROR]")
        for err in validation["errors"]:
            lines.append(f"  x {err}")
        lines.append("")

    if validation["warnings"]:
        lines.append("[WARN]")
        for warn in validation["warnings"]:
            lines.append(f"  ! {warn}")
        lines.append("")

    lines.append("[RESULT]")
    lines.append("  [PASS] Mesh is valid" if validation["valid"] else "  [FAIL] Mesh needs attention")
    lines.append("=" * 60)

    return "\n".join(lines)
