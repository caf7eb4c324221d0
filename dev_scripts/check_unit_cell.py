"""BCC unit cell: define, solidify and quality-check"""
import sys
from pathlib import Path

import numpy as np

PROJECT_ROOT = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(PROJECT_ROOT))
from latticecore.cell import define_cell
from latticecore.solidify import solidify
from latticecore.validate import validate_mesh, generate_quality_report

TOL = 0.001
RADIUS = 0.06
SIDES = 8

corners = [(x, y, z) for x in (0, 1) for y in (0, 1) for z in (0, 1)]
edges = [
    [list(a), list(b)]
    for i, a in enumerate(corners) for b in corners[i + 1:]
    if sum(p != q for p, q in zip(a, b)) == 1
]
diagonals = [
    [[0, 0, 0], [1, 1, 1]],
    [[1, 0, 0], [0, 1, 1]],
    [[0, 1, 0], [1, 0, 1]],
    [[0, 0, 1], [1, 1, 0]],
]

print("=" * 60)
print("BCC Unit Cell Check")
print("=" * 60)

# セル定義
result = define_cell(edges + diagonals, TOL)
print(f"\nStatus: {result.status.value} - {result.message}")
if not result.ok:
    sys.exit(1)

cell = result.cell
print(f"Nodes: {len(cell.nodes)}, Struts: {len(cell.struts)}")
for index, path in enumerate(cell.node_paths):
    print(f"  node {index} {np.round(cell.nodes[index], 3)} -> path {path}")

# 太らせる: centre joints thicker than the corners
lines = cell.lines()
centre = np.array([0.5, 0.5, 0.5])
start_radii = [RADIUS * (1.5 if np.allclose(a, centre) else 1.0) for a, _ in lines]
end_radii = [RADIUS * (1.5 if np.allclose(b, centre) else 1.0) for _, b in lines]

solid = solidify(lines, start_radii, end_radii, sides=SIDES, tol=TOL)
if not solid.ok:
    print(f"[ERROR] {solid.error}")
    sys.exit(1)

for failure in solid.failures:
    print(f"[WARN] node {failure.node_index} at {failure.point}: {failure.reason}")

print("\n" + generate_quality_report(validate_mesh(solid.mesh, solid.failures)))

output = PROJECT_ROOT / "exports" / "bcc_unit_cell.stl"
output.parent.mkdir(parents=True, exist_ok=True)
solid.mesh.export(str(output))
print(f"\nExported: {output}")
