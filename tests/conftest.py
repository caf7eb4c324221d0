from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure repo root is importable when running pytest from any CWD.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

TOL = 1e-3

CUBE_CORNERS = [
    (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 1.0, 0.0),
    (0.0, 0.0, 1.0), (1.0, 0.0, 1.0), (0.0, 1.0, 1.0), (1.0, 1.0, 1.0),
]


def cube_edge_curves(size=1.0, origin=(0.0, 0.0, 0.0), skip_corner=None):
    """The 12 edges of a cube as [start, end] point lists."""
    curves = []
    for i, a in enumerate(CUBE_CORNERS):
        for b in CUBE_CORNERS[i + 1:]:
            if sum(x != y for x, y in zip(a, b)) != 1:
                continue
            if skip_corner is not None and skip_corner in (a, b):
                continue
            curves.append([
                [origin[k] + size * a[k] for k in range(3)],
                [origin[k] + size * b[k] for k in range(3)],
            ])
    return curves


def bcc_curves():
    """Cube edges plus the four body diagonals (they cross at the centre)."""
    diagonals = [
        [[0, 0, 0], [1, 1, 1]],
        [[1, 0, 0], [0, 1, 1]],
        [[0, 1, 0], [1, 0, 1]],
        [[0, 0, 1], [1, 1, 0]],
    ]
    return cube_edge_curves() + diagonals


@pytest.fixture
def tol():
    return TOL
