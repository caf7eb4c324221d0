"""
Lattice Core - Error Types
"""


class LatticeError(Exception):
    """Base class for all lattice engine errors."""


class LatticeInputError(LatticeError, ValueError):
    """User input that cannot be processed (non-linear curve, radius mismatch, ...)."""


class DegenerateCellError(LatticeError, ValueError):
    """A unit cell whose bounding box has zero extent on some axis."""


class JunctionError(LatticeError):
    """A single junction could not be meshed.

    Raised inside the per-node build and converted to a NodeFailure by the
    solidification pipeline, so one bad node never aborts the whole mesh.
    """

    def __init__(self, node_index: int, reason: str):
        super().__init__(f"node {node_index}: {reason}")
        self.node_index = node_index
        self.reason = reason
