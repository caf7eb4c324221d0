"""
Lattice Core Modules
"""

from . import cell
from . import exo_mesh
from . import kernel
from . import solidify
from . import topology
from . import validate

__all__ = ["cell", "exo_mesh", "kernel", "solidify", "topology", "validate"]
