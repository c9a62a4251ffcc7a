"""
Wolff Ising Simulation Library - Production Core Models

This package simulates the 2D Ising model on an unbounded square lattice:
- GrowableLattice: diamond-shaped lattice that grows one ring at a time
- ClusterSolver: Wolff single-cluster updates with per-site flip statistics
- render: terminal observers (animation, progress) for solver runs
"""

from .lattice import GrowableLattice, LatticeView, LatticeCapacityError
from .wolff import BETA_CRITICAL, ClusterSolver, SolverView, WolffConfig
from . import render, utils

__all__ = [
    # Core
    "GrowableLattice",
    "ClusterSolver",
    # Read-only views
    "LatticeView",
    "SolverView",
    # Configuration
    "WolffConfig",
    "BETA_CRITICAL",
    # Errors
    "LatticeCapacityError",
    # Utilities
    "render",
    "utils",
]
