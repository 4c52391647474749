"""
ERM Optimization

This module contains the optimization algorithms.

Two families are provided:
1. Supervised solvers (solvers.py): fit θ for a loss/regularizer pair
   - RidgeSolver: closed form for square loss
   - LBFGSSolver: smooth losses and regularizers (scipy L-BFGS-B)
   - ProxGradientSolver: smooth losses with proximable regularizers (L1)

2. Unsupervised alternating proximal gradient (alternating.py)
   - Factorizes C ≈ X Yᵀ with backtracking steps on each block
   - Reports CONVERGED, STALLED or MAX_ITERATIONS
"""

from .solvers import (
    Solver,
    DefaultSolver,
    RidgeSolver,
    LBFGSSolver,
    ProxGradientSolver,
    get_solver,
    register_solver
)
from .alternating import (
    UnsupervisedStatus,
    UnsupervisedResult,
    optimize_unsupervised,
    minimize_unsupervised
)

__all__ = [
    # Supervised
    'Solver',
    'DefaultSolver',
    'RidgeSolver',
    'LBFGSSolver',
    'ProxGradientSolver',
    'get_solver',
    'register_solver',
    # Unsupervised
    'UnsupervisedStatus',
    'UnsupervisedResult',
    'optimize_unsupervised',
    'minimize_unsupervised',
]
