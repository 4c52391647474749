"""
ERM: Regularized Empirical Risk Minimization with Cross-Validation

A framework for fitting regularized linear models on embedded features,
with cached train/test splits, k-fold cross validation and regularization
paths, plus an alternating proximal-gradient optimizer for unsupervised
factorization:

- Model: data source, loss, regularizer and solver with cached state
- Supervised fits: train, trainfolds, trainpath
- Unsupervised: C ≈ X Yᵀ via backtracking proximal gradient
"""

__version__ = "0.1.0"

# Data sources and splits
from .data import ArraySource, DataSource, splitrows, getfoldrows

# Loss functions and regularizers
from .objectives import (
    SquareLoss,
    HuberLoss,
    LogisticLoss,
    L2Reg,
    L1Reg,
    NoReg,
    QuadLossUnsupervised,
    ZeroRegUnsupervised,
    NonNegRegUnsupervised,
    L1RegUnsupervised
)

# Optimization
from .optimization import (
    get_solver,
    RidgeSolver,
    LBFGSSolver,
    ProxGradientSolver,
    optimize_unsupervised,
    minimize_unsupervised,
    UnsupervisedStatus
)

# Models
from .models import (
    Model,
    SplitData,
    FoldedData,
    PointResults,
    FoldResults,
    RegPathResults
)

__all__ = [
    # Data
    "ArraySource",
    "DataSource",
    "splitrows",
    "getfoldrows",

    # Objectives
    "SquareLoss",
    "HuberLoss",
    "LogisticLoss",
    "L2Reg",
    "L1Reg",
    "NoReg",
    "QuadLossUnsupervised",
    "ZeroRegUnsupervised",
    "NonNegRegUnsupervised",
    "L1RegUnsupervised",

    # Optimization
    "get_solver",
    "RidgeSolver",
    "LBFGSSolver",
    "ProxGradientSolver",
    "optimize_unsupervised",
    "minimize_unsupervised",
    "UnsupervisedStatus",

    # Models
    "Model",
    "SplitData",
    "FoldedData",
    "PointResults",
    "FoldResults",
    "RegPathResults",
]
