"""
ERM Optimization Objectives

This module contains supervised losses and regularizers, and the losses
and regularizers used by the unsupervised factorization.
"""

from .losses import Loss, SquareLoss, HuberLoss, LogisticLoss
from .regularizers import Regularizer, L2Reg, L1Reg, NoReg
from .unsupervised import (
    LossUnsupervised,
    RegularizerUnsupervised,
    QuadLossUnsupervised,
    ZeroRegUnsupervised,
    NonNegRegUnsupervised,
    L1RegUnsupervised
)

__all__ = [
    # Supervised
    "Loss",
    "SquareLoss",
    "HuberLoss",
    "LogisticLoss",
    "Regularizer",
    "L2Reg",
    "L1Reg",
    "NoReg",
    # Unsupervised
    "LossUnsupervised",
    "RegularizerUnsupervised",
    "QuadLossUnsupervised",
    "ZeroRegUnsupervised",
    "NonNegRegUnsupervised",
    "L1RegUnsupervised"
]
