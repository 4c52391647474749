"""
Losses and regularizers for unsupervised factorization C ≈ X Yᵀ.

Shapes:
    C: data (n × d)
    X: row factors (n × k)
    Y: column factors (d × k)
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


class LossUnsupervised(ABC):
    """Base class for factorization losses."""

    @abstractmethod
    def evaluate(self, C: np.ndarray, X: np.ndarray, Y: np.ndarray) -> float:
        pass

    @abstractmethod
    def deriv(self, C: np.ndarray, X: np.ndarray, Y: np.ndarray, which: str) -> np.ndarray:
        """
        Partial derivative of the loss.

        Parameters:
            which: "X" for ∂L/∂X (n × k), "Y" for ∂L/∂Y (d × k)
        """
        pass


class RegularizerUnsupervised(ABC):
    """Base class for factor regularizers, used only through their prox."""

    @abstractmethod
    def prox(self, M: np.ndarray) -> np.ndarray:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class QuadLossUnsupervised(LossUnsupervised):
    """
    Squared Frobenius reconstruction error.

    L = ||mask ∘ (C - X Yᵀ)||²_F

    Parameters:
        mask: Optional 0/1 (or weight) matrix the shape of C. Entries with
              weight 0 are treated as missing.
    """

    def __init__(self, mask: Optional[np.ndarray] = None):
        self.mask = mask

    def _residual(self, C, X, Y):
        R = C - X @ Y.T
        if self.mask is not None:
            R = self.mask * R
        return R

    def evaluate(self, C, X, Y):
        return float(np.sum(self._residual(C, X, Y) ** 2))

    def deriv(self, C, X, Y, which):
        R = self._residual(C, X, Y)
        if self.mask is not None:
            # chain rule: the mask enters squared
            R = self.mask * R
        if which == "X":
            return -2 * R @ Y
        if which == "Y":
            return -2 * R.T @ X
        raise ValueError(f"which must be 'X' or 'Y', got {which!r}")

    def __repr__(self) -> str:
        return f"QuadLossUnsupervised(masked={self.mask is not None})"


class ZeroRegUnsupervised(RegularizerUnsupervised):
    """No regularization: the prox is the identity."""

    def prox(self, M):
        return M


class NonNegRegUnsupervised(RegularizerUnsupervised):
    """Indicator of the nonnegative orthant: the prox clips at zero."""

    def prox(self, M):
        return np.maximum(M, 0)


class L1RegUnsupervised(RegularizerUnsupervised):
    """Soft-thresholding at ``lambda_reg``."""

    def __init__(self, lambda_reg: float = 0.1):
        if lambda_reg < 0:
            raise ValueError(f"lambda_reg must be non-negative, got {lambda_reg}")
        self.lambda_reg = lambda_reg

    def prox(self, M):
        return np.sign(M) * np.maximum(np.abs(M) - self.lambda_reg, 0)

    def __repr__(self) -> str:
        return f"L1RegUnsupervised(lambda_reg={self.lambda_reg})"
