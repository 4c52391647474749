"""
Supervised regularizers.

A regularizer penalizes the rows of ``theta`` (d × p) with per-feature
weights ``w`` (d,). Weight 0 switches the penalty off for a feature,
which is how intercept columns stay unregularized.

``prox(theta, step, w)`` is the proximal operator of ``step * value(·, w)``.
"""

from abc import ABC, abstractmethod

import numpy as np


def _column(regweights: np.ndarray) -> np.ndarray:
    return np.asarray(regweights, dtype=float)[:, None]


class Regularizer(ABC):
    """Base class for supervised regularizers."""

    kind: str = "abstract"
    smooth: bool = True

    @abstractmethod
    def value(self, theta: np.ndarray, regweights: np.ndarray) -> float:
        pass

    @abstractmethod
    def prox(self, theta: np.ndarray, step: float, regweights: np.ndarray) -> np.ndarray:
        pass

    def grad(self, theta: np.ndarray, regweights: np.ndarray) -> np.ndarray:
        raise NotImplementedError(f"{type(self).__name__} is not differentiable")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class L2Reg(Regularizer):
    """r(θ) = Σ_i w_i ||θ_i||²"""

    kind = "l2"

    def value(self, theta, regweights):
        return float(np.sum(_column(regweights) * theta ** 2))

    def grad(self, theta, regweights):
        return 2 * _column(regweights) * theta

    def prox(self, theta, step, regweights):
        return theta / (1 + 2 * step * _column(regweights))


class L1Reg(Regularizer):
    """r(θ) = Σ_ij w_i |θ_ij|"""

    kind = "l1"
    smooth = False

    def value(self, theta, regweights):
        return float(np.sum(_column(regweights) * np.abs(theta)))

    def prox(self, theta, step, regweights):
        threshold = step * _column(regweights)
        return np.sign(theta) * np.maximum(np.abs(theta) - threshold, 0)


class NoReg(Regularizer):
    """r(θ) = 0"""

    kind = "none"

    def value(self, theta, regweights):
        return 0.0

    def grad(self, theta, regweights):
        return np.zeros_like(theta)

    def prox(self, theta, step, regweights):
        return theta
