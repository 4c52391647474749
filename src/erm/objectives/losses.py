"""
Supervised loss functions.

A loss compares predictions ``yhat = X @ theta`` (n × p) with targets
``y`` (n × p). The scalar loss is the sum of the elementwise losses
divided by the number of rows:

    L(yhat, y) = (1/n) Σ_ij ℓ(yhat_ij, y_ij)

``kind`` identifies the loss to the solver registry and ``smooth`` tells
solvers whether ``deriv`` is a true derivative.
"""

from abc import ABC, abstractmethod

import numpy as np
from scipy.special import expit


class Loss(ABC):
    """Base class for supervised losses."""

    kind: str = "abstract"
    smooth: bool = True

    @abstractmethod
    def elementwise(self, yhat: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Elementwise loss ℓ(yhat_ij, y_ij), same shape as the inputs."""
        pass

    @abstractmethod
    def deriv(self, yhat: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Elementwise derivative ∂ℓ/∂yhat_ij."""
        pass

    def loss(self, yhat: np.ndarray, y: np.ndarray) -> float:
        """
        Scalar loss averaged over rows.

        Returns NaN for an empty set of rows (e.g. the test set of a
        ``trainfrac=1`` split).
        """
        n = yhat.shape[0]
        if n == 0:
            return float('nan')
        return float(np.sum(self.elementwise(yhat, y)) / n)

    def grad(self, yhat: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Gradient of ``loss`` with respect to ``yhat``."""
        return self.deriv(yhat, y) / yhat.shape[0]

    def predict(self, X: np.ndarray, theta: np.ndarray) -> np.ndarray:
        """Linear predictor X @ theta."""
        return X @ theta

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SquareLoss(Loss):
    """ℓ(yhat, y) = (yhat - y)²"""

    kind = "square"

    def elementwise(self, yhat, y):
        return (yhat - y) ** 2

    def deriv(self, yhat, y):
        return 2 * (yhat - y)


class HuberLoss(Loss):
    """
    Quadratic near zero, linear in the tails.

    ℓ(r) = r²                     if |r| <= delta
    ℓ(r) = delta (2|r| - delta)   otherwise

    with r = yhat - y. Matches ``SquareLoss`` for small residuals.
    """

    kind = "huber"

    def __init__(self, delta: float = 1.0):
        if delta <= 0:
            raise ValueError(f"delta must be positive, got {delta}")
        self.delta = delta

    def elementwise(self, yhat, y):
        r = np.abs(yhat - y)
        return np.where(r <= self.delta, r ** 2, self.delta * (2 * r - self.delta))

    def deriv(self, yhat, y):
        return 2 * np.clip(yhat - y, -self.delta, self.delta)

    def __repr__(self) -> str:
        return f"HuberLoss(delta={self.delta})"


class LogisticLoss(Loss):
    """
    ℓ(yhat, y) = log(1 + exp(-y · yhat)) for labels y ∈ {-1, +1}.
    """

    kind = "logistic"

    def elementwise(self, yhat, y):
        return np.logaddexp(0, -y * yhat)

    def deriv(self, yhat, y):
        return -y * expit(-y * yhat)
