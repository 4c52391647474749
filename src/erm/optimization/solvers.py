"""
Solvers for regularized empirical risk minimization.

Every solver minimizes

    loss(X @ θ, Y) + λ · reg(θ, w)

over θ (d × p), where ``w`` are the per-feature regularization weights of
the model. ``get_solver`` picks a solver from the kinds of the loss and the
regularizer:

    >>> from erm.objectives import SquareLoss, L2Reg
    >>> solver = get_solver(SquareLoss(), L2Reg())   # RidgeSolver()
    >>> theta = solver.solve(SquareLoss(), L2Reg(), w, X, Y, lambda_reg=0.1)
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple
import warnings

import numpy as np
from scipy.optimize import minimize

from ..objectives.losses import Loss
from ..objectives.regularizers import Regularizer


def _initial_theta(theta_guess, d, p):
    if theta_guess is None:
        return np.zeros((d, p))
    theta = np.array(theta_guess, dtype=float)
    if theta.shape != (d, p):
        raise ValueError(
            f"theta_guess has shape {theta.shape}, expected ({d}, {p})"
        )
    return theta


class Solver(ABC):
    """Base class for supervised solvers."""

    @abstractmethod
    def solve(
        self,
        loss: Loss,
        regularizer: Regularizer,
        regweights: np.ndarray,
        Xtrain: np.ndarray,
        Ytrain: np.ndarray,
        lambda_reg: float,
        theta_guess: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Fit parameters on the training rows.

        Parameters:
            loss: Supervised loss
            regularizer: Supervised regularizer
            regweights: Per-feature penalty weights (d,)
            Xtrain: Features (n × d)
            Ytrain: Targets (n × p)
            lambda_reg: Regularization strength (λ >= 0)
            theta_guess: Optional starting point (d × p) for iterative solvers

        Returns:
            theta: Fitted parameters (d × p)
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DefaultSolver(Solver):
    """Placeholder meaning "pick a solver from the loss and regularizer"."""

    def solve(self, loss, regularizer, regweights, Xtrain, Ytrain, lambda_reg,
              theta_guess=None):
        raise RuntimeError(
            "DefaultSolver is a placeholder; resolve it with get_solver() first"
        )


class RidgeSolver(Solver):
    """
    Closed-form solver for square loss with L2 or no regularization.

    Solves the stacked least-squares problem

        [ X / √n      ]       [ Y / √n ]
        [ diag(√(λw)) ] θ  ≈  [   0    ]

    with ``np.linalg.lstsq``, which stays well defined for collinear or
    unpenalized features. ``theta_guess`` is ignored.
    """

    def solve(self, loss, regularizer, regweights, Xtrain, Ytrain, lambda_reg,
              theta_guess=None):
        if loss.kind != "square" or regularizer.kind not in ("l2", "none"):
            raise ValueError(
                f"RidgeSolver needs square loss with l2 or no regularization, "
                f"got {loss!r} and {regularizer!r}"
            )
        n, d = Xtrain.shape
        A = Xtrain / np.sqrt(n)
        B = Ytrain / np.sqrt(n)
        if regularizer.kind == "l2" and lambda_reg > 0:
            penalty = np.diag(np.sqrt(lambda_reg * np.asarray(regweights, dtype=float)))
            A = np.vstack([A, penalty])
            B = np.vstack([B, np.zeros((d, Ytrain.shape[1]))])
        theta, *_ = np.linalg.lstsq(A, B, rcond=None)
        return theta


class LBFGSSolver(Solver):
    """
    Quasi-Newton solver for smooth losses with smooth regularizers.

    Parameters:
        max_iters: Iteration cap passed to L-BFGS-B
        tol: Gradient tolerance
    """

    def __init__(self, max_iters: int = 1000, tol: float = 1e-8):
        if max_iters < 1:
            raise ValueError(f"max_iters must be positive, got {max_iters}")
        self.max_iters = max_iters
        self.tol = tol

    def solve(self, loss, regularizer, regweights, Xtrain, Ytrain, lambda_reg,
              theta_guess=None):
        if not (loss.smooth and regularizer.smooth):
            raise ValueError(
                f"LBFGSSolver needs a smooth loss and regularizer, "
                f"got {loss!r} and {regularizer!r}"
            )
        d, p = Xtrain.shape[1], Ytrain.shape[1]
        theta0 = _initial_theta(theta_guess, d, p)

        def objective(flat):
            theta = flat.reshape(d, p)
            yhat = Xtrain @ theta
            f = loss.loss(yhat, Ytrain) + lambda_reg * regularizer.value(theta, regweights)
            g = Xtrain.T @ loss.grad(yhat, Ytrain) + lambda_reg * regularizer.grad(theta, regweights)
            return f, g.ravel()

        result = minimize(
            objective, theta0.ravel(), jac=True, method='L-BFGS-B',
            options={'maxiter': self.max_iters, 'gtol': self.tol, 'ftol': 1e-14}
        )
        if result.nit >= self.max_iters:
            warnings.warn(
                f"LBFGSSolver reached max_iters ({self.max_iters}): {result.message}",
                RuntimeWarning
            )
        return result.x.reshape(d, p)

    def __repr__(self) -> str:
        return f"LBFGSSolver(max_iters={self.max_iters}, tol={self.tol})"


class ProxGradientSolver(Solver):
    """
    Proximal gradient descent with backtracking, for smooth losses with
    any regularizer that has a prox (e.g. L1).

    Each step takes ``θ⁺ = prox_{tλ r}(θ - t ∇loss)`` and shrinks ``t`` by
    ``beta`` until the quadratic upper bound

        loss(θ⁺) <= loss(θ) + <∇loss, θ⁺ - θ> + ||θ⁺ - θ||² / (2t)

    holds. After an accepted step ``t`` grows by ``1 / beta``. Stops when
    the relative change in θ falls below ``tol``.
    """

    def __init__(
        self,
        max_iters: int = 5000,
        tol: float = 1e-8,
        t_init: float = 1.0,
        beta: float = 0.5
    ):
        if max_iters < 1:
            raise ValueError(f"max_iters must be positive, got {max_iters}")
        if not 0 < beta < 1:
            raise ValueError(f"beta must be in (0, 1), got {beta}")
        self.max_iters = max_iters
        self.tol = tol
        self.t_init = t_init
        self.beta = beta

    def solve(self, loss, regularizer, regweights, Xtrain, Ytrain, lambda_reg,
              theta_guess=None):
        if not loss.smooth:
            raise ValueError(f"ProxGradientSolver needs a smooth loss, got {loss!r}")
        d, p = Xtrain.shape[1], Ytrain.shape[1]
        theta = _initial_theta(theta_guess, d, p)

        def f(th):
            return loss.loss(Xtrain @ th, Ytrain)

        t = self.t_init
        for _ in range(self.max_iters):
            fx = f(theta)
            g = Xtrain.T @ loss.grad(Xtrain @ theta, Ytrain)
            while True:
                candidate = regularizer.prox(theta - t * g, t * lambda_reg, regweights)
                diff = candidate - theta
                bound = fx + np.sum(g * diff) + np.sum(diff ** 2) / (2 * t)
                if f(candidate) <= bound:
                    break
                t *= self.beta
            step = np.linalg.norm(diff)
            theta = candidate
            t /= self.beta
            if step <= self.tol * max(1.0, np.linalg.norm(theta)):
                return theta
        warnings.warn(
            f"ProxGradientSolver did not converge in {self.max_iters} iterations",
            RuntimeWarning
        )
        return theta

    def __repr__(self) -> str:
        return (
            f"ProxGradientSolver(max_iters={self.max_iters}, tol={self.tol}, "
            f"t_init={self.t_init}, beta={self.beta})"
        )


# Solver factories keyed by (loss.kind, regularizer.kind)
_SOLVERS: Dict[Tuple[str, str], Callable[[], Solver]] = {
    ("square", "l2"): RidgeSolver,
    ("square", "none"): RidgeSolver,
    ("square", "l1"): ProxGradientSolver,
    ("huber", "l2"): LBFGSSolver,
    ("huber", "none"): LBFGSSolver,
    ("huber", "l1"): ProxGradientSolver,
    ("logistic", "l2"): LBFGSSolver,
    ("logistic", "none"): LBFGSSolver,
    ("logistic", "l1"): ProxGradientSolver,
}


def register_solver(loss_kind: str, reg_kind: str, factory: Callable[[], Solver]):
    """Make ``get_solver`` return ``factory()`` for this (loss, regularizer) pair."""
    _SOLVERS[(loss_kind, reg_kind)] = factory


def get_solver(loss: Loss, regularizer: Regularizer) -> Solver:
    """
    Factory function for solvers.

    Parameters:
        loss: Supervised loss; its ``kind`` is the first lookup key
        regularizer: Supervised regularizer; its ``kind`` is the second key

    Returns:
        solver: A fresh solver instance for the pair

    Raises:
        ValueError: If no solver is registered for the pair
    """
    key = (loss.kind, regularizer.kind)
    if key not in _SOLVERS:
        raise ValueError(
            f"No solver for loss '{key[0]}' with regularizer '{key[1]}'. "
            f"Available: {sorted(_SOLVERS)}"
        )
    return _SOLVERS[key]()
