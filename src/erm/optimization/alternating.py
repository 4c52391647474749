"""
Alternating proximal gradient for unsupervised factorization.

Finds X (n × k) and Y (d × k) minimizing

    L(C, X, Y) + r(X)

by alternating a backtracking proximal-gradient step on X (Y fixed) with
one on Y (X fixed). Unlike the closed-form ALS updates, any loss with a
gradient and any regularizer with a prox can be plugged in.

Step-size heuristic per block:
1. Try the step ``t`` carried over from the previous iteration
2. Shrink ``t *= beta`` until the candidate strictly lowers the loss,
   giving up once ``t < t_min`` (the block keeps its old value)
3. Double ``t`` for the next iteration

Because a block only moves when the loss strictly drops, the recorded
loss trajectory never increases.

Example:
    >>> from erm.objectives import QuadLossUnsupervised, ZeroRegUnsupervised
    >>> result = minimize_unsupervised(
    ...     QuadLossUnsupervised(), ZeroRegUnsupervised(), C, k=2
    ... )
    >>> result.status
    <UnsupervisedStatus.CONVERGED: 'converged'>
    >>> C_hat = result.X @ result.Y.T
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple
import warnings

import numpy as np

from ..objectives.unsupervised import (
    LossUnsupervised,
    RegularizerUnsupervised,
    ZeroRegUnsupervised
)


class UnsupervisedStatus(Enum):
    """How the alternating optimizer stopped."""

    CONVERGED = "converged"
    STALLED = "stalled"
    MAX_ITERATIONS = "max_iterations"


@dataclass
class UnsupervisedResult:
    """
    Outcome of ``optimize_unsupervised``.

    Attributes:
        status: CONVERGED, STALLED (neither block could lower the loss) or
            MAX_ITERATIONS
        X_history: Iterates of X, starting with the initial value
        Y_history: Iterates of Y, starting with the initial value
        losses: Loss after each iteration (non-increasing)
        initial_loss: Loss at the initial point
    """

    status: UnsupervisedStatus
    X_history: List[np.ndarray] = field(default_factory=list)
    Y_history: List[np.ndarray] = field(default_factory=list)
    losses: List[float] = field(default_factory=list)
    initial_loss: float = float('nan')

    @property
    def X(self) -> np.ndarray:
        return self.X_history[-1]

    @property
    def Y(self) -> np.ndarray:
        return self.Y_history[-1]

    @property
    def n_iter(self) -> int:
        return len(self.losses)

    @property
    def final_loss(self) -> float:
        return self.losses[-1] if self.losses else self.initial_loss

    @property
    def converged(self) -> bool:
        return self.status is UnsupervisedStatus.CONVERGED

    def plot_loss_curve(self, figsize=(6, 4)):
        """
        Plot the loss trajectory on a log scale.

        Requires matplotlib (``pip install erm[plot]``).
        """
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=figsize)
        ax.semilogy(range(1, self.n_iter + 1), self.losses, 'b-', linewidth=2)
        ax.set_xlabel('Iteration')
        ax.set_ylabel('Loss')
        ax.set_title(f'Alternating Proximal Gradient ({self.status.value})')
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig


def _initial_factors(init, n, d, k, random_state):
    if init is None:
        rng = np.random.default_rng(random_state)
        return rng.random((n, k)), rng.random((d, k))

    X0, Y0 = init
    X0 = np.array(X0, dtype=float)
    Y0 = np.array(Y0, dtype=float)
    if X0.shape != (n, k):
        raise ValueError(f"Initial X has shape {X0.shape}, expected ({n}, {k})")
    if Y0.shape != (d, k):
        raise ValueError(f"Initial Y has shape {Y0.shape}, expected ({d}, {k})")
    return X0, Y0


def _backtracking_step(objective, prox, current, grad, t, beta, t_min):
    """
    One backtracking proximal-gradient step on a single block.

    Returns:
        (new_value, t, progress). On failure ``new_value`` is ``current``.
        The returned step is doubled whether or not the step succeeded, so
        a block that gave up tries a larger step on the next iteration.
    """
    prev_loss = objective(current)
    candidate = prox(current - t * grad)
    progress = True
    while not objective(candidate) < prev_loss:
        t *= beta
        if t < t_min:
            progress = False
            candidate = current
            break
        candidate = prox(current - t * grad)
    return candidate, 2 * t, progress


def optimize_unsupervised(
    loss: LossUnsupervised,
    reg: RegularizerUnsupervised,
    C: np.ndarray,
    k: int,
    beta: float = 0.8,
    init: Optional[Tuple[np.ndarray, np.ndarray]] = None,
    t_init: float = 1.0,
    t_min: float = 1e-15,
    max_iters: int = 5000,
    tol: float = 1e-8,
    reg_y: Optional[RegularizerUnsupervised] = None,
    verbose: bool = True,
    random_state=None
) -> UnsupervisedResult:
    """
    Alternating minimization for unsupervised problems.

    Parameters:
        loss: Factorization loss with ``evaluate`` and ``deriv``
        reg: Regularizer whose prox is applied to X steps
        C: Data matrix (n × d)
        k: Rank of the factorization
        beta: Backtracking shrink factor in (0, 1)
        init: Optional (X0, Y0) with shapes (n × k) and (d × k); drawn
            uniform on [0, 1) when omitted
        t_init: Initial step size of both blocks
        t_min: Smallest step size tried before a block gives up
        max_iters: Iteration cap
        tol: Stop once the last 4 loss decreases are all below ``tol``
        reg_y: Regularizer for Y steps (default: none)
        verbose: Print progress
        random_state: Seed or numpy Generator for the random init

    Returns:
        UnsupervisedResult. ``status`` tells convergence apart from the two
        failure modes; failures also emit a RuntimeWarning.

    Raises:
        ValueError: On invalid parameters or mismatched initial factors
    """
    C = np.asarray(C, dtype=float)
    if C.ndim != 2:
        raise ValueError(f"C must be 2D, got shape {C.shape}")
    if k < 1:
        raise ValueError(f"k must be positive, got {k}")
    if not 0 < beta < 1:
        raise ValueError(f"beta must be in (0, 1), got {beta}")
    if t_init <= 0 or t_min <= 0:
        raise ValueError(f"step sizes must be positive, got t_init={t_init}, t_min={t_min}")
    if max_iters < 1:
        raise ValueError(f"max_iters must be positive, got {max_iters}")

    n, d = C.shape
    if reg_y is None:
        reg_y = ZeroRegUnsupervised()

    X, Y = _initial_factors(init, n, d, k, random_state)
    result = UnsupervisedResult(
        status=UnsupervisedStatus.MAX_ITERATIONS,
        X_history=[X],
        Y_history=[Y],
        initial_loss=loss.evaluate(C, X, Y),
    )

    if verbose:
        print(f"Solving problem. Shape is {n} by {d}, rank {k}.")
        print(f"  Initial loss: {result.initial_loss:.6g}")

    tx, ty = t_init, t_init

    for iteration in range(1, max_iters + 1):
        # 1. Step for X (Y fixed)
        grad_x = loss.deriv(C, X, Y, "X")
        X, tx, progress_x = _backtracking_step(
            lambda u: loss.evaluate(C, u, Y), reg.prox, X, grad_x, tx, beta, t_min
        )
        result.X_history.append(X)

        # 2. Step for Y (new X fixed)
        grad_y = loss.deriv(C, X, Y, "Y")
        Y, ty, progress_y = _backtracking_step(
            lambda v: loss.evaluate(C, X, v), reg_y.prox, Y, grad_y, ty, beta, t_min
        )
        result.Y_history.append(Y)

        # 3. Record loss
        result.losses.append(loss.evaluate(C, X, Y))

        if verbose and (iteration % 100 == 0 or iteration == 1):
            print(f"Iter {iteration:5d}: Loss={result.losses[-1]:.6g}")

        # 4. Check termination
        if not progress_x and not progress_y:
            result.status = UnsupervisedStatus.STALLED
            warnings.warn(
                f"Algorithm is not making any progress at iteration {iteration} "
                f"(loss {result.losses[-1]:.6g}); stopping.",
                RuntimeWarning
            )
            return result

        if iteration > 4:
            recent = np.asarray(result.losses[-5:])
            if np.max(np.abs(np.diff(recent))) < tol:
                result.status = UnsupervisedStatus.CONVERGED
                if verbose:
                    print(f"✓ Converged at iteration {iteration}")
                    print(f"  Final loss: {result.losses[-1]:.6g}")
                return result

    warnings.warn(
        f"Did not converge after {max_iters} iterations. "
        f"Loss: {result.losses[-1]:.6g}",
        RuntimeWarning
    )
    return result


def minimize_unsupervised(
    loss: LossUnsupervised,
    reg: RegularizerUnsupervised,
    C: np.ndarray,
    k: int,
    beta: float = 0.8,
    init: Optional[Tuple[np.ndarray, np.ndarray]] = None,
    t_init: float = 1.0,
    t_min: float = 1e-15,
    max_iters: int = 5000,
    tol: float = 1e-8,
    verbose: bool = False,
    **kwargs
) -> UnsupervisedResult:
    """Minimization wrapper for unsupervised learning; quiet by default."""
    return optimize_unsupervised(
        loss, reg, C, k,
        beta=beta, init=init, t_init=t_init, t_min=t_min,
        max_iters=max_iters, verbose=verbose, tol=tol, **kwargs
    )
