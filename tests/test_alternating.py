"""
Tests for the alternating proximal-gradient factorization.

Run with: pytest tests/test_alternating.py -v
"""

import numpy as np
import pytest
from erm.objectives import (
    QuadLossUnsupervised,
    ZeroRegUnsupervised,
    NonNegRegUnsupervised
)
from erm.optimization.alternating import _backtracking_step
from erm.optimization import (
    UnsupervisedStatus,
    optimize_unsupervised,
    minimize_unsupervised
)


def assert_non_increasing(losses):
    assert np.all(np.diff(losses) <= 0), "Loss trajectory must never increase"


class TestConvergence:
    """Test convergence on exactly low-rank data."""

    def test_rank_one_ones(self):
        """ones(4, 3) is fitted to near-zero loss with k=1."""
        C = np.ones((4, 3))
        result = minimize_unsupervised(
            QuadLossUnsupervised(), ZeroRegUnsupervised(), C, 1,
            max_iters=5000, tol=1e-8, random_state=0
        )

        assert result.status is UnsupervisedStatus.CONVERGED
        assert result.converged
        assert result.final_loss < 1e-6
        assert result.final_loss <= result.initial_loss
        assert_non_increasing(result.losses)
        np.testing.assert_allclose(result.X @ result.Y.T, C, atol=1e-3)

    def test_rank_two(self):
        """A well-conditioned rank-2 matrix is recovered with k=2."""
        rng = np.random.default_rng(7)
        Q1, _ = np.linalg.qr(rng.normal(size=(8, 2)))
        Q2, _ = np.linalg.qr(rng.normal(size=(6, 2)))
        C = Q1 @ np.diag([3.0, 2.0]) @ Q2.T

        result = optimize_unsupervised(
            QuadLossUnsupervised(), ZeroRegUnsupervised(), C, 2,
            max_iters=5000, tol=1e-8, verbose=False, random_state=1
        )

        assert_non_increasing(result.losses)
        assert result.final_loss < 1e-3 * result.initial_loss

    def test_histories(self):
        """Histories hold the initial point plus one entry per iteration."""
        result = minimize_unsupervised(
            QuadLossUnsupervised(), ZeroRegUnsupervised(), np.ones((4, 3)), 1,
            random_state=0
        )

        assert len(result.X_history) == result.n_iter + 1
        assert len(result.Y_history) == result.n_iter + 1
        assert result.X.shape == (4, 1)
        assert result.Y.shape == (3, 1)

    def test_random_seed(self):
        """Test reproducibility with random seed."""
        C = np.arange(12, dtype=float).reshape(4, 3)
        r1 = minimize_unsupervised(QuadLossUnsupervised(), ZeroRegUnsupervised(), C, 2,
                                   max_iters=50, random_state=42)
        r2 = minimize_unsupervised(QuadLossUnsupervised(), ZeroRegUnsupervised(), C, 2,
                                   max_iters=50, random_state=42)

        np.testing.assert_array_equal(r1.X, r2.X)
        np.testing.assert_array_equal(r1.losses, r2.losses)

    def test_quiet_by_default(self, capsys):
        minimize_unsupervised(QuadLossUnsupervised(), ZeroRegUnsupervised(),
                              np.ones((4, 3)), 1, random_state=0)

        assert capsys.readouterr().out == ""

    def test_verbose_progress(self, capsys):
        optimize_unsupervised(QuadLossUnsupervised(), ZeroRegUnsupervised(),
                              np.ones((4, 3)), 1, random_state=0)

        out = capsys.readouterr().out
        assert "Shape is 4 by 3" in out
        assert "Converged" in out


class TestFailureModes:
    """Test that non-convergence is reported as data."""

    def test_stalled_at_optimum(self):
        """Starting at an exact solution, neither block can make progress."""
        C = np.ones((4, 3))
        init = (np.ones((4, 1)), np.ones((3, 1)))

        with pytest.warns(RuntimeWarning, match="not making any progress"):
            result = minimize_unsupervised(
                QuadLossUnsupervised(), ZeroRegUnsupervised(), C, 1, init=init
            )

        assert result.status is UnsupervisedStatus.STALLED
        assert not result.converged
        assert result.n_iter == 1
        assert result.final_loss == 0.0
        np.testing.assert_array_equal(result.X, init[0])

    def test_max_iterations(self):
        """Hitting max_iters is distinguished from convergence."""
        rng = np.random.default_rng(0)
        C = rng.normal(size=(6, 5))

        with pytest.warns(RuntimeWarning, match="Did not converge"):
            result = minimize_unsupervised(
                QuadLossUnsupervised(), ZeroRegUnsupervised(), C, 2,
                max_iters=3, random_state=0
            )

        assert result.status is UnsupervisedStatus.MAX_ITERATIONS
        assert result.n_iter == 3
        assert_non_increasing(result.losses)


class TestInitialization:
    """Test initial factors and parameter validation."""

    def test_init_is_used(self):
        X0 = np.full((4, 1), 0.5)
        Y0 = np.full((3, 1), 0.5)
        result = minimize_unsupervised(
            QuadLossUnsupervised(), ZeroRegUnsupervised(), np.ones((4, 3)), 1,
            init=(X0, Y0), max_iters=10
        )

        np.testing.assert_array_equal(result.X_history[0], X0)
        np.testing.assert_array_equal(result.Y_history[0], Y0)
        assert result.initial_loss == pytest.approx(12 * 0.75 ** 2)

    def test_mismatched_x(self):
        with pytest.raises(ValueError, match="Initial X has shape"):
            minimize_unsupervised(
                QuadLossUnsupervised(), ZeroRegUnsupervised(), np.ones((4, 3)), 1,
                init=(np.ones((3, 1)), np.ones((3, 1)))
            )

    def test_mismatched_y(self):
        with pytest.raises(ValueError, match="Initial Y has shape"):
            minimize_unsupervised(
                QuadLossUnsupervised(), ZeroRegUnsupervised(), np.ones((4, 3)), 1,
                init=(np.ones((4, 1)), np.ones((3, 2)))
            )

    @pytest.mark.parametrize("kwargs,match", [
        ({"k": 0}, "k must be positive"),
        ({"beta": 1.0}, "beta must be in"),
        ({"t_init": 0.0}, "step sizes must be positive"),
        ({"max_iters": 0}, "max_iters must be positive"),
    ])
    def test_invalid_parameters(self, kwargs, match):
        params = {"k": 1}
        params.update(kwargs)
        with pytest.raises(ValueError, match=match):
            minimize_unsupervised(QuadLossUnsupervised(), ZeroRegUnsupervised(),
                                  np.ones((4, 3)), **params)


class TestRegularization:
    """Test proximal steps on X and Y."""

    def test_nonneg_on_x_only(self):
        """The regularizer's prox keeps every X iterate nonnegative."""
        rng = np.random.default_rng(2)
        C = rng.normal(size=(5, 4))
        result = minimize_unsupervised(
            QuadLossUnsupervised(), NonNegRegUnsupervised(), C, 2,
            max_iters=200, random_state=3
        )

        assert all(np.all(X >= 0) for X in result.X_history[1:])
        assert_non_increasing(result.losses)

    def test_reg_y(self):
        """reg_y constrains the Y block."""
        rng = np.random.default_rng(2)
        C = rng.normal(size=(5, 4))
        result = minimize_unsupervised(
            QuadLossUnsupervised(), ZeroRegUnsupervised(), C, 2,
            max_iters=200, random_state=3, reg_y=NonNegRegUnsupervised()
        )

        assert all(np.all(Y >= 0) for Y in result.Y_history[1:])


class TestBacktrackingStep:
    """Test the single-block step size rules."""

    def test_success_doubles_step(self):
        current = np.array([[2.0]])
        new, t, progress = _backtracking_step(
            lambda M: float(np.sum(M ** 2)), lambda M: M,
            current, 2 * current, 0.25, 0.5, 1e-15
        )

        assert progress
        np.testing.assert_allclose(new, [[1.0]])
        assert t == 0.5

    def test_failure_keeps_value_and_doubles_step(self):
        """A block that gives up keeps its value; the step is still doubled."""
        current = np.array([[1.0]])
        new, t, progress = _backtracking_step(
            lambda M: 0.0, lambda M: M,
            current, np.array([[1.0]]), 1.0, 0.5, 0.1
        )

        assert not progress
        assert new is current
        assert t == 2 * 0.0625
