"""
Result records produced by the supervised fit driver.

Every fit creates a fresh record and stores it on the model's current data
partition. Records are frozen; nothing mutates them after creation.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class NoResults:
    """The partition has not been fitted yet."""

    def summary(self) -> str:
        return "\n".join([
            "-" * 40,
            "No results: model has not been trained",
        ])


@dataclass(frozen=True, eq=False)
class PointResults:
    """
    Outcome of a single fit at one regularization strength.

    Attributes:
        theta: Learned parameters (d × p)
        lambda_reg: Regularization strength used
        trainloss: Loss on the training rows
        testloss: Loss on the held-out rows
    """

    theta: np.ndarray
    lambda_reg: float
    trainloss: float
    testloss: float

    @property
    def lambdaopt(self) -> float:
        return self.lambda_reg

    def summary(self) -> str:
        return "\n".join([
            "-" * 40,
            "Results for single train/test",
            f"  training loss: {self.trainloss}",
            f"  test loss: {self.testloss}",
        ])


@dataclass(frozen=True)
class FoldResults:
    """
    Outcome of k-fold cross validation, one ``PointResults`` per fold.

    Aggregate losses are the mean over folds.
    """

    results: Tuple[PointResults, ...]

    def __post_init__(self):
        object.__setattr__(self, 'results', tuple(self.results))

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, i: int) -> PointResults:
        return self.results[i]

    @property
    def nfolds(self) -> int:
        return len(self.results)

    @property
    def trainlosses(self) -> np.ndarray:
        return np.array([r.trainloss for r in self.results])

    @property
    def testlosses(self) -> np.ndarray:
        return np.array([r.testloss for r in self.results])

    @property
    def trainloss(self) -> float:
        return float(np.mean(self.trainlosses))

    @property
    def testloss(self) -> float:
        return float(np.mean(self.testlosses))

    @property
    def lambdaopt(self) -> float:
        return self.results[0].lambda_reg

    def summary(self) -> str:
        lines = [
            "-" * 40,
            f"Results for {self.nfolds}-fold cross validation",
        ]
        for i, r in enumerate(self.results):
            lines.append(
                f"  fold {i}: training loss: {r.trainloss}, test loss: {r.testloss}"
            )
        lines.append(f"  mean training loss: {self.trainloss}")
        lines.append(f"  mean test loss: {self.testloss}")
        return "\n".join(lines)


@dataclass(frozen=True)
class RegPathResults:
    """
    Outcome of fitting along a regularization path.

    Attributes:
        results: One ``PointResults`` per grid point, in grid order
        imin: Index of the entry with the smallest test loss

    The scalar accessors (``theta``, ``trainloss``, ``testloss``,
    ``lambdaopt``) report the entry at ``imin``.
    """

    results: Tuple[PointResults, ...]
    imin: int

    def __post_init__(self):
        object.__setattr__(self, 'results', tuple(self.results))
        if not 0 <= self.imin < len(self.results):
            raise ValueError(
                f"imin ({self.imin}) out of range for {len(self.results)} results"
            )

    @classmethod
    def from_results(cls, results: Sequence[PointResults]) -> 'RegPathResults':
        """Build a path record, locating the minimal test loss (first on ties, NaN ignored)."""
        if len(results) == 0:
            raise ValueError("Regularization path needs at least one result")
        testlosses = np.array([r.testloss for r in results], dtype=float)
        if np.all(np.isnan(testlosses)):
            imin = 0
        else:
            imin = int(np.nanargmin(testlosses))
        return cls(results=tuple(results), imin=imin)

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, i: int) -> PointResults:
        return self.results[i]

    @property
    def best(self) -> PointResults:
        return self.results[self.imin]

    @property
    def lambdas(self) -> np.ndarray:
        return np.array([r.lambda_reg for r in self.results])

    @property
    def trainlosses(self) -> np.ndarray:
        return np.array([r.trainloss for r in self.results])

    @property
    def testlosses(self) -> np.ndarray:
        return np.array([r.testloss for r in self.results])

    @property
    def theta(self) -> np.ndarray:
        return self.best.theta

    @property
    def trainloss(self) -> float:
        return self.best.trainloss

    @property
    def testloss(self) -> float:
        return self.best.testloss

    @property
    def lambdaopt(self) -> float:
        return self.best.lambda_reg

    def summary(self) -> str:
        return "\n".join([
            "-" * 40,
            "Optimal results along regpath",
            f"  optimal lambda: {self.lambdaopt}",
            f"  optimal test loss: {self.testloss}",
        ])

    def plot(self, figsize=(6, 4)):
        """
        Plot train and test loss against lambda on a log axis.

        Requires matplotlib (``pip install erm[plot]``).

        Returns:
            The matplotlib Figure
        """
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=figsize)
        ax.semilogx(self.lambdas, self.trainlosses, 'b-', label='Train', linewidth=2)
        ax.semilogx(self.lambdas, self.testlosses, 'r-', label='Test', linewidth=2)
        ax.axvline(self.lambdaopt, color='k', linestyle='--', alpha=0.5)
        ax.set_xlabel('lambda')
        ax.set_ylabel('Loss')
        ax.set_title('Regularization Path')
        ax.legend()
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig
