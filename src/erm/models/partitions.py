"""
Data partitions held by ``Model.D``.

A model's partition is exactly one of:

* ``Unsplit``     - nothing computed yet
* ``SplitData``   - one train/test split
* ``FoldedData``  - a k-fold partition

Each carries the ``data_version`` of the feature matrices it was cut from,
so the model can tell when a partition has gone stale, and a ``results``
slot holding the record of the latest fit on it.
"""

from dataclasses import dataclass, field
from numbers import Real
from typing import Any, List

import numpy as np

from ..data.splits import RandomState, getfoldrows, splitrows
from .results import NoResults


@dataclass
class Unsplit:
    """Placeholder partition: the data has not been split yet."""

    results: Any = field(default_factory=NoResults)
    data_version: int = -1


@dataclass
class SplitData:
    """
    A single train/test split of the feature matrices.

    Attributes:
        Xtrain, Ytrain: Rows ``trainrows`` of X and Y
        Xtest, Ytest: Rows ``testrows`` of X and Y
        trainrows, testrows: Sorted, disjoint, exhaustive row indices
        trainfrac: The fraction or index array the split was drawn with
        splitmethod: 0 = permutation split, 1 = Bernoulli split
        results: NoResults or the record of the latest fit on this split
        data_version: Model data version the split was computed against
    """

    Xtrain: np.ndarray
    Ytrain: np.ndarray
    Xtest: np.ndarray
    Ytest: np.ndarray
    trainrows: np.ndarray
    testrows: np.ndarray
    trainfrac: Any
    splitmethod: int = 0
    results: Any = field(default_factory=NoResults)
    data_version: int = -1

    @classmethod
    def from_xy(
        cls,
        X: np.ndarray,
        Y: np.ndarray,
        trainfrac,
        splitmethod: int = 0,
        random_state: RandomState = None,
        data_version: int = -1
    ) -> 'SplitData':
        """Draw a split of the rows of ``X`` and ``Y``."""
        trainrows, testrows = splitrows(
            X.shape[0], trainfrac,
            splitmethod=splitmethod, random_state=random_state
        )
        return cls(
            Xtrain=X[trainrows, :],
            Ytrain=Y[trainrows, :],
            Xtest=X[testrows, :],
            Ytest=Y[testrows, :],
            trainrows=trainrows,
            testrows=testrows,
            trainfrac=trainfrac,
            splitmethod=splitmethod,
            data_version=data_version,
        )

    def same_trainfrac(self, trainfrac) -> bool:
        """Whether ``trainfrac`` asks for the split this object holds."""
        if isinstance(self.trainfrac, Real) != isinstance(trainfrac, Real):
            return False
        if isinstance(trainfrac, Real):
            return trainfrac == self.trainfrac
        return np.array_equal(np.unique(trainfrac), self.trainrows)


@dataclass
class FoldedData:
    """
    A k-fold partition of the feature matrices.

    ``foldrows[i]`` is the held-out set of fold ``i`` and ``nonfoldrows[i]``
    its complement.
    """

    X: np.ndarray
    Y: np.ndarray
    nfolds: int
    foldrows: List[np.ndarray]
    nonfoldrows: List[np.ndarray]
    results: Any = field(default_factory=NoResults)
    data_version: int = -1

    @classmethod
    def from_xy(
        cls,
        X: np.ndarray,
        Y: np.ndarray,
        nfolds: int,
        random_state: RandomState = None,
        data_version: int = -1
    ) -> 'FoldedData':
        """Draw a fold partition of the rows of ``X`` and ``Y``."""
        foldrows, nonfoldrows = getfoldrows(
            X.shape[0], nfolds, random_state=random_state
        )
        return cls(
            X=X,
            Y=Y,
            nfolds=nfolds,
            foldrows=foldrows,
            nonfoldrows=nonfoldrows,
            data_version=data_version,
        )

    def Xtrain(self, fold: int) -> np.ndarray:
        return self.X[self.nonfoldrows[fold], :]

    def Ytrain(self, fold: int) -> np.ndarray:
        return self.Y[self.nonfoldrows[fold], :]

    def Xtest(self, fold: int) -> np.ndarray:
        return self.X[self.foldrows[fold], :]

    def Ytest(self, fold: int) -> np.ndarray:
        return self.Y[self.foldrows[fold], :]
