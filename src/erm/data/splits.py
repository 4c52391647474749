"""
Train/test splits and k-fold partitions of data rows.

Row indices are 0-based. Every generator takes a ``random_state`` so a
partition can be reproduced by seeding:

    >>> from erm.data.splits import splitrows, getfoldrows
    >>> train, test = splitrows(10, 0.8, random_state=0)
    >>> folds, nonfolds = getfoldrows(10, 5, random_state=0)
"""

from numbers import Integral, Real
from typing import List, Tuple, Union

import numpy as np


RandomState = Union[None, int, np.random.Generator]


def _round_half_up(x: float) -> int:
    return int(np.floor(x + 0.5))


def splitrows(
    n: int,
    trainfrac,
    splitmethod: int = 0,
    random_state: RandomState = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split rows ``0..n-1`` into sorted, disjoint train and test index arrays.

    Parameters:
        n: Number of rows
        trainfrac: Either a fraction in (0, 1] or an explicit array of
            train row indices
        splitmethod: For fractional splits only.
            0 = random permutation, exactly round(trainfrac * n) train rows
            1 = independent Bernoulli(trainfrac) draw per row
        random_state: Seed or numpy Generator

    Returns:
        trainrows, testrows: Sorted integer arrays

    Raises:
        ValueError: On out-of-range indices, fractions or split methods
    """
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")

    if isinstance(trainfrac, Real) and not isinstance(trainfrac, bool):
        return _split_fraction(n, float(trainfrac), splitmethod, random_state)

    trainrows = np.asarray(trainfrac)
    if trainrows.ndim != 1 or not np.issubdtype(trainrows.dtype, np.integer):
        raise ValueError(
            f"trainfrac must be a fraction or a 1D integer index array, "
            f"got {trainfrac!r}"
        )
    if trainrows.size and (trainrows.min() < 0 or trainrows.max() >= n):
        raise ValueError(
            f"Train row indices must lie in [0, {n - 1}], "
            f"got range [{trainrows.min()}, {trainrows.max()}]"
        )

    trainrows = np.unique(trainrows)
    testrows = np.setdiff1d(np.arange(n), trainrows)
    return trainrows, testrows


def _split_fraction(n, trainfrac, splitmethod, random_state):
    if not 0 < trainfrac <= 1:
        raise ValueError(f"trainfrac must be in (0, 1], got {trainfrac}")

    rng = np.random.default_rng(random_state)

    if splitmethod == 0:
        ntrain = _round_half_up(trainfrac * n)
        p = rng.permutation(n)
        trainrows = np.sort(p[:ntrain])
        testrows = np.sort(p[ntrain:])
    elif splitmethod == 1:
        # Test set size is random here
        intrain = rng.random(n) <= trainfrac
        trainrows = np.flatnonzero(intrain)
        testrows = np.flatnonzero(~intrain)
    else:
        raise ValueError(f"Unknown splitmethod: {splitmethod}")

    return trainrows, testrows


def getfoldrows(
    n: int,
    nfolds: int,
    random_state: RandomState = None
) -> Tuple[List[np.ndarray], List[np.ndarray]]:
    """
    Partition rows ``0..n-1`` into ``nfolds`` held-out groups.

    One random permutation ``p`` is cut at the boundaries
    ``round(i * n / nfolds)`` for ``i = 0..nfolds``; fold ``i`` holds out
    ``p[groups[i]:groups[i+1]]`` and trains on everything else. Both index
    sets are returned sorted.

    Since the boundaries are at least one row apart and rounded half-up,
    no fold is empty as long as ``2 <= nfolds <= n``. Anything else is
    rejected.

    Returns:
        foldrows: List of held-out index arrays, one per fold
        nonfoldrows: List of the complementary training index arrays
    """
    if not isinstance(nfolds, Integral) or nfolds < 2:
        raise ValueError(f"nfolds must be an integer >= 2, got {nfolds}")
    if nfolds > n:
        raise ValueError(
            f"nfolds ({nfolds}) cannot exceed the number of rows ({n})"
        )

    groups = [_round_half_up(i * n / nfolds) for i in range(nfolds + 1)]

    rng = np.random.default_rng(random_state)
    p = rng.permutation(n)

    foldrows = []
    nonfoldrows = []
    for i in range(nfolds):
        lo, hi = groups[i], groups[i + 1]
        foldrows.append(np.sort(p[lo:hi]))
        nonfoldrows.append(np.sort(np.concatenate([p[:lo], p[hi:]])))

    return foldrows, nonfoldrows
