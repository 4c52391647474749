"""
Tests for train/test splitting and fold generation.

Run with: pytest tests/test_splits.py -v
"""

import numpy as np
import pytest
from erm.data.splits import splitrows, getfoldrows


class TestFractionSplit:
    """Test splitrows with a train fraction."""

    @pytest.mark.parametrize("n,frac,ntrain", [
        (10, 0.8, 8),
        (7, 0.3, 2),
        (25, 0.6, 15),
        (3, 0.9, 3),
        (9, 0.25, 2),
    ])
    def test_sizes_and_partition(self, n, frac, ntrain):
        """Train has round(frac*n) rows; train and test partition 0..n-1."""
        train, test = splitrows(n, frac, random_state=0)

        assert len(train) == ntrain
        assert len(set(train) & set(test)) == 0
        assert set(train) | set(test) == set(range(n))

    def test_sorted_output(self):
        """Both index sets come back sorted ascending."""
        train, test = splitrows(50, 0.7, random_state=1)

        assert np.all(np.diff(train) > 0)
        assert np.all(np.diff(test) > 0)

    def test_random_seed(self):
        """Test reproducibility with random seed."""
        train1, test1 = splitrows(30, 0.5, random_state=42)
        train2, test2 = splitrows(30, 0.5, random_state=42)

        np.testing.assert_array_equal(train1, train2)
        np.testing.assert_array_equal(test1, test2)

    def test_full_fraction(self):
        """trainfrac=1 puts every row in train."""
        train, test = splitrows(6, 1.0, random_state=0)

        np.testing.assert_array_equal(train, np.arange(6))
        assert len(test) == 0

    @pytest.mark.parametrize("frac", [0.0, -0.2, 1.5])
    def test_invalid_fraction(self, frac):
        """Fractions outside (0, 1] are rejected."""
        with pytest.raises(ValueError, match="trainfrac must be in"):
            splitrows(10, frac)

    def test_invalid_splitmethod(self):
        """Unknown split methods are rejected."""
        with pytest.raises(ValueError, match="Unknown splitmethod"):
            splitrows(10, 0.5, splitmethod=2)


class TestBernoulliSplit:
    """Test splitrows with splitmethod=1."""

    def test_partition(self):
        """Bernoulli split still partitions the rows."""
        train, test = splitrows(200, 0.7, splitmethod=1, random_state=3)

        assert len(set(train) & set(test)) == 0
        assert set(train) | set(test) == set(range(200))

    def test_size_is_random(self):
        """Train size varies from draw to draw but stays near frac*n."""
        rng = np.random.default_rng(0)
        sizes = {
            len(splitrows(100, 0.5, splitmethod=1, random_state=rng)[0])
            for _ in range(20)
        }

        assert len(sizes) > 1
        assert all(25 < s < 75 for s in sizes)


class TestExplicitSplit:
    """Test splitrows with explicit train indices."""

    def test_complement(self):
        """Test rows are the sorted complement of the given train rows."""
        train, test = splitrows(6, np.array([4, 0, 2]))

        np.testing.assert_array_equal(train, [0, 2, 4])
        np.testing.assert_array_equal(test, [1, 3, 5])

    @pytest.mark.parametrize("rows", [[0, 6], [-1, 2]])
    def test_out_of_range(self, rows):
        """Indices outside 0..n-1 are rejected."""
        with pytest.raises(ValueError, match="Train row indices must lie in"):
            splitrows(6, np.array(rows))

    def test_non_integer_indices(self):
        """Float arrays are not index sets."""
        with pytest.raises(ValueError, match="1D integer index array"):
            splitrows(6, np.array([0.5, 0.2]))


class TestFoldRows:
    """Test getfoldrows."""

    @pytest.mark.parametrize("n,nfolds", [(10, 5), (11, 3), (7, 7), (100, 10), (13, 4)])
    def test_folds_partition_rows(self, n, nfolds):
        """Folds are disjoint, exhaustive and complementary to the non-fold sets."""
        foldrows, nonfoldrows = getfoldrows(n, nfolds, random_state=0)

        assert len(foldrows) == nfolds
        assert len(nonfoldrows) == nfolds

        allrows = set(range(n))
        union = set()
        for fold, nonfold in zip(foldrows, nonfoldrows):
            assert len(union & set(fold)) == 0
            union |= set(fold)
            assert len(set(fold) & set(nonfold)) == 0
            assert set(fold) | set(nonfold) == allrows
            assert np.all(np.diff(fold) > 0)
            assert np.all(np.diff(nonfold) > 0)
        assert union == allrows

    def test_equal_fold_sizes(self):
        """n=10, nfolds=5 gives five held-out sets of two rows."""
        foldrows, nonfoldrows = getfoldrows(10, 5, random_state=0)

        assert [len(f) for f in foldrows] == [2] * 5
        assert [len(f) for f in nonfoldrows] == [8] * 5

    def test_no_empty_folds(self):
        """No fold is empty whenever 2 <= nfolds <= n."""
        for n in range(2, 30):
            for nfolds in range(2, n + 1):
                foldrows, _ = getfoldrows(n, nfolds, random_state=n)
                sizes = [len(f) for f in foldrows]
                assert min(sizes) >= 1
                assert max(sizes) - min(sizes) <= 1

    def test_too_many_folds(self):
        """More folds than rows is rejected."""
        with pytest.raises(ValueError, match="cannot exceed"):
            getfoldrows(4, 5)

    @pytest.mark.parametrize("nfolds", [0, 1])
    def test_too_few_folds(self, nfolds):
        """Fewer than two folds is rejected."""
        with pytest.raises(ValueError, match="nfolds must be an integer >= 2"):
            getfoldrows(10, nfolds)
