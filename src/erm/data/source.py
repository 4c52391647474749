"""
Data sources: turn raw inputs U and targets V into feature matrices X and Y.

A source keeps two lists of feature maps, ``Xmaps`` (applied to U) and
``Ymaps`` (applied to V). ``getXY`` stacks the output of every map
column-wise, so adding a feature never mutates matrices already handed out.

Usage:
    >>> from erm.data.source import ArraySource
    >>> S = ArraySource(U, V)
    >>> S.addfeatureU(etype="one")     # intercept
    >>> S.addfeatureU(0, stand=True)   # standardized first column of U
    >>> S.addfeatureV(0)
    >>> X, Y = S.getXY()
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.preprocessing import StandardScaler


ColumnKey = Union[int, str]


def _as_matrix(A, name: str) -> np.ndarray:
    A = np.asarray(A, dtype=float)
    if A.ndim == 1:
        A = A[:, None]
    if A.ndim != 2:
        raise ValueError(f"{name} must be 1D or 2D, got shape {A.shape}")
    return A


def _standardize(A: np.ndarray) -> np.ndarray:
    return StandardScaler().fit_transform(A)


class FeatureMap(ABC):
    """Base class for maps from raw columns to feature columns."""

    @abstractmethod
    def apply(self, A: np.ndarray) -> np.ndarray:
        """
        Map raw data to feature columns.

        Parameters:
            A: Raw data (n × m)

        Returns:
            F: Feature columns (n × width)
        """
        pass


class OneEmbedding(FeatureMap):
    """Constant column of ones (an intercept)."""

    def apply(self, A: np.ndarray) -> np.ndarray:
        return np.ones((A.shape[0], 1))

    def __repr__(self) -> str:
        return "OneEmbedding()"


class ColumnEmbedding(FeatureMap):
    """A single raw column, optionally standardized."""

    def __init__(self, col: int, name: Optional[str] = None, stand: bool = True):
        self.col = col
        self.name = name
        self.stand = stand

    def apply(self, A: np.ndarray) -> np.ndarray:
        F = A[:, [self.col]]
        if self.stand:
            F = _standardize(F)
        return F

    def __repr__(self) -> str:
        return f"ColumnEmbedding(col={self.col}, name={self.name!r}, stand={self.stand})"


class AllEmbedding(FeatureMap):
    """Every raw column, optionally standardized, optionally led by a ones column."""

    def __init__(self, stand: bool = True, addones: bool = False):
        self.stand = stand
        self.addones = addones

    def apply(self, A: np.ndarray) -> np.ndarray:
        F = _standardize(A) if self.stand else A.copy()
        if self.addones:
            F = np.hstack([np.ones((A.shape[0], 1)), F])
        return F

    def __repr__(self) -> str:
        return f"AllEmbedding(stand={self.stand}, addones={self.addones})"


class DataSource(ABC):
    """
    Contract between a model and its raw data.

    Subclasses hold raw inputs and targets and the feature maps configured
    on them.
    """

    Xmaps: List[FeatureMap]
    Ymaps: List[FeatureMap]

    @abstractmethod
    def getXY(
        self,
        Uestnumcols: int = 0,
        Vestnumcols: int = 0,
        verbose: bool = False
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Build the feature matrix X (n × d) and target matrix Y (n × p)."""
        pass

    @abstractmethod
    def getU(self) -> np.ndarray:
        pass

    @abstractmethod
    def getV(self) -> np.ndarray:
        pass

    @abstractmethod
    def addfeatureU(self, col: Optional[ColumnKey] = None, **kwargs):
        pass

    @abstractmethod
    def addfeatureV(self, col: Optional[ColumnKey] = None, **kwargs):
        pass


class ArraySource(DataSource):
    """
    In-memory data source over numeric arrays.

    Parameters:
        U: Raw inputs (n × m), or anything ``np.asarray`` accepts. A 1D
           array is treated as a single column.
        V: Raw targets (n × q)
        Unames, Vnames: Optional column names, usable as ``col`` keys.
           Taken from ``U.columns``/``V.columns`` when not given and present.

    Raises:
        ValueError: If U and V have different numbers of rows
    """

    def __init__(
        self,
        U,
        V,
        Unames: Optional[Sequence[str]] = None,
        Vnames: Optional[Sequence[str]] = None
    ):
        if Unames is None and hasattr(U, 'columns'):
            Unames = [str(c) for c in U.columns]
        if Vnames is None and hasattr(V, 'columns'):
            Vnames = [str(c) for c in V.columns]

        self.U = _as_matrix(U, "U")
        self.V = _as_matrix(V, "V")

        if self.U.shape[0] != self.V.shape[0]:
            raise ValueError(
                f"U and V must have the same number of rows, "
                f"got {self.U.shape[0]} and {self.V.shape[0]}"
            )

        self.Unames = self._check_names(Unames, self.U, "Unames")
        self.Vnames = self._check_names(Vnames, self.V, "Vnames")

        self.Xmaps: List[FeatureMap] = []
        self.Ymaps: List[FeatureMap] = []

    @staticmethod
    def _check_names(names, A, label):
        if names is None:
            return [str(i) for i in range(A.shape[1])]
        names = list(names)
        if len(names) != A.shape[1]:
            raise ValueError(
                f"{label} has {len(names)} entries but data has {A.shape[1]} columns"
            )
        return names

    @property
    def n_rows(self) -> int:
        return self.U.shape[0]

    def getU(self) -> np.ndarray:
        return self.U

    def getV(self) -> np.ndarray:
        return self.V

    def _resolve(self, col: ColumnKey, names: List[str], width: int) -> int:
        if isinstance(col, str):
            if col not in names:
                raise ValueError(f"Unknown column name: {col!r}")
            return names.index(col)
        if not 0 <= col < width:
            raise ValueError(f"Column index {col} out of range [0, {width - 1}]")
        return int(col)

    def _make_map(self, col, names, width, etype=None, stand=True, addones=False):
        if etype is None:
            etype = "one" if col is None else "real"

        if etype == "real":
            if col is None:
                raise ValueError("etype='real' needs a column")
            i = self._resolve(col, names, width)
            return ColumnEmbedding(i, name=names[i], stand=stand)
        if etype == "one":
            return OneEmbedding()
        if etype == "all":
            return AllEmbedding(stand=stand, addones=addones)
        raise ValueError(
            f"Unknown etype '{etype}'. Available: ['real', 'one', 'all']"
        )

    def addfeatureU(self, col: Optional[ColumnKey] = None, **kwargs) -> FeatureMap:
        """
        Add an input feature map.

        Parameters:
            col: Column index or name of U. Required for ``etype='real'``.
            etype: 'real' (default when col given), 'one' (default when
                   col is None) or 'all'
            stand: Standardize the raw columns (default True)
            addones: With etype='all', prepend a ones column

        Returns:
            The feature map that was added
        """
        fmap = self._make_map(col, self.Unames, self.U.shape[1], **kwargs)
        self.Xmaps.append(fmap)
        return fmap

    def addfeatureV(self, col: Optional[ColumnKey] = None, **kwargs) -> FeatureMap:
        """Add a target feature map; same arguments as ``addfeatureU``."""
        fmap = self._make_map(col, self.Vnames, self.V.shape[1], **kwargs)
        self.Ymaps.append(fmap)
        return fmap

    @staticmethod
    def _stack(maps, A, estnumcols, label, verbose):
        if not maps:
            return np.empty((A.shape[0], 0))
        F = np.hstack([fmap.apply(A) for fmap in maps])
        if verbose and estnumcols and F.shape[1] != estnumcols:
            print(f"Source: {label} estimated at {estnumcols} columns, "
                  f"feature maps produced {F.shape[1]}")
        return F

    def getXY(
        self,
        Uestnumcols: int = 0,
        Vestnumcols: int = 0,
        verbose: bool = False
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Build X and Y from the configured feature maps.

        Parameters:
            Uestnumcols: Estimated width of X (0 = unknown). A mismatch is
                only reported when ``verbose``.
            Vestnumcols: Estimated width of Y (0 = unknown)
            verbose: Print the resulting shapes

        Returns:
            X: Features (n × d), ``d = 0`` when no input maps are configured
            Y: Targets (n × p)
        """
        X = self._stack(self.Xmaps, self.U, Uestnumcols, "X", verbose)
        Y = self._stack(self.Ymaps, self.V, Vestnumcols, "Y", verbose)
        if verbose:
            print(f"Source: built X {X.shape} from {len(self.Xmaps)} maps, "
                  f"Y {Y.shape} from {len(self.Ymaps)} maps")
        return X, Y

    def __repr__(self) -> str:
        return (
            f"ArraySource("
            f"n_rows={self.n_rows}, "
            f"U_cols={self.U.shape[1]}, "
            f"V_cols={self.V.shape[1]}, "
            f"Xmaps={len(self.Xmaps)}, "
            f"Ymaps={len(self.Ymaps)})"
        )
