"""
ERM model: data, loss, regularizer and solver, plus the cached state that
ties them together.

The model caches three derived artifacts:

1. X, Y and regweights, built from the data source
2. the partition ``D`` (Unsplit, SplitData or FoldedData)
3. the result record of the latest fit, stored on ``D.results``

Cache validity is tracked with version tokens rather than scattered flags.
Every change to the feature configuration bumps ``data_version``; X/Y are
valid when they were built at the current version, and a partition is valid
when it was cut from X/Y of the current version. Stale artifacts are rebuilt
lazily the next time a split or fit asks for them.

Usage:
    >>> from erm import Model, SquareLoss, L2Reg
    >>> M = Model(U, V, loss=SquareLoss(), reg=L2Reg(), verbose=False)
    >>> M.train(lambda_reg=0.1)
    >>> M.testloss
    >>> M.trainfolds(nfolds=5)
    >>> M.trainpath(lambda_reg=np.logspace(-3, 3, 20))
    >>> M.lambdaopt
"""

from typing import Optional, Sequence, Union
import sys
import warnings

import numpy as np

from ..data.source import ArraySource, DataSource
from ..data.splits import RandomState
from ..objectives.losses import Loss, SquareLoss
from ..objectives.regularizers import L2Reg, Regularizer
from ..optimization.solvers import DefaultSolver, Solver, get_solver
from .partitions import FoldedData, SplitData, Unsplit
from .results import FoldResults, NoResults, PointResults, RegPathResults


DEFAULT_TRAINFRAC = 0.8


class Model:
    """
    Regularized empirical risk minimization model.

    Parameters:
        U: Raw inputs (n × m)
        V: Raw targets (n × q)
        loss: Supervised loss (default SquareLoss)
        reg: Supervised regularizer (default L2Reg)
        Unames, Vnames: Optional column names for U and V
        embedall: Apply the default embedding: the first target column, and
            every input column plus a ones column. Defaults to True for U and
            V, and to False when a ready ``source`` is given
        verbose: Print progress and status after each fit
        Uestnumcols, Vestnumcols: Estimated widths of X and Y (0 = unknown),
            passed to the source as a hint
        stand: Standardize embedded columns
        random_state: Seed or numpy Generator for splits and folds
        source: A ready DataSource to use instead of wrapping U and V

    Attributes:
        D: Current partition (Unsplit, SplitData or FoldedData)
        X, Y: Cached feature and target matrices
        regweights: Per-feature penalty weights (0 for nonzero constant columns)
        istrained: Whether a fit has completed
        data_version: Counter bumped by every feature change
    """

    def __init__(
        self,
        U=None,
        V=None,
        loss: Optional[Loss] = None,
        reg: Optional[Regularizer] = None,
        Unames: Optional[Sequence[str]] = None,
        Vnames: Optional[Sequence[str]] = None,
        embedall: Optional[bool] = None,
        verbose: bool = True,
        Uestnumcols: int = 0,
        Vestnumcols: int = 0,
        stand: bool = True,
        random_state: RandomState = None,
        source: Optional[DataSource] = None
    ):
        if source is None:
            if U is None or V is None:
                raise ValueError("Provide U and V, or a DataSource via source=")
            source = ArraySource(U, V, Unames=Unames, Vnames=Vnames)
            if embedall is None:
                embedall = True
        elif embedall is None:
            # A ready source brings its own feature maps
            embedall = False
        if Uestnumcols < 0 or Vestnumcols < 0:
            raise ValueError(
                f"Column estimates must be non-negative, "
                f"got Uestnumcols={Uestnumcols}, Vestnumcols={Vestnumcols}"
            )

        self.S = source
        self.loss = loss if loss is not None else SquareLoss()
        self.regularizer = reg if reg is not None else L2Reg()
        self.solver: Solver = DefaultSolver()
        self.D: Union[Unsplit, SplitData, FoldedData] = Unsplit()

        self.X: Optional[np.ndarray] = None
        self.Y: Optional[np.ndarray] = None
        self.regweights: Optional[np.ndarray] = None

        self.istrained = False
        self.verbose = verbose
        self.Uestnumcols = Uestnumcols
        self.Vestnumcols = Vestnumcols
        self.embedallwarning = False
        self.rng = np.random.default_rng(random_state)

        self.data_version = 0
        self._xy_version = -1
        self._resplit_requested = False

        self.setdata()
        if embedall:
            if self.verbose:
                print("Model: applying default embedding")
            self.defaultembedding(stand=stand)
            self.embedallwarning = True

    # ------------------------------------------------------------------
    # cache state

    @property
    def xydataisinvalid(self) -> bool:
        """X, Y and regweights must be rebuilt from the source."""
        return self._xy_version != self.data_version

    @property
    def disinvalid(self) -> bool:
        """The partition must be recomputed before use."""
        return (
            self._resplit_requested
            or isinstance(self.D, Unsplit)
            or self.D.data_version != self.data_version
        )

    def _invalidate_data(self):
        self.data_version += 1

    def setdata(self):
        """Rebuild X and Y from the source and recompute regweights."""
        self.X, self.Y = self.S.getXY(
            Uestnumcols=self.Uestnumcols,
            Vestnumcols=self.Vestnumcols,
            verbose=self.verbose
        )
        self._xy_version = self.data_version
        self.setregweights()

    def setregweights(self):
        """
        Per-feature penalty weights: 0 for a nonzero constant column (an
        intercept), 1 otherwise. Does nothing while X is stale.
        """
        if self.xydataisinvalid:
            return
        X = self.X
        if X.shape[0] == 0:
            self.regweights = np.ones(X.shape[1])
            return
        constant = np.var(X, axis=0) == 0
        nonzero = np.linalg.norm(X, axis=0) != 0
        self.regweights = np.where(constant & nonzero, 0.0, 1.0)

    def defaultembedding(self, stand: bool = True):
        """Embed target column 0 and every input column plus a ones column."""
        self.addfeatureV(0, stand=stand)
        self.addfeatureU(etype="all", stand=stand, addones=True)

    # ------------------------------------------------------------------
    # partitions

    def _usetrainfrac(self, trainfrac):
        if trainfrac is None:
            if isinstance(self.D, SplitData):
                return self.D.trainfrac
            return DEFAULT_TRAINFRAC
        return trainfrac

    def _usesplitmethod(self, splitmethod):
        if splitmethod is None:
            if isinstance(self.D, SplitData):
                return self.D.splitmethod
            return 0
        return splitmethod

    def splittraintest(
        self,
        trainfrac=None,
        resplit: bool = False,
        force: bool = False,
        splitmethod: Optional[int] = None
    ) -> SplitData:
        """
        Return the train/test split, recomputing it only when needed.

        The cached split is reused unless ``resplit``/``force`` is set, no
        split is cached, a different ``trainfrac`` or ``splitmethod`` is
        requested, or the features changed since the split was drawn.
        Recomputing also rebuilds X and Y from the source.

        Parameters:
            trainfrac: Fraction in (0, 1] or explicit train row indices.
                None keeps the cached split's value (0.8 if there is none).
            resplit, force: Draw a fresh split regardless of the cache
            splitmethod: 0 = exact-size permutation split, 1 = Bernoulli.
                None keeps the cached split's method (0 if there is none).

        Returns:
            The current SplitData
        """
        if resplit or force:
            self._resplit_requested = True
        if not self.disinvalid and isinstance(self.D, SplitData):
            if trainfrac is not None and not self.D.same_trainfrac(trainfrac):
                self._resplit_requested = True
            if splitmethod is not None and splitmethod != self.D.splitmethod:
                self._resplit_requested = True

        if self.disinvalid or not isinstance(self.D, SplitData):
            self._splittraintestx(trainfrac, splitmethod)
        return self.D

    def _splittraintestx(self, trainfrac, splitmethod):
        trainfrac = self._usetrainfrac(trainfrac)
        splitmethod = self._usesplitmethod(splitmethod)
        self.setdata()
        if self.verbose:
            print("Model: splitting data")
        self.D = SplitData.from_xy(
            self.X, self.Y, trainfrac,
            splitmethod=splitmethod,
            random_state=self.rng,
            data_version=self.data_version
        )
        self._resplit_requested = False

    def splitfolds(self, nfolds: int = 5, resplit: bool = False,
                   force: bool = False) -> FoldedData:
        """Return the k-fold partition; same caching rules as ``splittraintest``."""
        if resplit or force:
            self._resplit_requested = True
        if (not self.disinvalid and isinstance(self.D, FoldedData)
                and self.D.nfolds != nfolds):
            self._resplit_requested = True

        if self.disinvalid or not isinstance(self.D, FoldedData):
            self.setdata()
            if self.verbose:
                print(f"Model: splitting data into {nfolds} folds")
            self.D = FoldedData.from_xy(
                self.X, self.Y, nfolds,
                random_state=self.rng,
                data_version=self.data_version
            )
            self._resplit_requested = False
        return self.D

    def split(self, **kwargs) -> SplitData:
        """Draw a fresh train/test split."""
        return self.splittraintest(force=True, **kwargs)

    # ------------------------------------------------------------------
    # features

    def _warnembeddings(self):
        if not self.verbose or not self.embedallwarning:
            return
        warnings.warn(
            "You are adding features to a model which was created with embedall=True",
            UserWarning
        )
        self.embedallwarning = False

    def addfeatureU(self, col=None, **kwargs):
        """Add an input feature through the source; X and the partition go stale."""
        self._warnembeddings()
        self._invalidate_data()
        return self.S.addfeatureU(col, **kwargs)

    def addfeatureV(self, col=None, **kwargs):
        """Add a target feature through the source; Y and the partition go stale."""
        self._warnembeddings()
        self._invalidate_data()
        return self.S.addfeatureV(col, **kwargs)

    def warndata(self):
        if len(self.S.Xmaps) == 0:
            warnings.warn(
                "Model has no X data. Use addfeatureU or Model(..., embedall=True)",
                UserWarning
            )
        if len(self.S.Ymaps) == 0:
            warnings.warn(
                "Model has no Y data. Use addfeatureV or Model(..., embedall=True)",
                UserWarning
            )

    # ------------------------------------------------------------------
    # loss, regularizer, solver

    def assignsolver(self, force: bool = False):
        """Resolve the DefaultSolver placeholder (or re-derive when forced)."""
        if force or isinstance(self.solver, DefaultSolver):
            self.solver = get_solver(self.loss, self.regularizer)

    def setloss(self, loss: Loss):
        self.loss = loss
        self.assignsolver(force=True)

    def setreg(self, reg: Regularizer):
        self.regularizer = reg
        self.assignsolver(force=True)

    def setsolver(self, solver: Union[Solver, str]):
        """Use ``solver``; the string "default" re-derives it from loss and regularizer."""
        if isinstance(solver, str):
            if solver != "default":
                raise ValueError(f"Unknown solver name: {solver!r}")
            self.assignsolver(force=True)
            return
        self.solver = solver

    # ------------------------------------------------------------------
    # fitting

    def trainx(
        self,
        lambda_reg: float,
        Xtrain: np.ndarray,
        Xtest: np.ndarray,
        Ytrain: np.ndarray,
        Ytest: np.ndarray,
        theta_guess: Optional[np.ndarray] = None
    ) -> PointResults:
        """Fit once on the training rows and evaluate on both row sets."""
        self.assignsolver()
        if self.verbose:
            print(f"Model: calling solver: {self.solver!r}")
            for i in np.flatnonzero(self.regweights == 0):
                print(f"Model: Not regularizing constant feature X[:, {i}]")
        theta = self.solver.solve(
            self.loss, self.regularizer, self.regweights,
            Xtrain, Ytrain, lambda_reg,
            theta_guess=theta_guess
        )
        trainloss = self.loss.loss(self.loss.predict(Xtrain, theta), Ytrain)
        testloss = self.loss.loss(self.loss.predict(Xtest, theta), Ytest)
        return PointResults(theta, lambda_reg, trainloss, testloss)

    def train(
        self,
        lambda_reg: float = 1e-10,
        trainfrac=None,
        resplit: bool = False,
        theta_guess: Optional[np.ndarray] = None
    ) -> PointResults:
        """
        Fit at a single regularization strength on the train/test split.

        Parameters:
            lambda_reg: Regularization strength
            trainfrac: Train fraction or row indices; None reuses the
                cached split (80/20 if there is none)
            resplit: Draw a fresh split first
            theta_guess: Optional warm start for iterative solvers

        Returns:
            The stored PointResults
        """
        self.warndata()
        self.splittraintest(trainfrac=trainfrac, resplit=resplit)
        self.D.results = self.trainx(
            lambda_reg, self.Xtrain(), self.Xtest(), self.Ytrain(), self.Ytest(),
            theta_guess=theta_guess
        )
        self._finish_fit()
        return self.D.results

    def trainfolds(
        self,
        lambda_reg: float = 1e-10,
        nfolds: int = 5,
        resplit: bool = False
    ) -> FoldResults:
        """
        k-fold cross validation at a single regularization strength.

        Each fold is fitted on its non-held-out rows and evaluated on its
        held-out rows.

        Returns:
            The stored FoldResults, ordered by fold index
        """
        self.warndata()
        self.splitfolds(nfolds, resplit=resplit)
        results = [
            self.trainx(
                lambda_reg,
                self.Xtrain(i), self.Xtest(i), self.Ytrain(i), self.Ytest(i)
            )
            for i in range(nfolds)
        ]
        self.D.results = FoldResults(results)
        self._finish_fit()
        return self.D.results

    def trainpath(
        self,
        lambda_reg: Optional[Sequence[float]] = None,
        trainfrac=DEFAULT_TRAINFRAC,
        resplit: bool = False
    ) -> RegPathResults:
        """
        Fit along a regularization path.

        Grid points are fitted in order, each warm-started from the
        previous point's solution (the first starts cold).

        Parameters:
            lambda_reg: Grid of strengths; default ``np.logspace(-5, 5, 100)``
            trainfrac: Train fraction or row indices
            resplit: Draw a fresh split first

        Returns:
            The stored RegPathResults
        """
        if lambda_reg is None:
            lambda_reg = np.logspace(-5, 5, 100)
        lambdas = np.atleast_1d(np.asarray(lambda_reg, dtype=float))
        if lambdas.size == 0:
            raise ValueError("lambda_reg grid is empty")

        self.warndata()
        self.splittraintest(trainfrac=trainfrac, resplit=resplit)

        results = []
        theta_guess = None
        for lam in lambdas:
            if self.verbose:
                print(f"lambda = {lam}")
            point = self.trainx(
                lam, self.Xtrain(), self.Xtest(), self.Ytrain(), self.Ytest(),
                theta_guess=theta_guess
            )
            results.append(point)
            theta_guess = point.theta

        self.D.results = RegPathResults.from_results(results)
        self._finish_fit()
        return self.D.results

    def _finish_fit(self):
        self.istrained = True
        if self.verbose:
            self.status()

    # ------------------------------------------------------------------
    # querying

    def getU(self) -> np.ndarray:
        return self.S.getU()

    def getV(self) -> np.ndarray:
        return self.S.getV()

    def _partition_rows(self):
        if not isinstance(self.D, SplitData):
            raise ValueError("Model has no train/test split. Call splittraintest() first.")
        return self.D.trainrows, self.D.testrows

    def _block(self, split_attr, fold_method, fold):
        if fold is None:
            if not isinstance(self.D, SplitData):
                raise ValueError(
                    "Model has no train/test split. Call splittraintest() first."
                )
            return getattr(self.D, split_attr)
        if not isinstance(self.D, FoldedData):
            raise ValueError("Model has no folds. Call splitfolds() first.")
        return getattr(self.D, fold_method)(fold)

    def Xtrain(self, fold: Optional[int] = None) -> np.ndarray:
        return self._block('Xtrain', 'Xtrain', fold)

    def Xtest(self, fold: Optional[int] = None) -> np.ndarray:
        return self._block('Xtest', 'Xtest', fold)

    def Ytrain(self, fold: Optional[int] = None) -> np.ndarray:
        return self._block('Ytrain', 'Ytrain', fold)

    def Ytest(self, fold: Optional[int] = None) -> np.ndarray:
        return self._block('Ytest', 'Ytest', fold)

    def Utrain(self) -> np.ndarray:
        return self.getU()[self._partition_rows()[0], :]

    def Utest(self) -> np.ndarray:
        return self.getU()[self._partition_rows()[1], :]

    def Vtrain(self) -> np.ndarray:
        return self.getV()[self._partition_rows()[0], :]

    def Vtest(self) -> np.ndarray:
        return self.getV()[self._partition_rows()[1], :]

    @property
    def results(self):
        return self.D.results

    def _fitted_results(self):
        if not self.istrained or isinstance(self.D.results, NoResults):
            raise ValueError("Model not fitted. Call train() first.")
        return self.D.results

    @property
    def theta(self) -> np.ndarray:
        """Parameters of the latest single fit, or the best point of a path."""
        results = self._fitted_results()
        if isinstance(results, FoldResults):
            raise ValueError("Cross-validation results hold one theta per fold")
        return results.theta

    @property
    def trainloss(self) -> float:
        return self._fitted_results().trainloss

    @property
    def testloss(self) -> float:
        return self._fitted_results().testloss

    @property
    def lambdaopt(self) -> float:
        return self._fitted_results().lambdaopt

    def predict(self, X: np.ndarray, theta: Optional[np.ndarray] = None) -> np.ndarray:
        """Predictions for features ``X``, by default with the fitted theta."""
        if theta is None:
            theta = self.theta
        return self.loss.predict(X, theta)

    # ------------------------------------------------------------------
    # status

    def status(self, file=None) -> str:
        """Print and return a summary of the latest action on the model."""
        lines = [self.D.results.summary()]
        if isinstance(self.D, SplitData):
            lines.append(f"  training samples: {self.D.Ytrain.size}")
            lines.append(f"  test samples: {self.D.Ytest.size}")
        elif isinstance(self.D, FoldedData):
            lines.append(f"  folds: {self.D.nfolds}")
            lines.append(f"  samples: {self.D.Y.size}")
        if self.X is not None:
            lines.append(f"  columns in X: {self.X.shape[1]}")
        lines.append("-" * 40)
        text = "\n".join(lines)
        print(text, file=file if file is not None else sys.stdout)
        return text

    def __repr__(self) -> str:
        return (
            f"Model("
            f"loss={self.loss!r}, "
            f"reg={self.regularizer!r}, "
            f"solver={self.solver!r}, "
            f"partition={type(self.D).__name__}, "
            f"istrained={self.istrained})"
        )
