"""
Permutation feature importance engine.

For each feature, the model is re-scored after shuffling that feature's
column; the importance is the permuted error relative to the baseline
error, either as a ratio (e_perm / e_orig) or a difference
(e_perm - e_orig). Repetitions are averaged to reduce variance.
"""

import logging
import threading
import warnings
from functools import reduce
from typing import Iterable, List, Literal, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .adapter import PredictorAdapter, default_feature_names
from .exceptions import (
    ComputationCancelledError,
    DegenerateDatasetError,
    EmptyFeatureSetError,
    InvalidSchemaError,
    PermutationImportanceError,
    ScoringError
)
from .losses import LossFunction
from .results import FeatureImportance, ImportanceAccumulator, ResultTable
from .utils import permute_column, resolve_entropy, shift_order, shuffle_order, unit_rng

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cooperative cancellation flag shared with a running computation.

    The engine checks the token before every (feature, repetition) unit.
    Once cancelled, the computation raises ComputationCancelledError and
    discards all partial results.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ComputationCancelledError("Permutation importance computation was cancelled")


class PermutationImportance:
    """
    Model-agnostic permutation feature importance.

    Parameters
    ----------
    n_repetitions : int, default=1
        Number of random permutations averaged per feature ('shuffle' only)

    method : {'shuffle', 'exact_pairs'}, default='shuffle'
        Permutation scheme:
        - 'shuffle': one uniformly random permutation per repetition
        - 'exact_pairs': every instance paired with every other instance's
          value for the target feature (all n(n-1) ordered pairs). Evaluated
          as the n-1 non-identity cyclic shifts of the column, each of which
          is a full bijection. Deterministic, O(n^2) predictions per feature

    score_mode : {'ratio', 'difference'}, default='ratio'
        How importance is derived from the permuted error e_perm:
        - 'ratio': e_perm / e_orig (1 means no reliance on the feature)
        - 'difference': e_perm - e_orig (0 means no reliance)

    random_seed : int or None, default=None
        Root seed. Each (feature, repetition) unit draws from its own stream
        derived from this seed, so results are identical for any n_jobs

    n_jobs : int, default=1
        Number of worker threads (joblib). -1 uses all CPUs. Models that
        are not safe for concurrent use are always scored serially

    Attributes
    ----------
    result_ : ResultTable
        Ranked importances after calling compute()

    baseline_error_ : float
        Loss on the unmodified data after calling compute()

    Examples
    --------
    >>> from sklearn.linear_model import LinearRegression
    >>> from permutation_fi.datasets import make_linear_data
    >>> X, y = make_linear_data(n=200, p=3, random_state=0)
    >>> model = LinearRegression().fit(X, y)
    >>> pfi = PermutationImportance(n_repetitions=20, random_seed=0)
    >>> table = pfi.compute(model, X, y, loss='mae')
    >>> table.ranking()[0]
    'x0'
    """

    def __init__(
        self,
        n_repetitions: int = 1,
        method: Literal['shuffle', 'exact_pairs'] = 'shuffle',
        score_mode: Literal['ratio', 'difference'] = 'ratio',
        random_seed: Optional[int] = None,
        n_jobs: int = 1
    ):
        if method not in ['shuffle', 'exact_pairs']:
            raise ValueError(
                f"method must be 'shuffle' or 'exact_pairs', got {method}"
            )
        if score_mode not in ['ratio', 'difference']:
            raise ValueError(
                f"score_mode must be 'ratio' or 'difference', got {score_mode}"
            )
        if (isinstance(n_repetitions, bool) or not isinstance(n_repetitions, (int, np.integer))
                or n_repetitions < 1):
            raise ValueError(f"n_repetitions must be a positive integer, got {n_repetitions!r}")
        if isinstance(n_jobs, bool) or not isinstance(n_jobs, (int, np.integer)) or n_jobs == 0:
            raise ValueError(f"n_jobs must be a non-zero integer, got {n_jobs!r}")
        if random_seed is not None:
            resolve_entropy(random_seed)

        self.n_repetitions = int(n_repetitions)
        self.method = method
        self.score_mode = score_mode
        self.random_seed = random_seed
        self.n_jobs = int(n_jobs)

        # To be set during compute()
        self.result_ = None
        self.baseline_error_ = None

    def _check_data(self, data, feature_names: Optional[Sequence]):
        """Return the feature matrix and its feature names, or fail fast."""
        if isinstance(data, pd.DataFrame):
            if feature_names is not None and list(feature_names) != list(data.columns):
                raise InvalidSchemaError(
                    "feature_names must be omitted or equal to the DataFrame columns"
                )
            names = list(data.columns)
            if len(set(names)) != len(names):
                raise InvalidSchemaError(f"Duplicate feature names in DataFrame columns: {names}")
            X = data
        else:
            X = np.asarray(data)
            if X.ndim != 2:
                raise InvalidSchemaError(f"X must be 2D, got shape {X.shape}")
            if feature_names is not None:
                names = list(feature_names)
                if len(names) != X.shape[1]:
                    raise InvalidSchemaError(
                        f"Got {len(names)} feature names for {X.shape[1]} columns"
                    )
                if len(set(names)) != len(names):
                    raise InvalidSchemaError(f"Duplicate feature names: {names}")
            else:
                names = default_feature_names(X.shape[1])

        n_samples, n_features = X.shape
        if n_features == 0:
            raise EmptyFeatureSetError("Dataset has no feature columns")
        if n_samples < 2:
            raise DegenerateDatasetError(
                f"Permutation needs at least 2 instances, got {n_samples}"
            )
        return X, names

    @staticmethod
    def _resolve_feature_subset(feature_subset, names: List) -> List[int]:
        """Map a subset of names or column indices to column indices."""
        if feature_subset is None:
            return list(range(len(names)))
        if isinstance(feature_subset, str):
            feature_subset = [feature_subset]

        columns = []
        for item in feature_subset:
            if item in names:
                idx = names.index(item)
            elif (isinstance(item, (int, np.integer)) and not isinstance(item, bool)
                    and 0 <= item < len(names)):
                idx = int(item)
            else:
                raise InvalidSchemaError(f"Unknown feature {item!r}; available: {names}")
            if idx not in columns:
                columns.append(idx)

        if not columns:
            raise EmptyFeatureSetError("feature_subset resolves to zero features")
        return columns

    def _importance(self, permuted_error: float, baseline_error: float) -> float:
        if self.score_mode == 'difference':
            return permuted_error - baseline_error
        if baseline_error == 0:
            return np.inf if permuted_error > 0 else 1.0
        return permuted_error / baseline_error

    def _units(self, columns: List[int], n_samples: int) -> List[Tuple[int, int]]:
        n_units = n_samples - 1 if self.method == 'exact_pairs' else self.n_repetitions
        return [(j, r) for j in columns for r in range(n_units)]

    def _score_unit(
        self,
        adapter: PredictorAdapter,
        X,
        names: List,
        feature_idx: int,
        repetition: int,
        entropy: int,
        baseline_error: float,
        cancel_token: Optional[CancellationToken]
    ) -> ImportanceAccumulator:
        """Permute one column once, re-score, and wrap the result."""
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        n_samples = adapter.n_samples
        if self.method == 'exact_pairs':
            order = shift_order(n_samples, repetition + 1)
        else:
            order = shuffle_order(n_samples, unit_rng(entropy, feature_idx, repetition))

        X_perm = permute_column(X, feature_idx, order)
        try:
            permuted_error = adapter.score(X_perm)
        except ScoringError as exc:
            raise exc.with_context(names[feature_idx], repetition) from exc.__cause__
        except PermutationImportanceError:
            raise
        except Exception as exc:
            raise ScoringError(
                f"Scoring raised {type(exc).__name__}: {exc}",
                feature=names[feature_idx],
                repetition=repetition
            ) from exc

        importance = self._importance(permuted_error, baseline_error)
        return ImportanceAccumulator().add(feature_idx, repetition, importance, permuted_error)

    def _run_units(self, units, adapter, X, names, entropy, baseline_error, cancel_token):
        n_jobs = self.n_jobs
        if n_jobs != 1 and not adapter.concurrent_safe:
            logger.debug("Model is not concurrent-safe; scoring %d units serially", len(units))
            n_jobs = 1

        if n_jobs == 1:
            return [
                self._score_unit(adapter, X, names, j, r, entropy, baseline_error, cancel_token)
                for j, r in units
            ]

        # Threads share the model and the cancellation token without pickling
        return Parallel(n_jobs=n_jobs, prefer='threads')(
            delayed(self._score_unit)(
                adapter, X, names, j, r, entropy, baseline_error, cancel_token
            )
            for j, r in units
        )

    def compute(
        self,
        model,
        data: Union[np.ndarray, pd.DataFrame],
        outcome,
        loss: Union[str, LossFunction],
        feature_subset: Optional[Iterable] = None,
        feature_names: Optional[Sequence] = None,
        response_method: Literal['predict', 'predict_proba'] = 'predict',
        concurrent_safe: bool = True,
        cancel_token: Optional[CancellationToken] = None
    ) -> ResultTable:
        """
        Compute permutation importance for every feature in scope.

        Parameters
        ----------
        model : estimator or callable
            Trained model with predict() (or predict_proba()), or a callable
            (X) -> predictions. Never modified
        data : np.ndarray or pd.DataFrame of shape (n_samples, n_features)
            Feature matrix, at least 2 rows and 1 column. Never modified
        outcome : array-like of shape (n_samples,)
            True outcomes aligned with the rows of ``data``
        loss : str or callable
            ``loss(y_true, y_pred) -> float >= 0`` or a built-in loss name
        feature_subset : iterable of str or int, optional
            Feature names or column indices to evaluate. Defaults to all
        feature_names : sequence of str, optional
            Names for ndarray columns (DataFrames use their own columns)
        response_method : {'predict', 'predict_proba'}, default='predict'
            Model method whose output is passed to the loss
        concurrent_safe : bool, default=True
            Set to False if the model must not be called from several
            threads at once
        cancel_token : CancellationToken, optional
            Checked between units; cancelling aborts the whole call

        Returns
        -------
        result : ResultTable
            Features ranked by descending mean importance, ties by column order

        Raises
        ------
        DegenerateDatasetError
            If ``data`` has fewer than 2 instances
        EmptyFeatureSetError
            If ``data`` has no columns or ``feature_subset`` is empty
        InvalidSchemaError
            If shapes, names or the model's fitted schema disagree
        ModelInvocationError
            If the model raises or returns the wrong number of predictions;
            tagged with the feature and repetition
        LossEvaluationError
            If the loss raises or returns a negative or non-finite value;
            tagged with the feature and repetition
        ComputationCancelledError
            If ``cancel_token`` is cancelled before all units finish
        """
        X, names = self._check_data(data, feature_names)
        columns = self._resolve_feature_subset(feature_subset, names)

        adapter = PredictorAdapter(
            model, outcome, loss,
            feature_names=names,
            response_method=response_method,
            concurrent_safe=concurrent_safe
        )
        adapter.check_schema(X)
        entropy = resolve_entropy(self.random_seed)

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        baseline_error = adapter.score(X)
        logger.debug("Baseline error: %.6g", baseline_error)
        if self.score_mode == 'ratio' and baseline_error == 0:
            warnings.warn(
                "Baseline error is 0; ratio importances are inf for features whose "
                "permutation increases the error and 1.0 otherwise. "
                "Consider score_mode='difference'.",
                RuntimeWarning
            )

        units = self._units(columns, adapter.n_samples)
        partials = self._run_units(units, adapter, X, names, entropy, baseline_error, cancel_token)
        accumulator = reduce(ImportanceAccumulator.merge, partials, ImportanceAccumulator())

        records = []
        for j in columns:
            importances, errors = accumulator.values_for(j)
            records.append(FeatureImportance(
                feature=names[j],
                column=j,
                raw_values=importances,
                permuted_errors=errors
            ))
            logger.debug("Feature %r: mean importance %.6g", names[j], records[-1].importance)

        result = ResultTable(
            records,
            baseline_error=baseline_error,
            score_mode=self.score_mode,
            method=self.method,
            n_repetitions=len(units) // len(columns),
            random_seed=self.random_seed
        )
        logger.info(
            "Computed %s permutation importance for %d features (%d units, baseline %.6g)",
            self.method, len(columns), len(units), baseline_error
        )

        self.result_ = result
        self.baseline_error_ = baseline_error
        return result

    def get_feature_importance(self, feature) -> float:
        """
        Get the mean importance of one feature.

        Parameters
        ----------
        feature : str or int
            Feature name

        Returns
        -------
        importance : float
            Mean importance over repetitions
        """
        if self.result_ is None:
            raise ValueError("Call compute() before accessing importances")
        return self.result_[feature].importance

    def get_top_features(self, n: int = 5) -> list:
        """
        Get names and scores of the n most important features.

        Parameters
        ----------
        n : int, default=5
            Number of top features to return

        Returns
        -------
        top_features : list of tuple
            List of (feature, importance) pairs, sorted by importance
        """
        if self.result_ is None:
            raise ValueError("Call compute() before accessing importances")
        return [(record.feature, record.importance) for record in self.result_.records[:n]]

    def __repr__(self) -> str:
        """String representation."""
        parts = [
            f"method='{self.method}'",
            f"score_mode='{self.score_mode}'"
        ]
        if self.method == 'shuffle':
            parts.append(f"n_repetitions={self.n_repetitions}")
            parts.append(f"random_seed={self.random_seed}")
        if self.n_jobs != 1:
            parts.append(f"n_jobs={self.n_jobs}")
        return f"PermutationImportance({', '.join(parts)})"


def compute(
    model,
    data: Union[np.ndarray, pd.DataFrame],
    outcome,
    loss: Union[str, LossFunction],
    n_repetitions: int = 1,
    method: Literal['shuffle', 'exact_pairs'] = 'shuffle',
    feature_subset: Optional[Iterable] = None,
    score_mode: Literal['ratio', 'difference'] = 'ratio',
    random_seed: Optional[int] = None,
    n_jobs: int = 1,
    feature_names: Optional[Sequence] = None,
    response_method: Literal['predict', 'predict_proba'] = 'predict',
    concurrent_safe: bool = True,
    cancel_token: Optional[CancellationToken] = None
) -> ResultTable:
    """
    Compute permutation feature importance in a single call.

    Shorthand for ``PermutationImportance(...).compute(...)``; see
    PermutationImportance for the meaning of every parameter.

    Examples
    --------
    >>> from sklearn.linear_model import LinearRegression
    >>> from permutation_fi.datasets import make_linear_data
    >>> X, y = make_linear_data(n=100, p=3, random_state=1)
    >>> model = LinearRegression().fit(X, y)
    >>> table = compute(model, X, y, 'mae', n_repetitions=10, random_seed=0)
    >>> table.to_frame()[['feature', 'importance']]  # doctest: +SKIP
    """
    engine = PermutationImportance(
        n_repetitions=n_repetitions,
        method=method,
        score_mode=score_mode,
        random_seed=random_seed,
        n_jobs=n_jobs
    )
    return engine.compute(
        model, data, outcome, loss,
        feature_subset=feature_subset,
        feature_names=feature_names,
        response_method=response_method,
        concurrent_safe=concurrent_safe,
        cancel_token=cancel_token
    )
