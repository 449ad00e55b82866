"""
Predictor adapter: a uniform scoring contract over an opaque model.

The adapter binds a trained model, the true outcome vector and a loss, and
exposes ``score(X) -> float``. The model is consumed purely as a
``predict`` capability; any object with a ``predict`` method, or a plain
callable, qualifies.
"""

from typing import Callable, List, Literal, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .exceptions import InvalidSchemaError, LossEvaluationError, ModelInvocationError
from .losses import LossFunction, get_loss


def default_feature_names(n_features: int) -> List[str]:
    """Names used for unlabeled ndarray columns: x0, x1, ..."""
    return [f"x{j}" for j in range(n_features)]


class PredictorAdapter:
    """
    Score an opaque model on a feature matrix against a fixed outcome.

    Parameters
    ----------
    model : estimator or callable
        Trained model with predict() (or predict_proba()), or a callable
        (X) -> predictions
    outcome : array-like of shape (n_samples,)
        True outcome values, aligned with the rows of every scored matrix
    loss : str or callable
        Loss ``loss(y_true, y_pred) -> float >= 0``, or a built-in loss name
        (see ``permutation_fi.losses.LOSSES``)
    feature_names : sequence of str, optional
        Expected column names. Required for DataFrame schema checks; defaults
        to x0..x{p-1} when only ``n_features`` is known
    n_features : int, optional
        Expected column count. Inferred from ``feature_names`` if omitted
    response_method : {'predict', 'predict_proba'}, default='predict'
        Model method producing the predictions handed to the loss. Ignored
        for plain callables
    concurrent_safe : bool, default=True
        Whether the model may be invoked from several threads at once. When
        False the engine serializes all scoring calls

    Attributes
    ----------
    n_samples : int
        Number of instances (length of the outcome)

    Examples
    --------
    >>> from sklearn.linear_model import LinearRegression
    >>> X = np.array([[0.0, 1.0], [1.0, 0.0], [2.0, 1.0]])
    >>> y = np.array([0.0, 1.0, 2.0])
    >>> model = LinearRegression().fit(X, y)
    >>> adapter = PredictorAdapter(model, y, 'mae', n_features=2)
    >>> round(adapter.score(X), 6)
    0.0
    """

    def __init__(
        self,
        model,
        outcome,
        loss: Union[str, LossFunction],
        feature_names: Optional[Sequence] = None,
        n_features: Optional[int] = None,
        response_method: Literal['predict', 'predict_proba'] = 'predict',
        concurrent_safe: bool = True
    ):
        if response_method not in ['predict', 'predict_proba']:
            raise ValueError(
                f"response_method must be 'predict' or 'predict_proba', "
                f"got {response_method}"
            )

        outcome = np.asarray(outcome)
        if outcome.ndim != 1:
            raise InvalidSchemaError(f"outcome must be 1D, got shape {outcome.shape}")

        if feature_names is not None:
            feature_names = list(feature_names)
            if n_features is not None and n_features != len(feature_names):
                raise ValueError(
                    f"n_features={n_features} disagrees with "
                    f"{len(feature_names)} feature names"
                )
            n_features = len(feature_names)
        elif n_features is not None:
            feature_names = default_feature_names(n_features)
        else:
            raise ValueError("Either feature_names or n_features must be given")

        self.model = model
        self.outcome = outcome
        self.loss = get_loss(loss)
        self.feature_names = feature_names
        self.n_features = n_features
        self.response_method = response_method
        self.concurrent_safe = bool(concurrent_safe)
        self._predict_fn = self._resolve_predict_fn()

    @property
    def n_samples(self) -> int:
        return len(self.outcome)

    def _resolve_predict_fn(self) -> Callable:
        # Support both estimators and plain callable prediction functions
        if hasattr(self.model, self.response_method):
            return getattr(self.model, self.response_method)
        if self.response_method == 'predict_proba' and hasattr(self.model, 'predict'):
            raise ValueError(
                f"{type(self.model).__name__} has no predict_proba(); "
                f"use response_method='predict'"
            )
        if callable(self.model):
            return self.model
        raise TypeError(
            f"model must have a {self.response_method}() method or be callable, "
            f"got {type(self.model).__name__}"
        )

    def check_schema(self, X) -> None:
        """
        Verify that ``X`` has the column schema bound at construction.

        Raises
        ------
        InvalidSchemaError
            If ``X`` is not 2D, has the wrong column count or names, has a
            row count different from the outcome, or disagrees with the
            feature set the model was fitted on
        """
        if np.ndim(X) != 2:
            raise InvalidSchemaError(f"Feature matrix must be 2D, got shape {np.shape(X)}")

        n_rows, n_cols = np.shape(X)
        if n_cols != self.n_features:
            raise InvalidSchemaError(
                f"Feature matrix has {n_cols} columns, expected {self.n_features}"
            )
        if n_rows != self.n_samples:
            raise InvalidSchemaError(
                f"Feature matrix has {n_rows} rows but outcome has {self.n_samples} values"
            )

        if isinstance(X, pd.DataFrame):
            columns = list(X.columns)
            if columns != self.feature_names:
                raise InvalidSchemaError(
                    f"Feature matrix columns {columns} do not match "
                    f"expected features {self.feature_names}"
                )

        # sklearn estimators advertise the schema they were fitted on
        model_n_features = getattr(self.model, 'n_features_in_', None)
        if model_n_features is not None and model_n_features != n_cols:
            raise InvalidSchemaError(
                f"Model was fitted on {model_n_features} features, "
                f"feature matrix has {n_cols}"
            )
        model_names = getattr(self.model, 'feature_names_in_', None)
        if model_names is not None and isinstance(X, pd.DataFrame):
            if list(model_names) != list(X.columns):
                raise InvalidSchemaError(
                    f"Model was fitted on features {list(model_names)}, "
                    f"feature matrix has {list(X.columns)}"
                )

    def predict(self, X) -> np.ndarray:
        """
        Run the wrapped model on ``X``.

        Raises
        ------
        ModelInvocationError
            If the model raises (the original exception is chained), or
            returns a prediction count different from the outcome length
        """
        try:
            out = self._predict_fn(X)
        except Exception as exc:
            raise ModelInvocationError(
                f"Model raised {type(exc).__name__}: {exc}"
            ) from exc

        out = np.asarray(out)
        if out.ndim == 0 or len(out) != self.n_samples:
            raise ModelInvocationError(
                f"Model returned {out.shape} predictions for {self.n_samples} instances"
            )
        return out

    def score(self, X) -> float:
        """
        Compute ``loss(outcome, model(X))``.

        Parameters
        ----------
        X : np.ndarray or pd.DataFrame of shape (n_samples, n_features)
            Feature matrix, possibly with one column permuted. Not modified

        Returns
        -------
        error : float
            Non-negative loss value

        Raises
        ------
        LossEvaluationError
            If the loss raises (the original exception is chained), or
            returns a negative or non-finite value
        """
        self.check_schema(X)
        y_pred = self.predict(X)
        try:
            error = float(self.loss(self.outcome, y_pred))
        except Exception as exc:
            raise LossEvaluationError(
                f"Loss raised {type(exc).__name__}: {exc}"
            ) from exc

        if not np.isfinite(error) or error < 0:
            raise LossEvaluationError(f"Loss must return a finite non-negative scalar, got {error}")
        return error

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"PredictorAdapter(model={type(self.model).__name__}, "
            f"n_samples={self.n_samples}, n_features={self.n_features}, "
            f"response_method='{self.response_method}', "
            f"concurrent_safe={self.concurrent_safe})"
        )
