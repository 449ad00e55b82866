"""
Built-in loss functions for permutation importance.

Every loss maps (y_true, y_pred) to a single non-negative float where
lower is better. Classification losses accept either a 1-D score vector or
a 2-D probability array from predict_proba (the positive class column is
used for binary problems).
"""

from typing import Callable, Dict, Union

import numpy as np
from sklearn.metrics import (
    log_loss as _sk_log_loss,
    mean_absolute_error as _sk_mae,
    mean_squared_error as _sk_mse,
    roc_auc_score,
    zero_one_loss as _sk_zero_one
)

LossFunction = Callable[[np.ndarray, np.ndarray], float]


def _positive_class(y_pred: np.ndarray) -> np.ndarray:
    # Handle 2D probability arrays (extract positive class)
    y_pred = np.asarray(y_pred)
    if y_pred.ndim == 2:
        if y_pred.shape[1] == 1:
            return y_pred[:, 0]
        if y_pred.shape[1] == 2:
            return y_pred[:, 1]
    return y_pred


def _flatten(y_pred: np.ndarray) -> np.ndarray:
    y_pred = np.asarray(y_pred)
    if y_pred.ndim == 2 and y_pred.shape[1] == 1:
        return y_pred[:, 0]
    return y_pred


def mean_absolute_error(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean absolute error."""
    return float(_sk_mae(y_true, _flatten(y_pred)))


def mean_squared_error(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean squared error."""
    return float(_sk_mse(y_true, _flatten(y_pred)))


def root_mean_squared_error(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root mean squared error."""
    return float(np.sqrt(_sk_mse(y_true, _flatten(y_pred))))


def one_minus_auc(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    One minus the ROC AUC of a binary classifier.

    Parameters
    ----------
    y_true : np.ndarray of shape (n_samples,)
        True binary labels
    y_pred : np.ndarray of shape (n_samples,) or (n_samples, 2)
        Scores or predicted probabilities

    Returns
    -------
    loss : float
        ``1 - AUC``, in [0, 1]; 0.5 for an uninformative ranking
    """
    return float(1.0 - roc_auc_score(y_true, _positive_class(y_pred)))


def log_loss(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Cross-entropy loss on predicted probabilities."""
    return float(_sk_log_loss(y_true, y_pred))


def zero_one(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Misclassification rate on hard label predictions."""
    return float(_sk_zero_one(y_true, _flatten(y_pred)))


LOSSES: Dict[str, LossFunction] = {
    'mae': mean_absolute_error,
    'mse': mean_squared_error,
    'rmse': root_mean_squared_error,
    'one_minus_auc': one_minus_auc,
    'log_loss': log_loss,
    'zero_one': zero_one
}


def get_loss(loss: Union[str, LossFunction]) -> LossFunction:
    """
    Resolve a loss given by name or as a callable.

    Parameters
    ----------
    loss : str or callable
        One of the names in ``LOSSES`` or a callable
        ``loss(y_true, y_pred) -> float``

    Returns
    -------
    loss_fn : callable
        The loss function

    Examples
    --------
    >>> get_loss('mae')([1.0, 2.0], [1.0, 3.0])
    0.5
    """
    if callable(loss):
        return loss
    if isinstance(loss, str):
        try:
            return LOSSES[loss]
        except KeyError:
            raise ValueError(
                f"Unknown loss '{loss}', expected one of {sorted(LOSSES)} or a callable"
            ) from None
    raise ValueError(f"loss must be a string or a callable, got {type(loss).__name__}")
