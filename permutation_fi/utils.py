"""
Utility functions for permutation importance computation.

This module provides helper functions for:
- Independent, seedable random streams per (feature, repetition) unit
- Shuffle and cyclic-shift row orders
- Column permutation on ndarrays and DataFrames
- Ranking comparison and benchmarking against scikit-learn
"""

import time
from typing import Dict, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.stats import spearmanr


def resolve_entropy(random_seed: Optional[int]) -> int:
    """
    Turn a user seed into the root entropy of all permutation streams.

    Parameters
    ----------
    random_seed : int or None
        Non-negative seed. None draws fresh entropy from the OS

    Returns
    -------
    entropy : int
        Root entropy shared by every unit of one computation
    """
    if random_seed is None:
        return int(np.random.SeedSequence().entropy)
    if isinstance(random_seed, bool) or not isinstance(random_seed, (int, np.integer)):
        raise ValueError(f"random_seed must be a non-negative int or None, got {random_seed!r}")
    if random_seed < 0:
        raise ValueError(f"random_seed must be non-negative, got {random_seed}")
    return int(random_seed)


def unit_rng(entropy: int, feature_idx: int, repetition: int) -> np.random.Generator:
    """
    Random generator for one (feature, repetition) unit.

    Streams are keyed by position rather than drawn from a shared generator,
    so results do not depend on execution order or on the number of workers.

    Parameters
    ----------
    entropy : int
        Root entropy from resolve_entropy()
    feature_idx : int
        Column index of the permuted feature
    repetition : int
        Repetition index

    Returns
    -------
    rng : np.random.Generator
        Generator independent of every other unit's generator
    """
    seed_seq = np.random.SeedSequence(entropy=entropy, spawn_key=(feature_idx, repetition))
    return np.random.default_rng(seed_seq)


def shuffle_order(n: int, rng: np.random.Generator) -> np.ndarray:
    """Uniformly random row order of length n."""
    return rng.permutation(n)


def shift_order(n: int, shift: int) -> np.ndarray:
    """
    Cyclic row order: instance i receives the value of instance (i + shift) mod n.

    For shift in 1..n-1 these orders are bijections with no fixed point, and
    together they pair every instance with every other instance exactly once,
    i.e. they enumerate all n(n-1) ordered pairs.

    Examples
    --------
    >>> shift_order(4, 1)
    array([1, 2, 3, 0])
    """
    if not 0 < shift < n:
        raise ValueError(f"shift must be in [1, {n - 1}], got {shift}")
    return (np.arange(n) + shift) % n


def permute_column(
    X: Union[np.ndarray, pd.DataFrame],
    feature_idx: int,
    order: np.ndarray
) -> Union[np.ndarray, pd.DataFrame]:
    """
    Return a copy of X with one column reordered.

    Parameters
    ----------
    X : np.ndarray or pd.DataFrame of shape (n_samples, n_features)
        Feature matrix. Not modified
    feature_idx : int
        Position of the column to reorder
    order : np.ndarray of shape (n_samples,)
        Row i of the copy gets the value of row ``order[i]`` in that column

    Returns
    -------
    X_perm : same type as X
        Copy with only column ``feature_idx`` changed; dtype and index kept
    """
    if isinstance(X, pd.DataFrame):
        X_perm = X.copy()
        # iloc keeps categorical and extension dtypes intact
        column = X.iloc[order, feature_idx].set_axis(X.index)
        X_perm.isetitem(feature_idx, column)
        return X_perm

    X_perm = X.copy()
    X_perm[:, feature_idx] = X[order, feature_idx]
    return X_perm


def top_k_overlap(ranking1: Sequence, ranking2: Sequence, k: int = 5) -> int:
    """
    Count features shared by the top-k of two rankings.

    Parameters
    ----------
    ranking1, ranking2 : sequence
        Feature identifiers ordered from most to least important
    k : int, default=5
        Number of top features to compare

    Returns
    -------
    overlap : int
        Number of features in both top-k sets (0 to k)
    """
    return len(set(list(ranking1)[:k]) & set(list(ranking2)[:k]))


# Scorers whose sklearn importance (baseline score - permuted score) equals
# e_perm - e_orig for the matching built-in loss
_SKLEARN_SCORING = {
    'mae': 'neg_mean_absolute_error',
    'mse': 'neg_mean_squared_error',
    'rmse': 'neg_root_mean_squared_error',
    'one_minus_auc': 'roc_auc',
    'log_loss': 'neg_log_loss',
    'zero_one': 'accuracy'
}


def compare_with_sklearn(
    model,
    X: Union[np.ndarray, pd.DataFrame],
    y: np.ndarray,
    loss: str = 'mse',
    n_repetitions: int = 10,
    random_seed: int = 42,
    top_k: int = 3
) -> Dict:
    """
    Benchmark the permutation engine against sklearn's permutation_importance.

    Both run in difference mode on the same data, so importances are on the
    same scale; they differ only through the random permutations drawn.

    Parameters
    ----------
    model : estimator
        Trained sklearn-compatible estimator
    X : np.ndarray or pd.DataFrame of shape (n_samples, n_features)
        Feature matrix
    y : np.ndarray of shape (n_samples,)
        Target values
    loss : str, default='mse'
        Built-in loss name with an sklearn scorer equivalent
    n_repetitions : int, default=10
        Repetitions for both methods
    random_seed : int, default=42
        Seed for both methods
    top_k : int, default=3
        Size of the top-k overlap check

    Returns
    -------
    results : dict
        Dictionary containing:
        - 'feature_names': feature order of the score vectors
        - 'sklearn_scores': sklearn importances_mean
        - 'sklearn_time': time taken by sklearn (seconds)
        - 'our_scores': our mean importances, same feature order
        - 'our_time': time taken by our engine (seconds)
        - 'rank_correlation': Spearman correlation of the two score vectors
        - 'top_k_overlap': shared features among the top_k of each ranking

    Examples
    --------
    >>> from sklearn.linear_model import LinearRegression
    >>> from permutation_fi.datasets import make_linear_data
    >>> X, y = make_linear_data(n=200, p=4, random_state=0)
    >>> model = LinearRegression().fit(X, y)
    >>> results = compare_with_sklearn(model, X, y, loss='mae')
    """
    from sklearn.inspection import permutation_importance
    from .engine import compute

    if loss not in _SKLEARN_SCORING:
        raise ValueError(
            f"loss must be one of {sorted(_SKLEARN_SCORING)} to compare with sklearn, got {loss}"
        )

    # Sklearn baseline
    start = time.time()
    perm_imp = permutation_importance(
        model, X, y,
        n_repeats=n_repetitions,
        scoring=_SKLEARN_SCORING[loss],
        random_state=random_seed
    )
    sklearn_time = time.time() - start

    response_method = 'predict_proba' if loss in ('one_minus_auc', 'log_loss') else 'predict'

    start = time.time()
    table = compute(
        model, X, y, loss,
        n_repetitions=n_repetitions,
        score_mode='difference',
        random_seed=random_seed,
        response_method=response_method
    )
    our_time = time.time() - start

    feature_names = [record.feature for record in sorted(table, key=lambda r: r.column)]
    our_scores = np.array([table[name].importance for name in feature_names])
    sklearn_scores = np.asarray(perm_imp.importances_mean)

    if len(feature_names) > 1:
        rank_correlation, _ = spearmanr(sklearn_scores, our_scores)
    else:
        rank_correlation = 1.0

    sklearn_ranking = [feature_names[i] for i in np.argsort(-sklearn_scores, kind='stable')]

    return {
        'feature_names': feature_names,
        'sklearn_scores': sklearn_scores,
        'sklearn_time': sklearn_time,
        'our_scores': our_scores,
        'our_time': our_time,
        'rank_correlation': rank_correlation,
        'top_k_overlap': top_k_overlap(sklearn_ranking, table.ranking(), k=top_k)
    }
