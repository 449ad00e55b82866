"""
Synthetic datasets with known feature relevance.

Used to sanity-check importance rankings: informative features must rank
above noise features, and noise features must stay near the baseline.
"""

from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd


def make_linear_data(
    n: int,
    p: int,
    n_informative: Optional[int] = None,
    coefficients: Optional[Sequence[float]] = None,
    noise: float = 0.1,
    distribution: str = 'uniform',
    as_frame: bool = False,
    random_state: int = 42
) -> Tuple[Union[np.ndarray, pd.DataFrame], np.ndarray]:
    """
    Generate independent features with a linear response.

    Creates data where y = X @ beta + noise.

    Parameters
    ----------
    n : int
        Number of samples
    p : int
        Number of features
    n_informative : int, optional
        Number of leading features with non-zero coefficients. Defaults to
        max(1, p // 2). Ignored when ``coefficients`` is given
    coefficients : sequence of float, optional
        Explicit beta of length p
    noise : float, default=0.1
        Standard deviation of Gaussian noise
    distribution : {'uniform', 'normal'}, default='uniform'
        Feature distribution: U(0, 1) or N(0, 1)
    as_frame : bool, default=False
        If True, return X as a DataFrame with columns x0..x{p-1}
    random_state : int, default=42
        Random seed

    Returns
    -------
    X : np.ndarray or pd.DataFrame of shape (n, p)
        Feature matrix
    y : np.ndarray of shape (n,)
        Continuous target

    Notes
    -----
    Default coefficients decrease linearly from 1 over the informative
    features, so x0 is always the most relevant feature and the trailing
    features are pure noise.
    """
    if distribution not in ['uniform', 'normal']:
        raise ValueError(f"distribution must be 'uniform' or 'normal', got {distribution}")

    rng = np.random.RandomState(random_state)

    if distribution == 'uniform':
        X = rng.uniform(0, 1, size=(n, p))
    else:
        X = rng.randn(n, p)

    if coefficients is not None:
        beta = np.asarray(coefficients, dtype=float)
        if beta.shape != (p,):
            raise ValueError(f"coefficients must have length {p}, got shape {beta.shape}")
    else:
        if n_informative is None:
            n_informative = max(1, p // 2)
        beta = np.zeros(p)
        beta[:n_informative] = np.linspace(1.0, 1.0 / n_informative, n_informative)

    y = X @ beta + noise * rng.randn(n)

    if as_frame:
        X = pd.DataFrame(X, columns=[f"x{j}" for j in range(p)])
    return X, y


def friedman_function(X: np.ndarray) -> np.ndarray:
    """
    Compute the Friedman benchmark function.

    The function is: y = 10*sin(π*x1*x2) + 20*(x3 - 0.5)^2 + 10*x4 + 5*x5

    Only the first 5 features are used; remaining features are noise.

    References
    ----------
    Friedman, J. H. (1991). "Multivariate adaptive regression splines."
    The Annals of Statistics, 19(1), 1-67.
    """
    X = np.asarray(X)
    if X.shape[1] < 5:
        raise ValueError("X must have at least 5 features for Friedman function")

    x1, x2, x3, x4, x5 = X[:, 0], X[:, 1], X[:, 2], X[:, 3], X[:, 4]

    return (
        10 * np.sin(np.pi * x1 * x2) +
        20 * (x3 - 0.5) ** 2 +
        10 * x4 +
        5 * x5
    )


def make_friedman_data(
    n: int,
    p: int = 10,
    noise: float = 1.0,
    as_frame: bool = False,
    random_state: int = 42
) -> Tuple[Union[np.ndarray, pd.DataFrame], np.ndarray]:
    """
    Generate uniform features with the nonlinear Friedman response.

    Parameters
    ----------
    n : int
        Number of samples
    p : int, default=10
        Number of features (must be >= 5)
    noise : float, default=1.0
        Standard deviation of Gaussian noise added to the response
    as_frame : bool, default=False
        If True, return X as a DataFrame with columns x0..x{p-1}
    random_state : int, default=42
        Random seed

    Returns
    -------
    X : np.ndarray or pd.DataFrame of shape (n, p)
    y : np.ndarray of shape (n,)
    """
    if p < 5:
        raise ValueError("Friedman function requires at least 5 features")

    rng = np.random.RandomState(random_state)
    X = rng.uniform(0, 1, size=(n, p))
    y = friedman_function(X) + noise * rng.randn(n)

    if as_frame:
        X = pd.DataFrame(X, columns=[f"x{j}" for j in range(p)])
    return X, y
