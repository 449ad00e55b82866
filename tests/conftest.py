import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression


@pytest.fixture
def abc_data():
    """100 instances, independent uniform A, B, C and y = 2*A + noise."""
    rng = np.random.RandomState(7)
    X = pd.DataFrame({
        'A': rng.uniform(0, 1, 100),
        'B': rng.uniform(0, 1, 100),
        'C': rng.uniform(0, 1, 100)
    })
    y = 2 * X['A'].to_numpy() + rng.normal(0, 0.25, 100)
    return X, y


@pytest.fixture
def abc_model(abc_data):
    X, y = abc_data
    return LinearRegression().fit(X, y)


@pytest.fixture
def small_data():
    """20 instances, 3 uniform features, y = 2*x0 + x1 + noise."""
    rng = np.random.RandomState(3)
    X = rng.uniform(0, 1, size=(20, 3))
    y = 2 * X[:, 0] + X[:, 1] + rng.normal(0, 0.1, 20)
    return X, y


@pytest.fixture
def small_model(small_data):
    X, y = small_data
    return LinearRegression().fit(X, y)


@pytest.fixture
def first_column_model():
    """Callable model that only looks at the first column."""
    def predict(X):
        return 2 * np.asarray(X, dtype=float)[:, 0]
    return predict
