import numpy as np
import pytest

from permutation_fi.losses import LOSSES, get_loss, one_minus_auc


def test_regression_losses():
    y_true = np.array([1.0, 2.0, 3.0, 4.0])
    y_pred = np.array([1.0, 2.0, 5.0, 4.0])

    assert get_loss('mae')(y_true, y_pred) == pytest.approx(0.5)
    assert get_loss('mse')(y_true, y_pred) == pytest.approx(1.0)
    assert get_loss('rmse')(y_true, y_pred) == pytest.approx(1.0)


def test_column_vector_predictions_are_flattened():
    y_true = np.array([0.0, 1.0, 2.0])
    y_pred = np.array([[0.0], [1.0], [4.0]])
    assert get_loss('mae')(y_true, y_pred) == pytest.approx(2 / 3)


def test_one_minus_auc_accepts_scores_and_probabilities():
    y_true = np.array([0, 0, 1, 1])
    scores = np.array([0.1, 0.4, 0.35, 0.8])
    proba = np.column_stack([1 - scores, scores])

    assert one_minus_auc(y_true, scores) == pytest.approx(0.25)
    assert one_minus_auc(y_true, proba) == pytest.approx(0.25)
    assert one_minus_auc(y_true, np.array([0.1, 0.2, 0.8, 0.9])) == 0.0


def test_classification_losses():
    y_true = np.array([0, 1, 1, 0])
    assert get_loss('zero_one')(y_true, np.array([0, 1, 0, 0])) == pytest.approx(0.25)
    assert get_loss('log_loss')(y_true, np.array([0.1, 0.9, 0.9, 0.1])) == pytest.approx(-np.log(0.9))


def test_every_builtin_loss_is_non_negative():
    rng = np.random.RandomState(0)
    y_true = rng.randint(0, 2, 50)
    y_prob = rng.uniform(0.05, 0.95, 50)
    for name, loss in LOSSES.items():
        y_pred = (y_prob > 0.5).astype(int) if name == 'zero_one' else y_prob
        assert loss(y_true, y_pred) >= 0, name


def test_callables_pass_through():
    def custom(y_true, y_pred):
        return 0.0

    assert get_loss(custom) is custom


def test_unknown_loss():
    with pytest.raises(ValueError, match="Unknown loss"):
        get_loss('hinge')
    with pytest.raises(ValueError):
        get_loss(3)
