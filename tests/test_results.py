import warnings
from functools import reduce

import numpy as np
import pytest

from permutation_fi.results import FeatureImportance, ImportanceAccumulator, ResultTable


def _unit(feature_idx, repetition, value):
    return ImportanceAccumulator().add(feature_idx, repetition, value, value + 1)


def test_accumulator_merge_is_order_independent():
    units = [(j, r, float(10 * j + r)) for j in range(3) for r in range(4)]

    forward = reduce(ImportanceAccumulator.merge, [_unit(*u) for u in units], ImportanceAccumulator())
    backward = reduce(ImportanceAccumulator.merge, [_unit(*u) for u in reversed(units)], ImportanceAccumulator())

    assert len(forward) == len(backward) == 12
    for j in range(3):
        np.testing.assert_array_equal(forward.values_for(j)[0], backward.values_for(j)[0])
        np.testing.assert_array_equal(forward.values_for(j)[0], 10 * j + np.arange(4))
        np.testing.assert_array_equal(forward.values_for(j)[1], 10 * j + np.arange(4) + 1)


def test_accumulator_rejects_overlapping_units():
    acc = _unit(0, 0, 1.0)
    with pytest.raises(ValueError):
        acc.merge(_unit(0, 0, 2.0))
    with pytest.raises(ValueError):
        acc.add(0, 0, 3.0, 3.0)


def test_feature_importance_statistics():
    record = FeatureImportance('a', 0, raw_values=[1.0, 2.0, 3.0, 4.0], permuted_errors=[2, 4, 6, 8])

    assert record.importance == pytest.approx(2.5)
    assert record.variance == pytest.approx(np.var([1, 2, 3, 4], ddof=1))
    assert record.std == pytest.approx(np.std([1, 2, 3, 4], ddof=1))
    assert (record.min, record.max) == (1.0, 4.0)
    assert record.quantiles[0.5] == pytest.approx(2.5)
    assert record.n_values == 4

    low, high = record.confidence_interval(0.95)
    assert low < record.importance < high


def test_single_value_statistics():
    record = FeatureImportance('a', 0, raw_values=[1.5], permuted_errors=[3.0])
    assert record.std == 0.0
    assert record.confidence_interval() == (1.5, 1.5)
    with pytest.raises(ValueError):
        record.confidence_interval(1.5)


def test_constant_values_have_zero_spread():
    record = FeatureImportance('a', 0, raw_values=[np.inf] * 4, permuted_errors=[1.0] * 4)
    assert (record.variance, record.std) == (0.0, 0.0)
    assert list(record.quantiles.values()) == [np.inf, np.inf, np.inf]
    assert record.confidence_interval() == (np.inf, np.inf)


def test_mixed_infinite_values_have_undefined_spread():
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        record = FeatureImportance('a', 0, raw_values=[np.inf, 1.0, 1.0], permuted_errors=[1.0, 0.0, 0.0])
        low, high = record.confidence_interval()

    assert record.importance == np.inf
    assert np.isnan(record.variance) and np.isnan(record.std)
    assert (record.min, record.max) == (1.0, np.inf)
    assert record.quantiles == {0.05: 1.0, 0.5: 1.0, 0.95: np.inf}
    assert np.isnan(low) and np.isnan(high)


def test_empty_values_rejected():
    with pytest.raises(ValueError):
        FeatureImportance('a', 0, raw_values=[], permuted_errors=[])


def _table():
    records = [
        FeatureImportance('b', 1, raw_values=[1.0, 1.0], permuted_errors=[1.0, 1.0]),
        FeatureImportance('a', 0, raw_values=[1.0, 1.0], permuted_errors=[1.0, 1.0]),
        FeatureImportance('c', 2, raw_values=[3.0, 5.0], permuted_errors=[3.0, 5.0]),
    ]
    return ResultTable(records, baseline_error=1.0, score_mode='ratio', method='shuffle', n_repetitions=2)


def test_table_sorts_descending_with_column_tie_break():
    table = _table()
    assert table.ranking() == ['c', 'a', 'b']
    assert [record.rank for record in table] == [1, 2, 3]
    assert table.importances() == {'c': 4.0, 'a': 1.0, 'b': 1.0}


def test_table_lookup():
    table = _table()
    assert table['c'].importance == 4.0
    assert 'a' in table
    assert 'z' not in table
    with pytest.raises(KeyError):
        table['z']


def test_table_frames():
    table = _table()
    summary = table.to_frame()
    assert list(summary['feature']) == ['c', 'a', 'b']
    assert list(summary['rank']) == [1, 2, 3]
    assert summary.loc[0, 'importance'] == 4.0
    assert summary.loc[0, 'n_values'] == 2

    raw = table.raw_frame()
    assert len(raw) == 6
    assert list(raw.columns) == ['feature', 'repetition', 'importance', 'permuted_error']
    assert list(raw[raw['feature'] == 'c']['importance']) == [3.0, 5.0]


def test_table_repr():
    assert repr(_table()) == "ResultTable(n_features=3, method='shuffle', score_mode='ratio', baseline_error=1)"
