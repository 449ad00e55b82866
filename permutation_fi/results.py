"""
Importance records and the ranked result table.

Per-unit scores are collected in ImportanceAccumulator objects which merge
by disjoint union, so partial results from any number of workers reduce to
the same table regardless of completion order.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats


class ImportanceAccumulator:
    """
    Collect (feature, repetition) -> (importance, permuted error) entries.

    ``merge`` is associative and commutative: keys of merged accumulators
    must be disjoint, and values are read back ordered by repetition index.
    """

    def __init__(self):
        self._entries: Dict[Tuple[int, int], Tuple[float, float]] = {}

    def add(self, feature_idx: int, repetition: int, importance: float, permuted_error: float):
        key = (feature_idx, repetition)
        if key in self._entries:
            raise ValueError(f"Duplicate result for feature {feature_idx}, repetition {repetition}")
        self._entries[key] = (importance, permuted_error)
        return self

    def merge(self, other: "ImportanceAccumulator") -> "ImportanceAccumulator":
        """Fold ``other`` into this accumulator and return it."""
        overlap = self._entries.keys() & other._entries.keys()
        if overlap:
            raise ValueError(f"Cannot merge accumulators sharing units {sorted(overlap)}")
        self._entries.update(other._entries)
        return self

    def __len__(self) -> int:
        return len(self._entries)

    def values_for(self, feature_idx: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Importances and permuted errors of one feature, by repetition index.

        Returns
        -------
        importances : np.ndarray of shape (n_repetitions,)
        permuted_errors : np.ndarray of shape (n_repetitions,)
        """
        reps = sorted(r for (j, r) in self._entries if j == feature_idx)
        importances = np.array([self._entries[(feature_idx, r)][0] for r in reps], dtype=float)
        errors = np.array([self._entries[(feature_idx, r)][1] for r in reps], dtype=float)
        return importances, errors


@dataclass(eq=False)
class FeatureImportance:
    """
    Aggregated importance of one feature.

    Attributes
    ----------
    feature : str or int
        Feature name (DataFrame column label, or x0..x{p-1} for arrays)
    column : int
        Position of the feature in the original feature matrix
    raw_values : np.ndarray
        Importance of every repetition (or every cyclic shift in exact_pairs)
    permuted_errors : np.ndarray
        Loss after permutation, aligned with raw_values
    rank : int
        1 for the most important feature
    """

    feature: Union[str, int]
    column: int
    raw_values: np.ndarray
    permuted_errors: np.ndarray
    rank: int = 0
    importance: float = field(init=False)
    std: float = field(init=False)
    variance: float = field(init=False)
    min: float = field(init=False)
    max: float = field(init=False)
    quantiles: Dict[float, float] = field(init=False)

    QUANTILE_LEVELS = (0.05, 0.5, 0.95)

    def __post_init__(self):
        values = np.asarray(self.raw_values, dtype=float)
        if values.size == 0:
            raise ValueError(f"No importance values for feature {self.feature!r}")
        self.raw_values = values
        self.permuted_errors = np.asarray(self.permuted_errors, dtype=float)

        # Ratio importances are inf when the baseline error is 0
        finite = bool(np.all(np.isfinite(values)))

        self.importance = float(np.mean(values))
        if values.size == 1 or np.all(values == values[0]):
            self.variance = 0.0
            self.std = 0.0
        elif finite:
            self.variance = float(np.var(values, ddof=1))
            self.std = float(np.sqrt(self.variance))
        else:
            self.variance = np.nan
            self.std = np.nan
        self.min = float(np.min(values))
        self.max = float(np.max(values))

        # Interpolating between inf values gives nan, so pick observed values
        quantiles = np.quantile(
            values, self.QUANTILE_LEVELS, method='linear' if finite else 'nearest'
        )
        self.quantiles = {q: float(v) for q, v in zip(self.QUANTILE_LEVELS, quantiles)}

    @property
    def n_values(self) -> int:
        return len(self.raw_values)

    def confidence_interval(self, level: float = 0.95) -> Tuple[float, float]:
        """
        Student-t confidence interval for the mean importance.

        Parameters
        ----------
        level : float, default=0.95
            Confidence level in (0, 1)

        Returns
        -------
        (low, high) : tuple of float
            Interval bounds; collapses to the mean with a single value or
            zero spread, and is (nan, nan) when the spread is undefined
        """
        if not 0 < level < 1:
            raise ValueError(f"level must be in (0, 1), got {level}")
        if self.n_values < 2 or self.std == 0:
            return self.importance, self.importance
        if np.isnan(self.std):
            return np.nan, np.nan

        sem = self.std / np.sqrt(self.n_values)
        half_width = stats.t.ppf(0.5 + level / 2, df=self.n_values - 1) * sem
        return self.importance - half_width, self.importance + half_width


class ResultTable:
    """
    Features ranked by descending mean importance.

    Ties are broken by original column order, so the ranking is fully
    deterministic given the importance values.

    Parameters
    ----------
    records : list of FeatureImportance
        One record per evaluated feature, in any order
    baseline_error : float
        Loss of the model on the unmodified data
    score_mode : {'ratio', 'difference'}
        How importances were derived from permuted errors
    method : {'shuffle', 'exact_pairs'}
        Permutation scheme
    n_repetitions : int
        Values evaluated per feature: the repetition count for shuffle,
        n - 1 cyclic shifts for exact_pairs
    random_seed : int or None
        Seed passed by the caller
    """

    def __init__(
        self,
        records: List[FeatureImportance],
        baseline_error: float,
        score_mode: str,
        method: str,
        n_repetitions: int,
        random_seed: Optional[int] = None
    ):
        ordered = sorted(records, key=lambda rec: (-rec.importance, rec.column))
        for rank, record in enumerate(ordered, start=1):
            record.rank = rank

        self.records = ordered
        self.baseline_error = baseline_error
        self.score_mode = score_mode
        self.method = method
        self.n_repetitions = n_repetitions  # values per feature, n - 1 for exact_pairs
        self.random_seed = random_seed
        self._by_feature = {record.feature: record for record in ordered}

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[FeatureImportance]:
        return iter(self.records)

    def __getitem__(self, feature) -> FeatureImportance:
        try:
            return self._by_feature[feature]
        except KeyError:
            raise KeyError(f"No importance computed for feature {feature!r}") from None

    def __contains__(self, feature) -> bool:
        return feature in self._by_feature

    def ranking(self) -> list:
        """Feature names from most to least important."""
        return [record.feature for record in self.records]

    def importances(self) -> Dict:
        """Mapping feature -> mean importance, in rank order."""
        return {record.feature: record.importance for record in self.records}

    def to_frame(self) -> pd.DataFrame:
        """
        Summary table, one row per feature in rank order.

        Returns
        -------
        df : pd.DataFrame
            Columns: rank, feature, importance, std, min, max, q05, q50, q95,
            n_values
        """
        rows = []
        for record in self.records:
            rows.append({
                'rank': record.rank,
                'feature': record.feature,
                'importance': record.importance,
                'std': record.std,
                'min': record.min,
                'max': record.max,
                'q05': record.quantiles[0.05],
                'q50': record.quantiles[0.5],
                'q95': record.quantiles[0.95],
                'n_values': record.n_values
            })
        return pd.DataFrame(rows, columns=[
            'rank', 'feature', 'importance', 'std', 'min', 'max', 'q05', 'q50', 'q95', 'n_values'
        ])

    def raw_frame(self) -> pd.DataFrame:
        """
        Long-format table of every repetition.

        Returns
        -------
        df : pd.DataFrame
            Columns: feature, repetition, importance, permuted_error
        """
        rows = []
        for record in self.records:
            for rep, (value, error) in enumerate(zip(record.raw_values, record.permuted_errors)):
                rows.append({
                    'feature': record.feature,
                    'repetition': rep,
                    'importance': value,
                    'permuted_error': error
                })
        return pd.DataFrame(rows, columns=['feature', 'repetition', 'importance', 'permuted_error'])

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"ResultTable(n_features={len(self)}, method='{self.method}', "
            f"score_mode='{self.score_mode}', baseline_error={self.baseline_error:.6g})"
        )
