"""
Permutation Feature Importance

Model-agnostic feature importance: how much a trained model's loss degrades
when one feature's values are shuffled, optionally averaged over repeated
permutations.

This package provides:
- PermutationImportance / compute: the importance engine ('shuffle' and
  'exact_pairs' methods, ratio and difference score modes)
- PredictorAdapter: uniform scoring contract over any model with predict()
- ResultTable: ranked per-feature results with repetition-level detail
"""

import logging

from .adapter import PredictorAdapter
from .engine import CancellationToken, PermutationImportance, compute
from .exceptions import (
    ComputationCancelledError,
    DegenerateDatasetError,
    EmptyFeatureSetError,
    InvalidSchemaError,
    LossEvaluationError,
    ModelInvocationError,
    PermutationImportanceError,
    ScoringError
)
from .losses import LOSSES, get_loss
from .results import FeatureImportance, ResultTable
from .utils import compare_with_sklearn

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"

__all__ = [
    "PermutationImportance",
    "compute",
    "CancellationToken",
    "PredictorAdapter",
    "FeatureImportance",
    "ResultTable",
    "LOSSES",
    "get_loss",
    "compare_with_sklearn",
    "PermutationImportanceError",
    "InvalidSchemaError",
    "ScoringError",
    "ModelInvocationError",
    "LossEvaluationError",
    "EmptyFeatureSetError",
    "DegenerateDatasetError",
    "ComputationCancelledError"
]
