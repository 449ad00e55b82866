"""
Exceptions raised by the permutation importance engine.

Every error aborts the whole computation; there is no partial-success mode.
Input errors also derive from ValueError so callers validating
configuration with ``except ValueError`` keep working.
"""

from typing import Optional, Union


class PermutationImportanceError(Exception):
    """Base class for all errors raised by permutation_fi."""


class InvalidSchemaError(PermutationImportanceError, ValueError):
    """Feature matrix shape or columns do not match what the model expects."""


class EmptyFeatureSetError(PermutationImportanceError, ValueError):
    """The requested feature subset resolves to zero columns."""


class DegenerateDatasetError(PermutationImportanceError, ValueError):
    """The dataset has fewer than 2 instances, so permutation is undefined."""


class ComputationCancelledError(PermutationImportanceError):
    """The caller cancelled the computation before all units finished."""


class ScoringError(PermutationImportanceError):
    """
    Scoring a feature matrix failed.

    Parameters
    ----------
    message : str
        Description of the failure
    feature : str or int, optional
        Feature whose permutation was being scored, None for the baseline
    repetition : int, optional
        Repetition (or shift) index being scored, None for the baseline

    Notes
    -----
    The original exception, if any, is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        feature: Optional[Union[str, int]] = None,
        repetition: Optional[int] = None
    ):
        self.message = message
        self.feature = feature
        self.repetition = repetition
        super().__init__(self._format())

    def _format(self) -> str:
        if self.feature is None:
            return f"{self.message} (baseline scoring)"
        return f"{self.message} (feature={self.feature!r}, repetition={self.repetition})"

    def with_context(self, feature, repetition) -> "ScoringError":
        """Return a copy of this error tagged with the unit that triggered it."""
        err = type(self)(self.message, feature=feature, repetition=repetition)
        err.__cause__ = self.__cause__
        return err


class ModelInvocationError(ScoringError, RuntimeError):
    """The wrapped model raised, or returned the wrong number of predictions."""


class LossEvaluationError(ScoringError, ValueError):
    """The loss raised, or returned a negative or non-finite value."""
