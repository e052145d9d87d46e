"""
exceptions.py — Classifier Error Types
=======================================

InvalidInputError is raised synchronously for malformed training or
prediction data and is never recovered inside the classifier.
"""


class AnomalyClassifierError(Exception):
    """Base class for all classifier errors."""


class InvalidInputError(AnomalyClassifierError, ValueError):
    """Empty dataset, mismatched lengths, or malformed feature rows."""


class NotFittedError(AnomalyClassifierError, RuntimeError):
    """A single decision tree was used before fit()."""
