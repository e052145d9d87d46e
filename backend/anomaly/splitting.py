"""
splitting.py — Best Binary Split Search
========================================

Given the rows that reached a tree node, finds the (feature, threshold)
pair that most reduces Gini impurity.

Candidate thresholds are the midpoints between adjacent distinct values
of a feature, so only boundaries between differing observations are
tried and the number of candidates is bounded by the number of distinct
values.  For each candidate the rows split into ``value <= threshold``
(left) and ``value > threshold`` (right), and the reduction is:

    parent_gini − (n_left / n)·gini_left − (n_right / n)·gini_right

Instead of re-counting labels for every threshold, the rows are sorted
once per feature and cumulative per-class counts give the left-hand
label distribution of every candidate in a single pass.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from . import config
from .impurity import gini_from_counts

logger = logging.getLogger("anomaly.splitting")


@dataclass(frozen=True)
class SplitCandidate:
    """Winning split of a node search."""

    feature_index: int
    threshold: float
    gain: float


def class_counts(codes: np.ndarray, n_classes: int) -> np.ndarray:
    """Per-class row counts for integer-encoded labels."""
    return np.bincount(codes, minlength=n_classes)


def find_best_split(X: np.ndarray,
                    codes: np.ndarray,
                    n_classes: int,
                    feature_indices: Iterable[int]) -> Optional[SplitCandidate]:
    """
    Search the candidate features for the best impurity-reducing split.

    Features are scanned in the given order and thresholds in ascending
    order; the best pair is replaced only by a strictly greater gain, so
    ties keep the first pair found.

    Args:
        X: Feature matrix of shape (n_rows, n_features).
        codes: Integer label codes in [0, n_classes), one per row.
        n_classes: Size of the label alphabet.
        feature_indices: Feature columns to consider at this node.

    Returns:
        The best SplitCandidate, or None when no candidate reduces
        impurity by more than config.MIN_GAIN.
    """
    n_rows = X.shape[0]
    if n_rows < 2:
        return None

    total_counts = class_counts(codes, n_classes)
    parent = float(gini_from_counts(total_counts))

    best: Optional[SplitCandidate] = None
    best_gain = config.MIN_GAIN

    for feature_index in feature_indices:
        column = X[:, feature_index]
        order = np.argsort(column, kind="stable")
        sorted_values = column[order]
        lower, upper = sorted_values[:-1], sorted_values[1:]

        # Boundaries between adjacent distinct values.  A single-valued
        # feature has none and is skipped.
        boundaries = np.nonzero(lower < upper)[0]
        if boundaries.size == 0:
            continue

        thresholds = (lower[boundaries] + upper[boundaries]) / 2.0

        # A midpoint that rounds up onto the larger value would send
        # that value left and leave the counts below inconsistent.
        usable = thresholds < upper[boundaries]
        boundaries, thresholds = boundaries[usable], thresholds[usable]
        if boundaries.size == 0:
            continue

        onehot = np.zeros((n_rows, n_classes))
        onehot[np.arange(n_rows), codes[order]] = 1.0
        left_counts = np.cumsum(onehot, axis=0)[boundaries]
        right_counts = total_counts - left_counts

        n_left = boundaries + 1
        n_right = n_rows - n_left

        gains = (parent
                 - (n_left / n_rows) * gini_from_counts(left_counts)
                 - (n_right / n_rows) * gini_from_counts(right_counts))

        i = int(np.argmax(gains))
        if gains[i] > best_gain:
            best_gain = float(gains[i])
            best = SplitCandidate(int(feature_index), float(thresholds[i]), best_gain)

    if best is None:
        logger.debug(f"No improving split among {n_rows} rows")
    return best


def partition(X: np.ndarray, split: SplitCandidate) -> tuple[np.ndarray, np.ndarray]:
    """
    Row indices on each side of a split.

    Every row lands on exactly one side.

    Returns:
        (left_indices, right_indices) where left holds
        ``X[:, feature] <= threshold``.
    """
    mask = X[:, split.feature_index] <= split.threshold
    return np.nonzero(mask)[0], np.nonzero(~mask)[0]
