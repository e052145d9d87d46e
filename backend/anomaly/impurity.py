"""
impurity.py — Gini Impurity
============================

Gini impurity measures how mixed the labels at a tree node are:

    gini = 1 − Σ p_k²

where p_k is the fraction of rows carrying label k.  0.0 means every
row shares one label; a 50/50 two-label node scores 0.5.
"""

from collections import Counter
from typing import Iterable

import numpy as np


def gini(labels: Iterable) -> float:
    """
    Gini impurity of a label multiset.

    Args:
        labels: Any iterable of hashable labels.

    Returns:
        Impurity in [0, 1).  Empty input returns 0.0.
    """
    counts = Counter(labels)
    total = sum(counts.values())
    if total == 0:
        return 0.0
    impurity = 1.0
    for count in counts.values():
        p = count / total
        impurity -= p * p
    return impurity


def gini_from_counts(counts: np.ndarray) -> np.ndarray:
    """
    Vectorised Gini impurity over rows of per-class counts.

    Args:
        counts: Array of shape (..., n_classes).

    Returns:
        Array of shape (...) with one impurity per row.  Rows whose
        counts sum to zero score 0.0.
    """
    counts = np.asarray(counts, dtype=float)
    totals = counts.sum(axis=-1)
    safe = np.where(totals > 0, totals, 1.0)
    p = counts / safe[..., None]
    impurity = 1.0 - np.sum(p * p, axis=-1)
    return np.where(totals > 0, impurity, 0.0)
