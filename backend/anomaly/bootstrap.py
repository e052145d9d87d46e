"""
bootstrap.py — Bootstrap Resampling
====================================

Each tree of the forest is trained on its own resample of the training
set, drawn uniformly WITH replacement.  Some rows repeat and others are
left out entirely; that variation between samples is what makes the
trees disagree and gives bagging its variance reduction.

Sample size:  max(2, floor(ratio · n))
"""

import logging
import math

import numpy as np

from . import config
from .exceptions import InvalidInputError

logger = logging.getLogger("anomaly.bootstrap")


class BootstrapSampler:
    """
    Draws bootstrap samples for the ensemble members.

    Attributes:
        ratio (float): Fraction of the dataset drawn per sample (0 < ratio <= 1).
    """

    def __init__(self, ratio: float = None, random_state=None):
        """
        Args:
            ratio: Sample ratio.  Defaults to config.BOOTSTRAP_RATIO (0.7).
            random_state: Seed or numpy Generator for the index draws.
        """
        self.ratio = config.BOOTSTRAP_RATIO if ratio is None else ratio
        if not 0 < self.ratio <= 1:
            raise InvalidInputError(f"bootstrap ratio must be in (0, 1], got {self.ratio}")
        self._rng = np.random.default_rng(random_state)

    def sample_size(self, n_rows: int) -> int:
        return max(2, math.floor(self.ratio * n_rows))

    def draw_indices(self, n_rows: int) -> np.ndarray:
        """Row indices in [0, n_rows), drawn with replacement."""
        return self._rng.integers(0, n_rows, size=self.sample_size(n_rows))

    def sample(self, X: np.ndarray, y) -> tuple[np.ndarray, list]:
        """
        Resample a dataset.

        Args:
            X: Feature matrix of shape (n_rows, n_features).
            y: Labels, one per row.

        Returns:
            (X_sample, y_sample) of the sampler's sample size.
        """
        n_rows = X.shape[0]
        if n_rows == 0:
            raise InvalidInputError("Cannot bootstrap an empty dataset")
        idxs = self.draw_indices(n_rows)
        return X[idxs], [y[i] for i in idxs]
