"""
forest.py — Random Forest Ensemble
===================================

Bootstrap-aggregated decision trees with majority-vote inference.

fit(X, y):
    1. Validate the training set (non-empty, matching lengths).
    2. Draw one bootstrap sample per tree (BootstrapSampler).
    3. Grow one DecisionTree per sample, each with its own child random
       generator, optionally on parallel joblib worker threads.
    4. Swap the finished trees in as a single tuple.

predict(X):
    Every tree labels every row; the most voted label wins.  On a tie
    the label that was voted first (in tree order) wins.

Why the swap matters:
    The service may call predict() while a retrain is running.  The
    fitted state lives in one attribute that fit() reassigns only after
    every tree is built, and predict() reads it exactly once, so a
    reader sees either the old forest or the new one, never a mix.  A
    failed fit leaves the previous forest in place.
"""

import logging
import math
import threading
from collections import Counter
from typing import NamedTuple, Optional

import numpy as np
from joblib import Parallel, delayed

from . import config
from .bootstrap import BootstrapSampler
from .exceptions import InvalidInputError
from .tree import DecisionTree, check_feature_matrix, check_training_data

logger = logging.getLogger("anomaly.forest")


class _FittedForest(NamedTuple):
    trees: tuple
    n_features: int


def majority_vote(votes):
    """
    Most frequent label of a sequence of votes.

    Ties go to the label that appears first in ``votes``.
    """
    counts = Counter(votes)
    return max(counts, key=counts.__getitem__)


def default_features_per_split(n_features: int) -> int:
    """floor(sqrt(n_features)), at least 1."""
    return max(1, math.floor(math.sqrt(n_features)))


def _grow_tree(X: np.ndarray, y: list, max_depth: int, min_samples_split: int,
               features_per_split: int, seed: int) -> DecisionTree:
    tree = DecisionTree(
        max_depth=max_depth,
        min_samples_split=min_samples_split,
        features_per_split=features_per_split,
        random_state=seed,
    )
    return tree.fit(X, y)


class RandomForestEnsemble:
    """
    Random forest classifier built from scratch.

    Attributes:
        tree_count (int): Trees grown per fit().
        max_depth (int): Maximum depth of every tree.
        min_samples_split (int): Minimum rows to split a node.
        bootstrap_ratio (float): Fraction of rows drawn per tree.
        features_per_split (int | None): Features tried per node; None
            derives floor(sqrt(n_features)) at fit time.
        n_jobs (int): joblib worker threads for fit/predict.
    """

    def __init__(self,
                 tree_count: int = None,
                 max_depth: int = None,
                 min_samples_split: int = None,
                 bootstrap_ratio: float = None,
                 features_per_split: Optional[int] = None,
                 random_state=None,
                 n_jobs: int = None,
                 sampler: Optional[BootstrapSampler] = None):
        """
        Args:
            tree_count: Defaults to config.TREE_COUNT (10).
            max_depth: Defaults to config.MAX_DEPTH (6).
            min_samples_split: Defaults to config.MIN_SAMPLES_SPLIT (4).
            bootstrap_ratio: Defaults to config.BOOTSTRAP_RATIO (0.7).
            features_per_split: Defaults to config.FEATURES_PER_SPLIT.
            random_state: Seed or numpy Generator driving every random
                draw of the forest.
            n_jobs: Defaults to config.N_JOBS.
            sampler: Custom BootstrapSampler; replaces the default one
                built from bootstrap_ratio and random_state.
        """
        self.tree_count = config.TREE_COUNT if tree_count is None else tree_count
        self.max_depth = config.MAX_DEPTH if max_depth is None else max_depth
        self.min_samples_split = (config.MIN_SAMPLES_SPLIT if min_samples_split is None
                                  else min_samples_split)
        self.features_per_split = (config.FEATURES_PER_SPLIT if features_per_split is None
                                   else features_per_split)
        self.n_jobs = config.N_JOBS if n_jobs is None else n_jobs

        if self.tree_count < 1:
            raise InvalidInputError("tree_count must be >= 1")
        if self.features_per_split is not None and self.features_per_split < 1:
            raise InvalidInputError("features_per_split must be >= 1")

        self._rng = np.random.default_rng(random_state)
        self.sampler = sampler or BootstrapSampler(bootstrap_ratio, random_state=self._rng)
        self.bootstrap_ratio = self.sampler.ratio

        self._fitted: Optional[_FittedForest] = None
        self._fit_lock = threading.Lock()

    # ── State ─────────────────────────────────────────────────────

    @property
    def is_trained(self) -> bool:
        return self._fitted is not None

    @property
    def trees(self) -> tuple:
        fitted = self._fitted
        return fitted.trees if fitted is not None else ()

    @property
    def n_features(self) -> Optional[int]:
        fitted = self._fitted
        return fitted.n_features if fitted is not None else None

    # ── Training ──────────────────────────────────────────────────

    def fit(self, X, y) -> "RandomForestEnsemble":
        """
        Train a fresh forest, replacing any previous one.

        Args:
            X: Sequence of equal-length numeric rows.
            y: Sequence of labels, one per row.

        Returns:
            self (for method chaining).

        Raises:
            InvalidInputError: Empty dataset, mismatched lengths, or NaN /
                infinite feature values (these are rejected rather than
                trained on, so such rows must be dropped beforehand).
        """
        X, y = check_training_data(X, y)
        n_samples, n_features = X.shape

        features_per_split = self.features_per_split
        if features_per_split is None:
            features_per_split = default_features_per_split(n_features)
        features_per_split = min(features_per_split, n_features)

        with self._fit_lock:
            logger.info(f"Training random forest on {n_samples} samples, "
                        f"{n_features} features: {self.tree_count} trees, "
                        f"max_depth={self.max_depth}, "
                        f"min_split={self.min_samples_split}, "
                        f"features_per_split={features_per_split} …")

            # Random draws happen here, in tree order, so the result does
            # not depend on which worker finishes first.
            jobs = []
            for _ in range(self.tree_count):
                X_sample, y_sample = self.sampler.sample(X, y)
                seed = int(self._rng.integers(0, 2**63 - 1))
                jobs.append(delayed(_grow_tree)(X_sample, y_sample, self.max_depth,
                                                self.min_samples_split,
                                                features_per_split, seed))

            trees = Parallel(n_jobs=self.n_jobs, prefer="threads")(jobs)

            self._fitted = _FittedForest(tuple(trees), n_features)

        logger.info(f"Random forest trained ({len(trees)} trees, "
                    f"{sum(t.n_leaves() for t in trees)} leaves total)")
        return self

    # ── Inference ─────────────────────────────────────────────────

    def predict(self, X) -> list:
        """
        Majority-vote label for every row, in input order.

        Returns a list of config.UNKNOWN_LABEL, one per row, when the
        forest has never been trained.

        Raises:
            InvalidInputError: Malformed rows or wrong row width.
        """
        fitted = self._fitted
        if fitted is None:
            logger.debug(f"Forest not trained; returning {len(X)} unknown labels")
            return [config.UNKNOWN_LABEL] * len(X)
        if len(X) == 0:
            return []

        X = check_feature_matrix(X)
        if X.shape[1] != fitted.n_features:
            raise InvalidInputError(
                f"Input feature dimension mismatch: expected {fitted.n_features}, "
                f"got {X.shape[1]}"
            )

        per_tree = Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(tree.predict)(X) for tree in fitted.trees
        )
        return [majority_vote(row_votes) for row_votes in zip(*per_tree)]
