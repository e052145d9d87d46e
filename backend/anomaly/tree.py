"""
tree.py — Decision Tree Classifier
===================================

Grows a single binary classification tree by greedy Gini-impurity
minimisation.  Used as the base learner of the random forest.

A node becomes a leaf when (first match wins):
    1. the node depth has reached max_depth;
    2. fewer than min_samples_split rows reached it;
    3. all of its rows share one label;
    4. no split over a random subset of features improves impurity.

Leaf label tie-break:
    When two labels are equally frequent at a leaf, the label that
    appears first in the training labels passed to fit() wins.  Labels
    are encoded to integer codes in first-encountered order and the
    lowest code among the most frequent is chosen.

Nodes are frozen dataclasses (Leaf / Internal) and are never mutated
after the tree is built; re-fitting replaces the whole structure.
"""

import logging
from dataclasses import dataclass
from typing import Any, Hashable, Iterator, Optional, Sequence, Union

import numpy as np

from . import config
from .exceptions import InvalidInputError, NotFittedError
from .splitting import class_counts, find_best_split, partition

logger = logging.getLogger("anomaly.tree")


@dataclass(frozen=True)
class Leaf:
    """Terminal node predicting a single label."""

    label: Any


@dataclass(frozen=True)
class Internal:
    """Decision node: rows with ``row[feature_index] <= threshold`` go left."""

    feature_index: int
    threshold: float
    left: "Node"
    right: "Node"


Node = Union[Leaf, Internal]


# ── Input validation ──────────────────────────────────────────────

def check_feature_matrix(X) -> np.ndarray:
    """
    Convert rows of numbers into a 2-D float matrix.

    Raises:
        InvalidInputError: Ragged, non-numeric, non-finite, or not 2-D.
    """
    try:
        matrix = np.asarray(X, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Feature rows must be numeric and equal length: {e}") from e

    if matrix.ndim != 2 or matrix.shape[1] == 0:
        raise InvalidInputError(
            f"Expected a 2-D feature matrix with at least one column, got shape {matrix.shape}"
        )
    if not np.all(np.isfinite(matrix)):
        raise InvalidInputError("Feature matrix contains NaN or infinite values")
    return matrix


def check_training_data(X, y) -> tuple[np.ndarray, list]:
    """
    Validate a training set.

    Returns:
        (feature matrix, list of labels)

    Raises:
        InvalidInputError: Empty dataset or feature/label length mismatch.
    """
    n_rows, n_labels = len(X), len(y)
    if n_rows == 0 or n_labels == 0:
        raise InvalidInputError(
            f"Training data is empty ({n_rows} feature rows, {n_labels} labels)"
        )
    if n_rows != n_labels:
        raise InvalidInputError(
            f"Feature/label length mismatch: {n_rows} feature rows but {n_labels} labels"
        )
    return check_feature_matrix(X), list(y)


def encode_labels(y: Sequence[Hashable]) -> tuple[list, np.ndarray]:
    """
    Map labels to integer codes in first-encountered order.

    Returns:
        (classes, codes) where ``classes[codes[i]] == y[i]``.
    """
    index: dict = {}
    try:
        codes = np.fromiter((index.setdefault(label, len(index)) for label in y),
                            dtype=np.intp, count=len(y))
    except TypeError as e:
        raise InvalidInputError(f"Labels must be hashable: {e}") from e
    return list(index), codes


# ── Tree ──────────────────────────────────────────────────────────

class DecisionTree:
    """
    Binary classification tree trained on numeric feature vectors.

    Attributes:
        max_depth (int): Depth at which nodes are forced to be leaves.
        min_samples_split (int): Minimum rows needed to attempt a split.
        features_per_split (int | None): Features drawn at every node;
            None uses all features.
        root (Leaf | Internal | None): Root node, None until fit().
        classes (list): Labels seen during fit, in first-encountered order.
        n_features (int | None): Width of the training rows.
    """

    def __init__(self,
                 max_depth: int = None,
                 min_samples_split: int = None,
                 features_per_split: Optional[int] = None,
                 random_state=None):
        """
        Args:
            max_depth: Defaults to config.MAX_DEPTH.
            min_samples_split: Defaults to config.MIN_SAMPLES_SPLIT.
            features_per_split: Feature subset size per node.
            random_state: Seed or numpy Generator used to draw the
                per-node feature subsets.
        """
        self.max_depth = config.MAX_DEPTH if max_depth is None else max_depth
        self.min_samples_split = (config.MIN_SAMPLES_SPLIT if min_samples_split is None
                                  else min_samples_split)
        self.features_per_split = features_per_split

        if self.max_depth < 0:
            raise InvalidInputError("max_depth must be >= 0")
        if self.min_samples_split < 1:
            raise InvalidInputError("min_samples_split must be >= 1")
        if self.features_per_split is not None and self.features_per_split < 1:
            raise InvalidInputError("features_per_split must be >= 1")

        self._rng = np.random.default_rng(random_state)
        self.root: Optional[Node] = None
        self.classes: list = []
        self.n_features: Optional[int] = None

    # ── Training ──────────────────────────────────────────────────

    def fit(self, X, y) -> "DecisionTree":
        """
        Grow the tree from a feature matrix and label vector.

        Args:
            X: Sequence of equal-length numeric rows.
            y: Sequence of hashable labels, one per row.

        Returns:
            self (for method chaining).

        Raises:
            InvalidInputError: Empty or malformed input.
        """
        X, y = check_training_data(X, y)
        classes, codes = encode_labels(y)
        n_features = X.shape[1]

        features_per_split = n_features
        if self.features_per_split is not None:
            features_per_split = min(self.features_per_split, n_features)

        root = self._grow(X, codes, classes, 0, features_per_split)

        self.root = root
        self.classes = classes
        self.n_features = n_features
        return self

    def _grow(self, X: np.ndarray, codes: np.ndarray, classes: list,
              depth: int, features_per_split: int) -> Node:
        """Recursively build the subtree for the rows that reached this node."""
        n_rows = codes.shape[0]
        counts = class_counts(codes, len(classes))

        if (depth >= self.max_depth
                or n_rows < self.min_samples_split
                or np.count_nonzero(counts) == 1):
            return Leaf(classes[int(np.argmax(counts))])

        features = self._rng.choice(X.shape[1], size=features_per_split, replace=False)
        split = find_best_split(X, codes, len(classes), features)
        if split is None:
            return Leaf(classes[int(np.argmax(counts))])

        left_idx, right_idx = partition(X, split)
        logger.debug(f"depth={depth} split feature={split.feature_index} "
                     f"threshold={split.threshold:.4f} gain={split.gain:.4f} "
                     f"({left_idx.size} | {right_idx.size})")

        return Internal(
            feature_index=split.feature_index,
            threshold=split.threshold,
            left=self._grow(X[left_idx], codes[left_idx], classes,
                            depth + 1, features_per_split),
            right=self._grow(X[right_idx], codes[right_idx], classes,
                             depth + 1, features_per_split),
        )

    # ── Inference ─────────────────────────────────────────────────

    def apply(self, row) -> Leaf:
        """Return the leaf reached by a single feature row."""
        self._check_fitted()
        node = self.root
        while isinstance(node, Internal):
            node = node.left if row[node.feature_index] <= node.threshold else node.right
        return node

    def predict(self, X) -> list:
        """
        Predict one label per row.

        Raises:
            NotFittedError: If fit() has not completed.
            InvalidInputError: Malformed rows or wrong row width.
        """
        self._check_fitted()
        if len(X) == 0:
            return []
        X = check_feature_matrix(X)
        if X.shape[1] != self.n_features:
            raise InvalidInputError(
                f"Input feature dimension mismatch: expected {self.n_features}, got {X.shape[1]}"
            )
        return [self.apply(row).label for row in X]

    def _check_fitted(self) -> None:
        if self.root is None:
            raise NotFittedError("Tree has not been fitted yet. Call fit() first.")

    # ── Introspection ─────────────────────────────────────────────

    def iter_nodes(self) -> Iterator[Node]:
        """Yield every node, depth first, root first."""
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, Internal):
                stack.append(node.right)
                stack.append(node.left)

    def depth(self) -> int:
        """Length of the longest root-to-leaf path (0 for a single leaf)."""
        def _depth(node: Node) -> int:
            if isinstance(node, Leaf):
                return 0
            return 1 + max(_depth(node.left), _depth(node.right))

        self._check_fitted()
        return _depth(self.root)

    def n_leaves(self) -> int:
        return sum(1 for node in self.iter_nodes() if isinstance(node, Leaf))
