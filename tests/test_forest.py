import threading

import numpy as np
import pytest

from backend.anomaly import config
from backend.anomaly import forest as forest_module
from backend.anomaly.bootstrap import BootstrapSampler
from backend.anomaly.exceptions import InvalidInputError
from backend.anomaly.forest import (RandomForestEnsemble, _FittedForest,
                                    default_features_per_split, majority_vote)
from backend.anomaly.tree import DecisionTree, Internal, Leaf

X_GRID = [[0, 0], [0, 1], [1, 0], [1, 1]]
Y_GRID = ["A", "A", "B", "B"]


class WholeDatasetSampler(BootstrapSampler):
    """Returns every row exactly once, in order."""

    def draw_indices(self, n_rows):
        return np.arange(n_rows)


def separable_dataset(n=200, seed=7):
    rng = np.random.default_rng(seed)
    X = rng.uniform(-1, 1, size=(n, 5))
    y = ["Anomalous" if v > 0.1 else "Normal" for v in X[:, 0]]
    return X, y


def leaf_tree(label):
    tree = DecisionTree()
    tree.root = Leaf(label)
    tree.n_features = 1
    return tree


def test_defaults():
    forest = RandomForestEnsemble()
    assert forest.tree_count == 10
    assert forest.max_depth == 6
    assert forest.min_samples_split == 4
    assert forest.bootstrap_ratio == 0.7
    assert forest.features_per_split is None
    assert not forest.is_trained
    assert forest.trees == ()


def test_fit_empty_raises():
    with pytest.raises(InvalidInputError):
        RandomForestEnsemble().fit([], [])


def test_fit_length_mismatch_raises():
    with pytest.raises(InvalidInputError, match="mismatch"):
        RandomForestEnsemble().fit([[1, 2], [3, 4]], ["A"])


def test_predict_before_fit_returns_unknown_sentinels():
    forest = RandomForestEnsemble()
    assert forest.predict([[1, 2], [3, 4], [5, 6]]) == [config.UNKNOWN_LABEL] * 3
    assert forest.predict([]) == []


def test_training_accuracy_on_separable_data():
    X, y = separable_dataset()
    forest = RandomForestEnsemble(random_state=42).fit(X, y)
    predictions = forest.predict(X)
    accuracy = np.mean([p == t for p, t in zip(predictions, y)])
    assert accuracy >= 0.9
    assert len(forest.trees) == 10


def test_predict_is_repeatable():
    X, y = separable_dataset()
    forest = RandomForestEnsemble(random_state=1).fit(X, y)
    assert forest.predict(X) == forest.predict(X)


def test_single_tree_over_whole_dataset_matches_base_tree():
    forest = RandomForestEnsemble(
        tree_count=1, max_depth=2, bootstrap_ratio=1.0, features_per_split=2,
        random_state=0, sampler=WholeDatasetSampler(1.0),
    ).fit(X_GRID, Y_GRID)

    (tree,) = forest.trees
    assert isinstance(tree.root, Internal)
    assert tree.root.feature_index == 0
    assert tree.root.threshold == 0.5
    assert forest.predict(X_GRID) == ["A", "A", "B", "B"]
    assert forest.predict(X_GRID) == DecisionTree(max_depth=2).fit(X_GRID, Y_GRID).predict(X_GRID)


def test_vote_tie_goes_to_first_voting_tree():
    forest = RandomForestEnsemble()
    forest._fitted = _FittedForest((leaf_tree("A"), leaf_tree("B")), 1)
    assert forest.predict([[0.0], [1.0]]) == ["A", "A"]

    forest._fitted = _FittedForest((leaf_tree("B"), leaf_tree("A")), 1)
    assert forest.predict([[0.0]]) == ["B"]


def test_majority_beats_first_vote():
    forest = RandomForestEnsemble()
    forest._fitted = _FittedForest((leaf_tree("A"), leaf_tree("B"), leaf_tree("B")), 1)
    assert forest.predict([[0.0]]) == ["B"]


def test_majority_vote_helper():
    assert majority_vote(["x", "y", "y"]) == "y"
    assert majority_vote(["y", "x"]) == "y"
    assert majority_vote(["x", "y", "z", "z", "x"]) == "x"


@pytest.mark.parametrize("n_features, expected", [(1, 1), (2, 1), (4, 2), (5, 2), (9, 3), (16, 4)])
def test_default_features_per_split(n_features, expected):
    assert default_features_per_split(n_features) == expected


def test_features_per_split_derived_from_training_width(monkeypatch):
    seen = []
    tree_labels = []
    real = forest_module._grow_tree

    def spy(X, y, max_depth, min_samples_split, features_per_split, seed):
        seen.append(features_per_split)
        return real(X, y, max_depth, min_samples_split, features_per_split, seed)

    monkeypatch.setattr(forest_module, "_grow_tree", spy)
    rng = np.random.default_rng(0)
    RandomForestEnsemble(tree_count=2, random_state=0).fit(
        rng.normal(size=(30, 9)), ["a", "b"] * 15)
    assert seen == [3, 3]


def test_single_label_dataset_gives_all_leaf_forest():
    forest = RandomForestEnsemble(tree_count=3, random_state=0).fit(X_GRID, ["A"] * 4)
    assert all(tree.root == Leaf("A") for tree in forest.trees)
    assert forest.predict(X_GRID) == ["A"] * 4


def test_multiclass_labels():
    rng = np.random.default_rng(3)
    X = rng.uniform(0, 3, size=(150, 2))
    y = [["low", "mid", "high"][int(v)] for v in X[:, 0]]
    forest = RandomForestEnsemble(tree_count=7, features_per_split=2, random_state=0).fit(X, y)
    assert set(forest.predict(X)) <= {"low", "mid", "high"}
    assert forest.predict([[0.2, 1.0], [2.8, 1.0]]) == ["low", "high"]


def test_seeded_forests_are_reproducible():
    X, y = separable_dataset(seed=8)
    queries = np.random.default_rng(0).uniform(-1, 1, size=(50, 5))
    a = RandomForestEnsemble(random_state=5).fit(X, y).predict(queries)
    b = RandomForestEnsemble(random_state=5).fit(X, y).predict(queries)
    assert a == b


def test_parallel_build_matches_sequential():
    X, y = separable_dataset(seed=9)
    queries = np.random.default_rng(1).uniform(-1, 1, size=(50, 5))
    sequential = RandomForestEnsemble(random_state=5, n_jobs=1).fit(X, y).predict(queries)
    threaded = RandomForestEnsemble(random_state=5, n_jobs=2).fit(X, y).predict(queries)
    assert sequential == threaded


def test_failed_fit_keeps_previous_forest(monkeypatch):
    forest = RandomForestEnsemble(tree_count=3, random_state=0).fit(X_GRID, Y_GRID)
    before = forest.trees

    def boom(*args, **kwargs):
        raise RuntimeError("tree failed")

    monkeypatch.setattr(forest_module, "_grow_tree", boom)
    with pytest.raises(RuntimeError):
        forest.fit(X_GRID, ["C"] * 4)
    assert forest.trees is before


def test_refit_replaces_all_trees():
    forest = RandomForestEnsemble(tree_count=4, random_state=0).fit(X_GRID, Y_GRID)
    first = forest.trees
    forest.fit(X_GRID, ["C"] * 4)
    assert len(forest.trees) == 4
    assert not set(map(id, forest.trees)) & set(map(id, first))
    assert forest.predict(X_GRID) == ["C"] * 4


def test_predict_rejects_wrong_width():
    forest = RandomForestEnsemble(tree_count=2, random_state=0).fit(X_GRID, Y_GRID)
    with pytest.raises(InvalidInputError):
        forest.predict([[1, 2, 3]])


@pytest.mark.parametrize("kwargs", [
    {"tree_count": 0},
    {"bootstrap_ratio": 0.0},
    {"bootstrap_ratio": 1.2},
    {"features_per_split": 0},
])
def test_invalid_configuration(kwargs):
    with pytest.raises(InvalidInputError):
        RandomForestEnsemble(**kwargs)


@pytest.mark.parametrize("bad", [float("nan"), float("inf")])
def test_fit_rejects_non_finite_features(bad):
    forest = RandomForestEnsemble(tree_count=2, random_state=0).fit(X_GRID, Y_GRID)
    before = forest.trees
    with pytest.raises(InvalidInputError, match="NaN or infinite"):
        forest.fit([[0, 0], [bad, 1], [1, 0], [1, 1]], Y_GRID)
    assert forest.trees is before


def test_predict_never_sees_half_replaced_forest():
    forest = RandomForestEnsemble(tree_count=8, random_state=0, n_jobs=2)
    forest.fit(X_GRID, ["A"] * 4)
    stop = threading.Event()
    seen = []
    tree_labels = []

    def poll():
        while True:
            seen.append(forest.predict([[0, 0]]))
            tree_labels.append([tree.root.label for tree in forest.trees])
            if stop.is_set():
                break

    reader = threading.Thread(target=poll)
    reader.start()
    try:
        for i in range(20):
            forest.fit(X_GRID, ["B" if i % 2 == 0 else "A"] * 4)
    finally:
        stop.set()
        reader.join()

    assert seen
    assert all(result in (["A"], ["B"]) for result in seen)
    assert all(labels in (["A"] * 8, ["B"] * 8) for labels in tree_labels)
