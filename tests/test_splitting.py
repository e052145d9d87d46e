import numpy as np

from backend.anomaly.splitting import SplitCandidate, find_best_split, partition


def test_separating_feature_found_at_midpoint():
    X = np.array([[0, 0], [0, 1], [1, 0], [1, 1]], dtype=float)
    codes = np.array([0, 0, 1, 1])
    split = find_best_split(X, codes, 2, [0, 1])
    assert split.feature_index == 0
    assert split.threshold == 0.5
    assert split.gain == 0.5


def test_uninformative_feature_reports_no_split():
    X = np.array([[0], [0], [1], [1]], dtype=float)
    codes = np.array([0, 1, 0, 1])
    assert find_best_split(X, codes, 2, [0]) is None


def test_constant_feature_skipped():
    X = np.array([[5.0, 0.0], [5.0, 1.0], [5.0, 2.0]])
    codes = np.array([0, 0, 1])
    assert find_best_split(X, codes, 2, [0]) is None
    split = find_best_split(X, codes, 2, [0, 1])
    assert split.feature_index == 1
    assert split.threshold == 1.5


def test_thresholds_only_between_distinct_values():
    X = np.array([[1.0], [1.0], [3.0], [3.0], [3.0]])
    codes = np.array([0, 0, 1, 1, 1])
    split = find_best_split(X, codes, 2, [0])
    assert split.threshold == 2.0


def test_tie_keeps_first_candidate_feature():
    X = np.array([[0, 0], [0, 0], [1, 1], [1, 1]], dtype=float)
    codes = np.array([0, 0, 1, 1])
    assert find_best_split(X, codes, 2, [1, 0]).feature_index == 1
    assert find_best_split(X, codes, 2, [0, 1]).feature_index == 0


def test_tie_keeps_lowest_threshold():
    # Thresholds 1.5 and 2.5 both isolate one pure side with equal gain.
    X = np.array([[1.0], [2.0], [3.0]])
    codes = np.array([0, 1, 0])
    split = find_best_split(X, codes, 2, [0])
    assert split is not None
    assert split.threshold == 1.5


def test_multiclass_split():
    X = np.array([[0.0], [1.0], [2.0], [10.0], [11.0], [12.0]])
    codes = np.array([0, 0, 0, 1, 2, 2])
    split = find_best_split(X, codes, 3, [0])
    assert split.threshold == 6.0


def test_single_row_cannot_split():
    assert find_best_split(np.array([[1.0]]), np.array([0]), 1, [0]) is None


def test_partition_covers_every_row_once():
    rng = np.random.default_rng(0)
    X = rng.normal(size=(40, 3))
    left, right = partition(X, SplitCandidate(feature_index=2, threshold=0.1, gain=0.2))
    assert sorted(np.concatenate([left, right]).tolist()) == list(range(40))
    assert np.all(X[left, 2] <= 0.1)
    assert np.all(X[right, 2] > 0.1)
