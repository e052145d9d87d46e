import numpy as np
import pytest

from backend.anomaly.impurity import gini, gini_from_counts


@pytest.mark.parametrize("labels", [["A"], ["A"] * 7, [1, 1, 1]])
def test_single_label_is_pure(labels):
    assert gini(labels) == 0.0


@pytest.mark.parametrize("n", [1, 2, 5, 50])
def test_even_two_label_split_is_half(n):
    assert gini(["Normal"] * n + ["Anomalous"] * n) == 0.5


def test_empty_is_zero():
    assert gini([]) == 0.0


def test_three_labels_supported():
    assert gini(["a", "b", "c"]) == pytest.approx(2 / 3)
    assert 0.0 < gini(["a", "a", "b", "c"]) < 1.0


def test_counts_match_label_version():
    counts = np.array([[3, 1, 0], [2, 2, 0], [0, 0, 4], [0, 0, 0]])
    result = gini_from_counts(counts)
    assert result[0] == pytest.approx(gini(["x"] * 3 + ["y"]))
    assert result[1] == pytest.approx(0.5)
    assert result[2] == 0.0
    assert result[3] == 0.0
