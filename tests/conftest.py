import os
import sys

import numpy as np
import pytest

# ensure workspace root is on sys.path so the backend package can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from backend.anomaly import config, pipeline
from backend.anomaly.forest import RandomForestEnsemble
from backend.anomaly.inference import InferenceEngine


@pytest.fixture(autouse=True)
def reset_pipeline():
    """Every test starts without the lazily created engine/simulator."""
    pipeline.reset()
    yield
    pipeline.reset()


@pytest.fixture
def saved_dir(tmp_path, monkeypatch):
    """Redirect dataset persistence to a temp dir and shrink generated datasets."""
    monkeypatch.setattr(config, "SAVED_DIR", str(tmp_path))
    monkeypatch.setattr(config, "DATASET_PATH", str(tmp_path / "training_dataset.pkl"))
    monkeypatch.setattr(config, "INITIAL_DATASET_SIZE", 20)
    monkeypatch.setattr(config, "DETECTOR_TREE_COUNT", 3)
    return tmp_path


def turbidity_dataset(n=200, seed=3):
    """Normal readings except where turbidity exceeds its 250 NTU limit."""
    rng = np.random.default_rng(seed)
    X = np.column_stack([
        rng.uniform(7.2, 8.5, n),
        rng.uniform(28.5, 31.5, n),
        rng.uniform(6000, 28000, n),
        rng.uniform(4.0, 6.5, n),
        rng.uniform(50, 450, n),
    ])
    y = [config.ANOMALY_LABEL if t > 250 else config.NORMAL_LABEL for t in X[:, 4]]
    return X, y


@pytest.fixture
def trained_forest():
    X, y = turbidity_dataset()
    return RandomForestEnsemble(tree_count=5, features_per_split=5, random_state=0).fit(X, y)


@pytest.fixture
def trained_engine(trained_forest):
    return InferenceEngine(forest=trained_forest)


@pytest.fixture
def normal_reading():
    return {"pH": 7.8, "temperature": 29.9, "conductivity": 12000.0,
            "oxygen": 5.1, "turbidity": 90.0}


@pytest.fixture
def turbid_reading():
    return {"pH": 7.8, "temperature": 29.9, "conductivity": 12000.0,
            "oxygen": 5.1, "turbidity": 480.0}
