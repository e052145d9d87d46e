"""
dataset.py — Training Dataset Generation and Persistence
=========================================================

The forest is bootstrapped from simulated readings labelled by the
rule-based oracle (labeling.py).  The generated dataset, and only the
dataset, is persisted so that restarts retrain on the same data; trained
trees are never written to disk.

Dataset layout:
    X     — list of feature vectors (config.FEATURE_NAMES order)
    y     — list of labels (Normal / Anomalous)
    rows  — pandas DataFrame with id, buoy_id, timestamp, the five
            measurements and classification (not persisted)
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import joblib
import numpy as np
import pandas as pd

from . import config
from .features import readings_to_matrix
from .labeling import label_frame
from .simulator import SensorSimulator

logger = logging.getLogger("anomaly.dataset")


@dataclass
class TrainingDataset:
    """Feature matrix, labels and (optionally) the originating rows."""

    X: np.ndarray
    y: list
    rows: pd.DataFrame = field(default_factory=pd.DataFrame)

    def __len__(self) -> int:
        return len(self.y)

    @property
    def anomaly_count(self) -> int:
        return sum(1 for label in self.y if label == config.ANOMALY_LABEL)


def generate_initial_dataset(n_per_buoy: int = None,
                             simulator: SensorSimulator = None,
                             now: datetime = None) -> TrainingDataset:
    """
    Simulate and label readings for every buoy.

    Generates n_per_buoy rounds; each round reads every buoy once, so the
    result holds n_per_buoy × len(config.BUOY_IDS) rows.  Rounds are
    timestamped one second apart, ending at ``now``.

    Args:
        n_per_buoy: Rounds to simulate.  Defaults to config.INITIAL_DATASET_SIZE.
        simulator: Reading source.  Defaults to a fresh SensorSimulator.
        now: Timestamp of the last round.  Defaults to the current UTC time.

    Returns:
        Labelled TrainingDataset.
    """
    n_per_buoy = config.INITIAL_DATASET_SIZE if n_per_buoy is None else n_per_buoy
    simulator = simulator or SensorSimulator()
    now = now or datetime.now(timezone.utc)
    base_id = int(now.timestamp() * 1000)

    records = []
    for i in range(n_per_buoy):
        ts = now - timedelta(seconds=n_per_buoy - i)
        for buoy_id in config.BUOY_IDS:
            reading = simulator.read(buoy_id)
            records.append({
                "id": f"{base_id}-{buoy_id}-{i}",
                "buoy_id": buoy_id,
                "timestamp": ts.isoformat(),
                **reading,
            })

    rows = pd.DataFrame(records, columns=["id", "buoy_id", "timestamp", *config.FEATURE_NAMES])
    rows["classification"] = label_frame(rows)

    dataset = TrainingDataset(
        X=readings_to_matrix(records),
        y=rows["classification"].tolist(),
        rows=rows,
    )
    logger.info(f"Generated {len(dataset)} training rows "
                f"({dataset.anomaly_count} labelled {config.ANOMALY_LABEL})")
    return dataset


def remove_missing(df: pd.DataFrame) -> pd.DataFrame:
    """
    Drop rows with any missing value.

    Args:
        df: Feature/label table.

    Returns:
        DataFrame with incomplete rows removed.
    """
    before = len(df)
    df_clean = df.dropna()
    dropped = before - len(df_clean)
    if dropped > 0:
        logger.info(f"Removed {dropped} rows with missing values "
                    f"({dropped / before * 100:.1f}% of data)")
    return df_clean.reset_index(drop=True)


def save_dataset(dataset: TrainingDataset, path: str = None) -> None:
    """
    Persist X and y with joblib.

    Args:
        dataset: Dataset to store.
        path: Output file.  Defaults to config.DATASET_PATH.
    """
    path = path or config.DATASET_PATH
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    payload = {"X": np.asarray(dataset.X, dtype=float).tolist(), "y": list(dataset.y)}
    joblib.dump(payload, path)
    logger.info(f"Training dataset ({len(dataset)} rows) saved to {path}")


def load_dataset(path: str = None) -> Optional[TrainingDataset]:
    """
    Restore a dataset written by save_dataset().

    Rows with missing values are dropped.  A missing, unreadable or
    inconsistent file yields None so the caller can regenerate.

    Args:
        path: Input file.  Defaults to config.DATASET_PATH.

    Returns:
        TrainingDataset, or None.
    """
    path = path or config.DATASET_PATH
    if not os.path.exists(path):
        logger.info(f"No persisted training dataset at {path}")
        return None

    try:
        payload = joblib.load(path)
        X, y = payload["X"], payload["y"]
        if len(X) != len(y):
            raise ValueError(f"{len(X)} feature rows but {len(y)} labels")
        df = pd.DataFrame(X, columns=config.FEATURE_NAMES)
        df["label"] = list(y)
    except Exception as e:
        logger.error(f"Failed to load training dataset from {path}: {e}")
        return None

    df = remove_missing(df)
    if df.empty:
        logger.warning(f"Persisted training dataset at {path} has no usable rows")
        return None

    logger.info(f"Training dataset loaded from {path} ({len(df)} rows)")
    return TrainingDataset(
        X=df[config.FEATURE_NAMES].to_numpy(dtype=float),
        y=df["label"].tolist(),
    )
