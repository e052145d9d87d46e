"""
train.py — Forest Training from the Bootstrap Dataset
======================================================

Restores the persisted training dataset (or simulates and labels a new
one), trains a fresh random forest and reports its quality.

This script can be run standalone:
    python -m backend.anomaly.train [--regenerate] [--holdout 0.2]

Or called programmatically:
    from backend.anomaly.train import train_forest
    forest, metrics = train_forest()

Training flow:
    1. Load the persisted dataset from config.DATASET_PATH
    2. If absent (or --regenerate), simulate 200 rounds x 7 buoys,
       label them with the range oracle and persist X / y
    3. Fit a RandomForestEnsemble (config.DETECTOR_TREE_COUNT trees)
    4. Log accuracy / precision / recall / F1 on the training rows
"""

import argparse
import logging
import sys

from sklearn.metrics import (accuracy_score, classification_report, f1_score,
                             precision_score, recall_score)
from sklearn.model_selection import train_test_split

from . import config
from .dataset import TrainingDataset, generate_initial_dataset, load_dataset, save_dataset
from .exceptions import NotFittedError
from .forest import RandomForestEnsemble
from .simulator import SensorSimulator
from .utils import setup_logging, ensure_saved_dir

logger = logging.getLogger("anomaly.train")


def evaluate(forest: RandomForestEnsemble, X, y) -> dict:
    """
    Score a trained forest against known labels.

    The anomaly label is the positive class for precision, recall and F1.

    Args:
        forest: Trained ensemble.
        X: Feature rows.
        y: True labels.

    Returns:
        Dict with accuracy, precision, recall, f1, samples and
        predicted_anomalies.

    Raises:
        NotFittedError: If the forest has never been trained.
    """
    if not forest.is_trained:
        raise NotFittedError("Cannot evaluate an untrained forest")

    y_true = list(y)
    y_pred = forest.predict(X)
    positive = [config.ANOMALY_LABEL]

    return {
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "precision": float(precision_score(y_true, y_pred, labels=positive,
                                           average="micro", zero_division=0)),
        "recall": float(recall_score(y_true, y_pred, labels=positive,
                                     average="micro", zero_division=0)),
        "f1": float(f1_score(y_true, y_pred, labels=positive,
                             average="micro", zero_division=0)),
        "samples": len(y_true),
        "predicted_anomalies": sum(1 for p in y_pred if p == config.ANOMALY_LABEL),
    }


def prepare_dataset(regenerate: bool = False, path: str = None,
                    simulator: SensorSimulator = None) -> TrainingDataset:
    """
    Restore the persisted training dataset, or generate and persist one.

    Args:
        regenerate: Ignore any persisted dataset.
        path: Dataset file.  Defaults to config.DATASET_PATH.
        simulator: Reading source for generation.

    Returns:
        TrainingDataset ready for fitting.
    """
    dataset = None if regenerate else load_dataset(path)
    if dataset is not None:
        return dataset

    dataset = generate_initial_dataset(simulator=simulator)
    try:
        save_dataset(dataset, path)
    except OSError as e:
        logger.warning(f"Could not persist training dataset: {e}")
    return dataset


def train_forest(dataset: TrainingDataset = None, regenerate: bool = False,
                 path: str = None, simulator: SensorSimulator = None,
                 **forest_options) -> tuple[RandomForestEnsemble, dict]:
    """
    Train a fresh forest on the bootstrap dataset.

    Args:
        dataset: Dataset to train on.  When omitted, prepare_dataset()
            supplies one.
        regenerate: Passed to prepare_dataset().
        path: Passed to prepare_dataset().
        simulator: Passed to prepare_dataset().
        **forest_options: RandomForestEnsemble keyword overrides.

    Returns:
        (trained forest, training-set metrics)
    """
    if dataset is None:
        dataset = prepare_dataset(regenerate=regenerate, path=path, simulator=simulator)

    options = {
        "tree_count": config.DETECTOR_TREE_COUNT,
        "random_state": config.RANDOM_STATE,
    }
    options.update(forest_options)

    forest = RandomForestEnsemble(**options)
    forest.fit(dataset.X, dataset.y)

    metrics = evaluate(forest, dataset.X, dataset.y)
    logger.info(f"Training stats: accuracy={metrics['accuracy']:.3f} "
                f"precision={metrics['precision']:.3f} "
                f"recall={metrics['recall']:.3f} f1={metrics['f1']:.3f}")
    logger.info(f"{metrics['predicted_anomalies']}/{metrics['samples']} training rows "
                f"predicted {config.ANOMALY_LABEL}")
    return forest, metrics


def run_holdout(dataset: TrainingDataset, test_size: float = 0.2) -> dict:
    """
    Fit on a training split and evaluate on the held-out split.

    Returns:
        Metrics dict computed on the held-out rows.
    """
    X_train, X_test, y_train, y_test = train_test_split(
        dataset.X, dataset.y, test_size=test_size, random_state=config.RANDOM_STATE,
    )
    forest, _ = train_forest(TrainingDataset(X=X_train, y=list(y_train)))
    metrics = evaluate(forest, X_test, y_test)
    logger.info("Held-out classification report:\n"
                + classification_report(y_test, forest.predict(X_test), zero_division=0))
    return metrics


def main(argv: list[str] = None) -> int:
    parser = argparse.ArgumentParser(description="Train the water-quality anomaly forest")
    parser.add_argument("--regenerate", action="store_true",
                        help="Simulate a new training dataset instead of loading the saved one")
    parser.add_argument("--holdout", type=float, default=0.0,
                        help="Fraction of rows held out for evaluation (0 disables)")
    args = parser.parse_args(argv)

    setup_logging()
    ensure_saved_dir()

    logger.info("=" * 60)
    logger.info("STARTING FOREST TRAINING")
    logger.info("=" * 60)

    dataset = prepare_dataset(regenerate=args.regenerate)
    if args.holdout > 0:
        metrics = run_holdout(dataset, test_size=args.holdout)
        logger.info(f"Held-out accuracy={metrics['accuracy']:.3f} f1={metrics['f1']:.3f}")
    else:
        train_forest(dataset)

    logger.info("=" * 60)
    logger.info("FOREST TRAINING COMPLETE")
    logger.info(f"  Dataset: {config.DATASET_PATH}")
    logger.info("=" * 60)
    return 0


# ── CLI entry point ──────────────────────────────────────────────
if __name__ == "__main__":
    sys.exit(main())
