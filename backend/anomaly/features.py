"""
features.py — Reading to Feature Vector Conversion
===================================================

The classifier sees each reading as a fixed-order vector of the five
measurements listed in config.FEATURE_NAMES.
"""

import logging

import numpy as np

from . import config

logger = logging.getLogger("anomaly.features")


def validate_reading(reading: dict) -> bool:
    """
    Check that a reading carries every feature as a finite number.

    Args:
        reading: Reading dict.

    Returns:
        True if valid, False otherwise.
    """
    for key in config.FEATURE_NAMES:
        if key not in reading:
            return False
        try:
            value = float(reading[key])
        except (TypeError, ValueError):
            return False
        if not np.isfinite(value):
            return False
    return True


def reading_to_vector(reading: dict) -> list[float]:
    """Feature vector of a reading, in config.FEATURE_NAMES order."""
    return [float(reading[key]) for key in config.FEATURE_NAMES]


def readings_to_matrix(readings: list[dict]) -> np.ndarray:
    """
    Stack readings into a 2-D feature matrix.

    Returns:
        Array of shape (len(readings), len(config.FEATURE_NAMES)).
    """
    if not readings:
        return np.empty((0, len(config.FEATURE_NAMES)))
    return np.array([reading_to_vector(r) for r in readings], dtype=float)
