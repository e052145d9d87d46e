"""
labeling.py — Rule-Based Anomaly Oracle
========================================

Fixed range checks that label readings for the initial training set and
explain alerts.  A reading is anomalous when any variable falls outside
its config.NORMAL_RANGES interval.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from . import config

logger = logging.getLogger("anomaly.labeling")


def is_out_of_range(reading: dict, ranges: dict = None) -> bool:
    """True if any ranged variable of the reading lies outside its range."""
    ranges = ranges or config.NORMAL_RANGES
    for key, (low, high) in ranges.items():
        value = reading.get(key)
        if value is None:
            continue
        if value < low or value > high:
            return True
    return False


def label_reading(reading: dict, ranges: dict = None) -> str:
    """Anomalous / Normal label for a single reading."""
    if is_out_of_range(reading, ranges):
        return config.ANOMALY_LABEL
    return config.NORMAL_LABEL


def label_frame(df: pd.DataFrame, ranges: dict = None) -> pd.Series:
    """
    Vectorised labelling of a table of readings.

    Args:
        df: DataFrame with one column per ranged variable.

    Returns:
        Series of labels aligned with df's index.
    """
    ranges = ranges or config.NORMAL_RANGES
    outside = pd.Series(False, index=df.index)
    for key, (low, high) in ranges.items():
        if key not in df.columns:
            continue
        outside |= (df[key] < low) | (df[key] > high)
    return pd.Series(
        np.where(outside, config.ANOMALY_LABEL, config.NORMAL_LABEL),
        index=df.index,
    )


def worst_variable(reading: dict, ranges: dict = None) -> Optional[dict]:
    """
    Variable that lies furthest outside its normal range.

    Deviation is expressed as a percentage of the range span:
        below: (min − value) / (max − min) · 100
        above: (value − max) / (max − min) · 100

    Returns:
        {"key", "value", "pct"} for the worst variable, or None when
        every variable is within range.
    """
    ranges = ranges or config.NORMAL_RANGES
    worst = None
    for key, (low, high) in ranges.items():
        value = reading.get(key)
        if value is None:
            continue
        span = (high - low) or 1.0
        if value < low:
            pct = (low - value) / span * 100
        elif value > high:
            pct = (value - high) / span * 100
        else:
            continue
        if worst is None or pct > worst["pct"]:
            worst = {"key": key, "value": value, "pct": pct}
    return worst
