"""
utils.py — Logging Setup and Filesystem Helpers
================================================

Common helpers used across the classifier modules.
"""

import os
import logging

from . import config


def setup_logging(level: str = None) -> None:
    """
    Configure console logging for the classifier.

    Sets up a console handler with timestamp, logger name, level,
    and message. All anomaly.* loggers inherit this configuration.

    Args:
        level: Log level string (DEBUG/INFO/WARNING/ERROR/CRITICAL).
               Defaults to config.LOG_LEVEL.
    """
    level = level or config.LOG_LEVEL
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    pkg_logger = logging.getLogger("anomaly")
    pkg_logger.setLevel(numeric_level)

    # Avoid duplicate handlers on repeated calls
    if not pkg_logger.handlers:
        pkg_logger.addHandler(handler)


def ensure_saved_dir() -> str:
    """
    Ensure the directory holding the persisted training dataset exists.

    Returns:
        Absolute path to the saved directory.
    """
    os.makedirs(config.SAVED_DIR, exist_ok=True)
    return config.SAVED_DIR
