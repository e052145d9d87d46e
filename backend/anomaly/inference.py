"""
inference.py — Real-Time Reading Classification
================================================

Accepts buoy readings, classifies them with the random forest and
raises an alert for every reading predicted anomalous:
    reading -> feature vector -> forest vote -> alert (worst variable)

The engine can be queried before its forest is trained: readings are
then classified as config.UNKNOWN_LABEL and no alert is raised.
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from . import config
from .features import reading_to_vector
from .forest import RandomForestEnsemble
from .labeling import worst_variable
from .train import train_forest

logger = logging.getLogger("anomaly.inference")


class InferenceEngine:
    """
    Classifies readings and keeps running anomaly statistics.

    Usage:
        engine = InferenceEngine()
        engine.load()
        result = engine.classify(reading, buoy_id=3)

    Attributes:
        forest (RandomForestEnsemble): Current classifier.
        alerts (deque): Most recent alerts, newest last.
    """

    def __init__(self, forest: RandomForestEnsemble = None):
        self.forest = forest or RandomForestEnsemble(
            tree_count=config.DETECTOR_TREE_COUNT,
            random_state=config.RANDOM_STATE,
        )
        self.alerts: deque = deque(maxlen=config.ALERT_HISTORY_SIZE)
        self.training_metrics: dict = {}
        self.total_anomalies = 0
        self.readings_processed = 0
        self.last_class = "Unknown"
        self._stats_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self.forest.is_trained

    def load(self, regenerate: bool = False, **train_options) -> bool:
        """
        Train the engine's forest from the bootstrap dataset.

        Trees are never persisted, so loading always means retraining
        on the persisted (or freshly generated) dataset.

        Returns:
            True if training succeeded, False otherwise.
        """
        try:
            forest, metrics = train_forest(regenerate=regenerate, **train_options)
        except Exception as e:
            logger.error(f"Failed to train forest: {e}", exc_info=True)
            return False

        # Swap in the new forest only once it is fully trained.
        self.forest = forest
        self.training_metrics = metrics
        logger.info("Inference engine loaded (forest trained)")
        return True

    def classify(self, reading: dict, buoy_id: int = 1,
                 timestamp: datetime = None) -> dict:
        """
        Classify a single reading.

        Args:
            reading: Dict with the five measurements.
            buoy_id: Buoy that produced the reading.
            timestamp: Reading time.  Defaults to now (UTC).

        Returns:
            Result dict with keys:
                buoy_id, timestamp, the five measurements,
                classification: Normal | Anomalous | None (untrained)
                alert: Alert dict or None
        """
        timestamp = timestamp or datetime.now(timezone.utc)
        label = self.forest.predict([reading_to_vector(reading)])[0]

        alert = None
        if label == config.ANOMALY_LABEL:
            alert = self._build_alert(reading, buoy_id, timestamp)

        with self._stats_lock:
            self.readings_processed += 1
            if label == config.UNKNOWN_LABEL:
                self.last_class = "Unknown"
            else:
                self.last_class = label
            if alert is not None:
                self.total_anomalies += 1
                self.alerts.append(alert)

        if alert is not None:
            logger.warning(f"ANOMALY on buoy {buoy_id}: {alert['variable']}="
                           f"{alert['value_raw']} ({alert['deviation_pct']}% outside range)")
        else:
            logger.debug(f"Buoy {buoy_id} classified {label}")

        return {
            "buoy_id": buoy_id,
            "timestamp": timestamp.isoformat(),
            **{key: reading[key] for key in config.FEATURE_NAMES},
            "classification": label,
            "alert": alert,
        }

    @staticmethod
    def _build_alert(reading: dict, buoy_id: int, timestamp: datetime) -> dict:
        """
        Describe an anomalous reading by its most out-of-range variable.

        When the forest flags a reading that breaches no range, the alert
        falls back to config.DEFAULT_ALERT_VARIABLE with 0% deviation.
        """
        worst = worst_variable(reading)
        variable = worst["key"] if worst else config.DEFAULT_ALERT_VARIABLE
        return {
            "buoy_id": buoy_id,
            "timestamp": timestamp.isoformat(),
            "day": timestamp.date().isoformat(),
            "variable": variable,
            "value_raw": reading.get(variable),
            "deviation_pct": round(worst["pct"] if worst else 0.0, 2),
        }

    def status(self, recent: Optional[int] = 10) -> dict:
        """Running statistics and the most recent alerts."""
        with self._stats_lock:
            alerts = list(self.alerts)
            return {
                "model_loaded": self.is_loaded,
                "trees": len(self.forest.trees),
                "readings_processed": self.readings_processed,
                "total_anomalies": self.total_anomalies,
                "last_class": self.last_class,
                "training_metrics": dict(self.training_metrics),
                "recent_alerts": alerts[-recent:] if recent else alerts,
            }
