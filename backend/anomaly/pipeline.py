"""
pipeline.py — Reading Ingestion Pipeline
=========================================

Bridges incoming buoy readings (from the dashboard, a gateway, or the
simulator) to the InferenceEngine.

Flow:
    reading arrives -> process_incoming_reading() -> key normalisation
    -> validation -> InferenceEngine.classify() -> result dict

The engine is created and trained lazily on first use.  Failures are
logged and reported as None so a bad reading never takes the service
down.
"""

import logging
import threading
from datetime import datetime
from typing import Optional

from . import config
from .features import validate_reading
from .inference import InferenceEngine
from .simulator import SensorSimulator

logger = logging.getLogger("anomaly.pipeline")

# Singletons (initialized on first call)
_engine = None
_simulator = None
_engine_lock = threading.Lock()

# Accepted spellings of each measurement in incoming payloads.
_KEY_ALIASES = {
    "pH": ("pH", "ph", "PH"),
    "temperature": ("temperature", "temp"),
    "conductivity": ("conductivity", "cond"),
    "oxygen": ("oxygen", "dissolved_oxygen", "oxygen_mg_l"),
    "turbidity": ("turbidity", "turbidity_ntu"),
}


def get_engine() -> InferenceEngine:
    """Get or create the singleton InferenceEngine (trained on creation)."""
    global _engine
    with _engine_lock:
        if _engine is None:
            engine = InferenceEngine()
            engine.load()
            _engine = engine
    return _engine


def get_simulator() -> SensorSimulator:
    """Get or create the singleton SensorSimulator."""
    global _simulator
    if _simulator is None:
        _simulator = SensorSimulator()
    return _simulator


def reset() -> None:
    """Drop the singletons so the next call rebuilds them."""
    global _engine, _simulator
    _engine = None
    _simulator = None


def _normalize_reading(data: dict) -> tuple[dict, int, Optional[datetime]]:
    """
    Map an incoming payload to the reading format expected by the engine.

    Args:
        data: Raw payload.

    Returns:
        (reading dict, buoy id, timestamp or None)
    """
    reading = {}
    for key, aliases in _KEY_ALIASES.items():
        for alias in aliases:
            if alias in data:
                reading[key] = data[alias]
                break

    buoy_id = int(data.get("buoy_id", data.get("buoyId", 1)))

    timestamp = None
    raw_ts = data.get("timestamp")
    if raw_ts:
        timestamp = datetime.fromisoformat(str(raw_ts).replace("Z", "+00:00"))

    return reading, buoy_id, timestamp


def process_incoming_reading(data: dict) -> Optional[dict]:
    """
    Main entry point: classify one incoming reading.

    Args:
        data: Raw reading payload.

    Returns:
        Classification result dict, or None if the reading is invalid
        or processing failed.
    """
    try:
        reading, buoy_id, timestamp = _normalize_reading(data)
        if not validate_reading(reading):
            logger.warning(f"Rejected invalid reading: {data}")
            return None

        reading = {key: float(value) for key, value in reading.items()}
        logger.debug(f"Processing reading from buoy {buoy_id}: {reading}")
        return get_engine().classify(reading, buoy_id=buoy_id, timestamp=timestamp)

    except Exception as e:
        logger.error(f"Pipeline error: {e}", exc_info=True)
        return None


def simulate_tick(buoy_id: int = 1) -> Optional[dict]:
    """
    Simulate one reading for a buoy and classify it.

    Args:
        buoy_id: Buoy to simulate.

    Returns:
        Classification result dict, or None on failure.
    """
    try:
        reading = get_simulator().read(buoy_id)
        return get_engine().classify(reading, buoy_id=buoy_id)
    except Exception as e:
        logger.error(f"Simulation error: {e}", exc_info=True)
        return None


def retrain(regenerate: bool = False) -> bool:
    """
    Retrain the engine's forest.

    Classification keeps using the previous forest until the new one is
    complete.  Without an engine, one is created and trained exactly once.

    Returns:
        True if training succeeded.
    """
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = InferenceEngine()
        engine = _engine
    return engine.load(regenerate=regenerate)


def known_buoys() -> list[int]:
    return list(config.BUOY_IDS)
