"""
simulator.py — Buoy Sensor Reading Simulator
=============================================

Produces realistic water-quality readings for the seven monitoring
buoys so the classifier can be trained and exercised without hardware.

Each buoy has a fixed pseudo-random offset that shifts its baselines.
Conductivity keeps a per-buoy baseline between calls and drifts slowly,
because sea buoys (1, 6, 7) and estuary buoys read very differently.

About 6% of readings carry an injected anomaly on a single variable
(turbidity most often, pH least often).  Normal readings are clamped
to the normal ranges, anomalous ones only to physical sensor bounds.
"""

import logging
import math
import time
from typing import Callable

import numpy as np

from . import config

logger = logging.getLogger("anomaly.simulator")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SensorSimulator:
    """
    Stateful simulator for buoy readings.

    Attributes:
        anomaly_probability (float): Chance that a reading is anomalous.
    """

    def __init__(self, random_state=None, clock: Callable[[], float] = None,
                 anomaly_probability: float = None):
        """
        Args:
            random_state: Seed or numpy Generator for all draws.
            clock: Returns the current time in seconds.  Drives the slow
                conductivity cycle.  Defaults to time.time.
            anomaly_probability: Defaults to config.ANOMALY_PROBABILITY.
        """
        self._rng = np.random.default_rng(random_state)
        self._clock = clock or time.time
        self.anomaly_probability = (config.ANOMALY_PROBABILITY if anomaly_probability is None
                                    else anomaly_probability)
        self._conductivity_base: dict[int, float] = {}

    def _noise(self, mean: float, sd: float) -> float:
        return float(self._rng.normal(mean, sd))

    def _uniform(self, low: float, high: float) -> float:
        return float(self._rng.uniform(low, high))

    def _next_conductivity_base(self, buoy_id: int) -> float:
        at_sea = buoy_id in config.SEA_BUOYS
        base = self._conductivity_base.get(buoy_id)

        if base is None:
            cycle = math.sin(self._clock() * 1000.0 / 1.5e7 + buoy_id)
            base = 26000 + cycle * 800 if at_sea else 8000 + cycle * 1200
        else:
            drift = self._uniform(-150, 150) if at_sea else self._uniform(-300, 300)
            base = _clamp(base + drift, 5000, 30000)

        self._conductivity_base[buoy_id] = base
        return base

    def _choose_anomaly(self) -> str:
        names = [name for name, _ in config.ANOMALY_WEIGHTS]
        weights = np.array([w for _, w in config.ANOMALY_WEIGHTS], dtype=float)
        return str(self._rng.choice(names, p=weights / weights.sum()))

    def read(self, buoy_id: int = 1) -> dict:
        """
        Simulate one reading for a buoy.

        Args:
            buoy_id: Buoy identifier (1-7 in the deployed network).

        Returns:
            Dict with keys pH, temperature, conductivity, oxygen,
            turbidity (floats rounded to 2 decimals).
        """
        offset = (buoy_id * 13.37) % 7
        at_sea = buoy_id in config.SEA_BUOYS

        conductivity_base = self._next_conductivity_base(buoy_id)
        reading = {
            "pH": self._noise(7.6 + offset * 0.015, 0.3),
            "temperature": self._noise(29.5 + offset * 0.03, 0.25),
            "conductivity": self._noise(conductivity_base, 400 if at_sea else 700),
            "oxygen": self._noise(5.2 - offset * 0.08, 0.6),
            "turbidity": abs(self._noise(70 + offset * 3, 15)),
        }

        if self._rng.random() < self.anomaly_probability:
            kind = self._choose_anomaly()
            if kind == "pH":
                reading["pH"] += 2.5 if self._rng.random() > 0.5 else -3.0
            elif kind == "temperature":
                reading["temperature"] += self._uniform(4, 12)
            elif kind == "conductivity":
                reading["conductivity"] += self._uniform(4000, 10000)
            elif kind == "oxygen":
                reading["oxygen"] = max(0.5, reading["oxygen"] - self._uniform(2, 4))
            elif kind == "turbidity":
                reading["turbidity"] += self._uniform(100, 250)
            logger.debug(f"Buoy {buoy_id}: injected {kind} anomaly")
            bounds = config.PHYSICAL_BOUNDS
        else:
            bounds = config.NORMAL_RANGES

        return {
            key: round(_clamp(value, *bounds[key]), 2)
            for key, value in reading.items()
        }
