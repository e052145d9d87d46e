"""
config.py — Classifier and Service Configuration Constants
===========================================================

Centralizes the random-forest hyperparameters, the simulator constants,
the rule-based normal ranges, and the file paths used by the buoy
water-quality anomaly classifier.

The buoy network measures five water-quality variables per reading:
- pH
- Temperature (°C)
- Conductivity (µS/cm)
- Dissolved oxygen (mg/L)
- Turbidity (NTU)
"""

import os

# ═══════════════════════════════════════════════════════════════════
# RANDOM FOREST HYPERPARAMETERS (override via environment variables)
# ═══════════════════════════════════════════════════════════════════

# Number of decision trees grown per fit() call.
TREE_COUNT = int(os.environ.get("ANOMALY_TREE_COUNT", "10"))

# Maximum depth of each tree.  Depth 6 allows up to 64 leaves, plenty
# for five features whose anomalies are mostly single-variable breaches.
MAX_DEPTH = int(os.environ.get("ANOMALY_MAX_DEPTH", "6"))

# A node with fewer rows than this becomes a leaf.
MIN_SAMPLES_SPLIT = int(os.environ.get("ANOMALY_MIN_SAMPLES_SPLIT", "4"))

# Fraction of the training rows drawn (with replacement) for each tree.
BOOTSTRAP_RATIO = float(os.environ.get("ANOMALY_BOOTSTRAP_RATIO", "0.7"))

# Features considered at each split.  Unset derives floor(sqrt(n_features))
# from the training data at fit time.
_features_per_split = os.environ.get("ANOMALY_FEATURES_PER_SPLIT")
FEATURES_PER_SPLIT = int(_features_per_split) if _features_per_split else None

# Parallel workers for tree construction (joblib threads).  1 = sequential.
N_JOBS = int(os.environ.get("ANOMALY_N_JOBS", "1"))

# Random seed for reproducible forests.  "none" = fresh entropy each run.
_random_state = os.environ.get("ANOMALY_RANDOM_STATE", "42")
RANDOM_STATE = None if _random_state.lower() == "none" else int(_random_state)

# Forest size used by the running service (the dashboard used 15 trees).
DETECTOR_TREE_COUNT = int(os.environ.get("ANOMALY_DETECTOR_TREE_COUNT", "15"))

# Gain at or below this value is treated as "no improvement" so that
# floating-point noise never produces a split.
MIN_GAIN = 1e-12

# ═══════════════════════════════════════════════════════════════════
# LABELS
# ═══════════════════════════════════════════════════════════════════

NORMAL_LABEL = "Normal"
ANOMALY_LABEL = "Anomalous"

# Returned by predict() for every row while no forest has been trained.
UNKNOWN_LABEL = None

# ═══════════════════════════════════════════════════════════════════
# FEATURES AND NORMAL RANGES
# ═══════════════════════════════════════════════════════════════════

# Order of the values inside every feature vector.
FEATURE_NAMES = [
    "pH",
    "temperature",
    "conductivity",
    "oxygen",
    "turbidity",
]

# Inclusive [min, max] ranges considered normal.  A reading outside any
# of them is labelled anomalous by the rule-based oracle.
NORMAL_RANGES = {
    "pH": (7.0, 8.8),
    "temperature": (28.0, 32.0),
    "conductivity": (5000.0, 30000.0),  # µS/cm
    "oxygen": (3.5, 6.8),
    "turbidity": (40.0, 250.0),
}

# Variable reported by an alert when no range is actually breached.
DEFAULT_ALERT_VARIABLE = "conductivity"

# ═══════════════════════════════════════════════════════════════════
# SENSOR SIMULATOR
# ═══════════════════════════════════════════════════════════════════

BUOY_IDS = [1, 2, 3, 4, 5, 6, 7]

# Buoys moored at sea read much higher conductivity than estuary buoys.
SEA_BUOYS = (1, 6, 7)

# Probability that a simulated reading carries an injected anomaly.
ANOMALY_PROBABILITY = 0.06

# Relative frequency of each injected anomaly type.
ANOMALY_WEIGHTS = [
    ("turbidity", 0.45),
    ("conductivity", 0.25),
    ("temperature", 0.15),
    ("oxygen", 0.10),
    ("pH", 0.05),
]

# Physical bounds applied to anomalous readings.
PHYSICAL_BOUNDS = {
    "pH": (4.0, 12.0),
    "temperature": (0.0, 50.0),
    "conductivity": (0.0, 40000.0),
    "oxygen": (0.0, 12.0),
    "turbidity": (0.0, 500.0),
}

# Readings generated per buoy for the bootstrap training dataset
# (7 buoys x 200 = 1400 rows).
INITIAL_DATASET_SIZE = 200

# ═══════════════════════════════════════════════════════════════════
# PERSISTENCE PATHS
# ═══════════════════════════════════════════════════════════════════

_PKG_DIR = os.path.dirname(os.path.abspath(__file__))

# Only the training dataset is persisted; trained forests never are.
SAVED_DIR = os.environ.get("ANOMALY_SAVED_DIR", os.path.join(_PKG_DIR, "saved"))

DATASET_PATH = os.path.join(SAVED_DIR, "training_dataset.pkl")

# ═══════════════════════════════════════════════════════════════════
# SERVICE
# ═══════════════════════════════════════════════════════════════════

# Number of recent alerts kept in memory and reported by /status.
ALERT_HISTORY_SIZE = 50

SERVICE_PORT = int(os.environ.get("ANOMALY_SERVICE_PORT", "5050"))

# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

# Log level for the classifier (DEBUG, INFO, WARNING, ERROR, CRITICAL)
LOG_LEVEL = os.environ.get("ANOMALY_LOG_LEVEL", "INFO")
