"""
backend.anomaly — Water-Quality Anomaly Classifier for Buoy Monitoring
=======================================================================

This package classifies buoy water-quality readings as Normal or
Anomalous with a random forest implemented from scratch.

Architecture:
    Buoy readings (pH, temperature, conductivity, oxygen, turbidity)
                               ↓
                   Feature vector (5 measurements)
                               ↓
                 Random Forest Ensemble (majority vote)
                     ├── Bootstrap sampling per tree
                     └── Decision trees (greedy Gini splits)
                               ↓
                 Classification + alert (worst variable)
                               ↓
                     Dashboard via Flask service

Modules:
    config      — Hyperparameters, ranges and paths
    exceptions  — Classifier error types
    impurity    — Gini impurity
    splitting   — Best (feature, threshold) split search
    tree        — Decision tree builder and predictor
    bootstrap   — Bootstrap resampling
    forest      — Random forest ensemble
    simulator   — Buoy sensor reading simulator
    labeling    — Rule-based range oracle
    features    — Reading to feature vector conversion
    dataset     — Training dataset generation and persistence
    train       — Forest training and evaluation
    inference   — Real-time reading classification
    pipeline    — Reading ingestion entry points
    ml_service  — Flask HTTP service
    utils       — Logging helpers
"""

from .exceptions import AnomalyClassifierError, InvalidInputError, NotFittedError
from .forest import RandomForestEnsemble
from .tree import DecisionTree

__version__ = "1.0.0"
__author__ = "Water Monitoring IoT Team"

__all__ = [
    "AnomalyClassifierError",
    "DecisionTree",
    "InvalidInputError",
    "NotFittedError",
    "RandomForestEnsemble",
]
