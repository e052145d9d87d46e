"""
ml_service.py — Anomaly Classifier Microservice (Flask)
========================================================

Lightweight HTTP service exposing the random-forest classifier to the
dashboard front end.

Endpoints:
    GET  /health    — Service health check
    GET  /status    — Forest state, anomaly totals and recent alerts
    POST /classify  — Classify one buoy reading
    POST /simulate  — Simulate and classify a reading for a buoy
    POST /train     — Retrain the forest (optionally on a new dataset)

Run:
    python -m backend.anomaly.ml_service
    # Starts on port 5050 by default (configurable via ANOMALY_SERVICE_PORT)
"""

import logging

from flask import Flask, request, jsonify

from . import config
from . import pipeline
from .utils import setup_logging, ensure_saved_dir

logger = logging.getLogger("anomaly.service")
app = Flask(__name__)


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "OK",
        "service": "Buoy Water-Quality Classifier",
    })


@app.route("/status", methods=["GET"])
def status():
    """Forest and alert statistics."""
    return jsonify(pipeline.get_engine().status())


@app.route("/classify", methods=["POST"])
def classify():
    """
    Classify one reading.

    Expects JSON body:
        { pH, temperature, conductivity, oxygen, turbidity, buoy_id?, timestamp? }
    """
    data = request.get_json(force=True, silent=True)
    if not data:
        return jsonify({"error": "No JSON body provided"}), 400

    result = pipeline.process_incoming_reading(data)
    if result is None:
        return jsonify({"error": "Reading could not be classified"}), 422

    return jsonify({"status": "processed", "result": result})


@app.route("/simulate", methods=["POST"])
def simulate():
    """Simulate a reading for the requested buoy (default 1) and classify it."""
    data = request.get_json(force=True, silent=True) or {}
    try:
        buoy_id = int(data.get("buoy_id", 1))
    except (TypeError, ValueError):
        return jsonify({"error": "buoy_id must be an integer"}), 400

    if buoy_id not in pipeline.known_buoys():
        return jsonify({"error": f"Unknown buoy {buoy_id}"}), 404

    result = pipeline.simulate_tick(buoy_id)
    if result is None:
        return jsonify({"error": "Simulation failed"}), 500
    return jsonify({"status": "processed", "result": result})


@app.route("/train", methods=["POST"])
def train():
    """Retrain the forest; {"regenerate": true} simulates a new dataset."""
    data = request.get_json(force=True, silent=True) or {}
    try:
        success = pipeline.retrain(regenerate=bool(data.get("regenerate", False)))
        if success:
            return jsonify({"status": "success", "message": "Forest trained"})
        return jsonify({"status": "failed", "message": "Training failed"}), 500
    except Exception as e:
        logger.error(f"Training error: {e}", exc_info=True)
        return jsonify({"status": "error", "message": str(e)}), 500


def main() -> None:
    setup_logging()
    ensure_saved_dir()
    logger.info(f"Starting classifier service on port {config.SERVICE_PORT}")
    app.run(host="0.0.0.0", port=config.SERVICE_PORT, debug=False)


if __name__ == "__main__":
    main()
