"""
Local development scorer implementing POST /api/coordinates.

Usage:
  posesync-scorer --port 5000
  posesync-live --scorer-url http://localhost:5000/api/coordinates
"""

import logging
import math

from flask import Flask, jsonify, request
from flask_cors import CORS

from .similarity import coordinate_similarity

logger = logging.getLogger(__name__)


def _coords(data, key):
    value = data.get(key)
    if value is None:
        raise ValueError(f"'{key}' is required")
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    out = []
    for i, item in enumerate(value):
        if (not isinstance(item, list) or len(item) != 3
                or not all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in item)):
            raise ValueError(f"'{key}[{i}]' must be [x, y, z] of finite numbers")
        try:
            finite = all(math.isfinite(c) for c in item)
        except OverflowError:
            finite = False
        if not finite:
            raise ValueError(f"'{key}[{i}]' must be [x, y, z] of finite numbers")
        out.append(item)
    return out


def create_app():
    app = Flask(__name__)
    CORS(app)

    @app.route('/api/coordinates', methods=['POST'])
    def coordinates():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'JSON object body required'}), 400
        try:
            model = _coords(data, 'modelCoordinates')
            video = _coords(data, 'videoCoordinates')
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        similarity = coordinate_similarity(model, video)
        logger.debug("[scorer] model=%d video=%d similarity=%.2f", len(model), len(video), similarity)
        return jsonify({'similarity': similarity})

    @app.route('/api/health')
    def health():
        return jsonify({'ok': True})

    return app
