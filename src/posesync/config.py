"""
Runtime configuration: commented defaults plus optional JSON overrides
"""

import copy
import json
import logging
import os
from pathlib import Path

from .errors import ConfigError

logger = logging.getLogger(__name__)

# ============================================================
# Defaults (edit here or override from a JSON file)
# ============================================================
CONFIG = {
    # Camera
    'CAMERA_ID': 0,  # 0: built-in webcam, 1: external

    # Off-screen drawing surface the detector and overlay work on
    'SURFACE_WIDTH': 640,
    'SURFACE_HEIGHT': 480,

    # 3D assets (closed enumeration shown in the model picker)
    'MODEL_DIR': 'models',
    'MODELS': {
        'trial-1.glb': 'Exercise 1',
        'trial-2.glb': 'Exercise 2',
    },
    'DEFAULT_MODEL': 'trial-1.glb',

    # Playback slowed down for easier visual comparison
    'ANIMATION_SPEED': 0.2,

    # Timers (ms); the two are independent and never synchronized
    'INFERENCE_INTERVAL_MS': 1000,
    'DISPATCH_INTERVAL_MS': 1000,

    # Scoring service
    'SCORER_URL': 'http://localhost:5000/api/coordinates',
    'SCORER_TIMEOUT_SEC': 5.0,
    'SCORER_WORKERS': 4,  # concurrent requests while the scorer is slow

    # MediaPipe Pose options
    'POSE_MODEL_COMPLEXITY': 1,  # 0: Lite, 1: Full, 2: Heavy
    'SMOOTH_LANDMARKS': True,
    'ENABLE_SEGMENTATION': False,
    'MIN_DETECTION_CONFIDENCE': 0.5,
    'MIN_TRACKING_CONFIDENCE': 0.5,

    # Overlay drawing (BGR)
    'LANDMARK_RADIUS': 5,
    'LANDMARK_COLOR': (0, 0, 255),
    'CONNECTION_COLOR': (255, 255, 255),
    'LINE_THICKNESS': 2,

    # Render loop
    'RENDER_FPS': 30,

    'LOG_LEVEL': 'INFO',
}
# ============================================================

SCORER_URL_ENV = 'POSESYNC_SCORER_URL'


def load_config(path=None, **overrides):
    """
    Return a copy of CONFIG merged with known keys from a JSON file and then
    with explicit overrides (None values are ignored).
    A missing file keeps the defaults; a malformed one raises ConfigError.
    """
    cfg = copy.deepcopy(CONFIG)

    if path:
        p = Path(path).expanduser()
        if not p.exists():
            logger.info("[config] %s not found, using defaults", p)
        else:
            try:
                raw = json.loads(p.read_text(encoding='utf-8'))
            except (OSError, ValueError) as e:
                raise ConfigError(f"cannot read config {p}: {e}") from e
            if not isinstance(raw, dict):
                raise ConfigError(f"config {p} must be a JSON object, got {type(raw).__name__}")
            _merge(cfg, raw, source=str(p))

    env_url = os.environ.get(SCORER_URL_ENV)
    if env_url:
        cfg['SCORER_URL'] = env_url

    _merge(cfg, {k: v for k, v in overrides.items() if v is not None}, source='overrides')
    return cfg


def _merge(cfg, values, source):
    for key, value in values.items():
        if key not in CONFIG:
            logger.warning("[config] unknown key %r in %s ignored", key, source)
            continue
        if key in ('LANDMARK_COLOR', 'CONNECTION_COLOR') and isinstance(value, list):
            value = tuple(value)
        cfg[key] = value
