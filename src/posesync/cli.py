"""
Command line entry points: the live session and the development scorer.
"""

import argparse
import asyncio
import logging
import os
import sys

from .config import CONFIG, load_config
from .errors import ConfigError
from .utils import parse_bgr

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _setup_logging(level):
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO),
                        format=LOG_FORMAT, stream=sys.stderr)


def parse_live_args(argv=None):
    p = argparse.ArgumentParser(description="Compare your pose with an animated reference model.")
    p.add_argument("--model", help="model file name, one of: " + ", ".join(CONFIG['MODELS']))
    p.add_argument("--model-dir", dest="model_dir")
    p.add_argument("--camera", type=int)
    p.add_argument("--scorer-url", dest="scorer_url")
    p.add_argument("--config", help="JSON file with CONFIG overrides")
    p.add_argument("--speed", type=float, help="animation speed factor")
    p.add_argument("--landmark-color", dest="landmark_color", help="B,G,R")
    p.add_argument("--log-level", dest="log_level", default=None)
    return p.parse_args(argv)


def live_main(argv=None):
    a = parse_live_args(argv)
    _setup_logging(a.log_level or CONFIG['LOG_LEVEL'])
    color = parse_bgr(a.landmark_color, CONFIG['LANDMARK_COLOR']) if a.landmark_color else None
    try:
        cfg = load_config(
            a.config,
            DEFAULT_MODEL=a.model,
            MODEL_DIR=a.model_dir,
            CAMERA_ID=a.camera,
            SCORER_URL=a.scorer_url,
            ANIMATION_SPEED=a.speed,
            LANDMARK_COLOR=color,
            LOG_LEVEL=a.log_level,
        )
    except ConfigError as e:
        logging.getLogger(__name__).error("%s", e)
        return 2
    logging.getLogger().setLevel(getattr(logging, str(cfg['LOG_LEVEL']).upper(), logging.INFO))

    from .session import LiveSession

    session = LiveSession(cfg)
    try:
        asyncio.run(session.run())
    except KeyboardInterrupt:
        pass
    return 0


def scorer_main(argv=None):
    p = argparse.ArgumentParser(description="Local scorer for POST /api/coordinates.")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=int(os.environ.get('PORT', 5000)))
    p.add_argument("--debug", action="store_true")
    a = p.parse_args(argv)
    _setup_logging("DEBUG" if a.debug else "INFO")

    from .scorer_app import create_app

    create_app().run(host=a.host, port=a.port, debug=a.debug, use_reloader=False)
    return 0
