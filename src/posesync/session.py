"""
Live comparison session: webcam + animated reference model + remote score.

Owns every component and their lifecycle. mount() opens the camera, loads the
default asset and starts the inference and dispatch timers; unmount() cancels
both timers and releases everything. run() drives the render loop.
"""

import asyncio
import logging
from pathlib import Path

import cv2
import numpy as np

from .animation import AnimationDriver
from .camera import Camera
from .detector import LandmarkDetectorAdapter, PoseDetector
from .dispatcher import CoordinateDispatcher, ScoringClient
from .errors import AssetError
from .gltf_loader import load_glb
from .overlay import OverlayRenderer
from .presenter import ScorePresenter
from .scene import empty_asset
from .skeleton import JointExtractor
from .state import CoordinateState
from .timers import IntervalTimer
from .utils import hstack_panels
from .viewer import ModelView

logger = logging.getLogger(__name__)

QUIT_KEYS = (27, ord('q'))


class LiveSession:
    def __init__(self, cfg, detector=None, client=None, camera=None, window_name="posesync"):
        self.cfg = cfg
        self.window_name = window_name
        w, h = cfg['SURFACE_WIDTH'], cfg['SURFACE_HEIGHT']
        self.surface_size = (w, h)

        self.state = CoordinateState()
        self.presenter = ScorePresenter()
        self.camera = camera or Camera(cfg['CAMERA_ID'])
        self.renderer = OverlayRenderer(
            w, h,
            radius=cfg['LANDMARK_RADIUS'],
            landmark_color=tuple(cfg['LANDMARK_COLOR']),
            connection_color=tuple(cfg['CONNECTION_COLOR']),
            thickness=cfg['LINE_THICKNESS'],
        )
        self.extractor = JointExtractor(self.state)
        self.driver = AnimationDriver(cfg['ANIMATION_SPEED'])
        self.detector = detector
        self._owns_detector = detector is None
        self.client = client or ScoringClient(cfg['SCORER_URL'], cfg['SCORER_TIMEOUT_SEC'])
        self.dispatcher = CoordinateDispatcher(self.client, self.state, self.presenter,
                                               max_workers=cfg['SCORER_WORKERS'])
        self.adapter = None
        self.model_view = ModelView(h, h)

        self.asset = empty_asset()
        self.model_name = None
        self.loading = True
        self.mounted = False
        self._running = False
        self._timers = []

    # ---------------- assets ----------------
    def model_names(self):
        return list(self.cfg['MODELS'])

    def select_asset(self, name):
        """Swap the active asset: stop playback, load, restart playback, re-extract."""
        if name not in self.cfg['MODELS']:
            logger.warning("[asset] unknown model %r; choices: %s", name, ", ".join(self.model_names()))
            return False
        self.driver.teardown()
        path = Path(self.cfg['MODEL_DIR']) / name
        try:
            asset = load_glb(path)
        except AssetError as e:
            logger.warning("[asset] %s", e)
            asset = empty_asset(name)
        self.asset = asset
        self.model_name = name
        self.driver.mount(asset)
        self.extractor.extract(asset)
        self.model_view.fit(asset)
        logger.info("[asset] active: %s (%s), %d joint(s)",
                    name, self.cfg['MODELS'][name], len(self.state.model_coordinates))
        return True

    # ---------------- lifecycle ----------------
    def mount(self):
        if self.mounted:
            return
        self.loading = True
        try:
            self.camera.open()
        finally:
            self.loading = False

        if self.detector is None:
            self.detector = PoseDetector.from_config(self.cfg)
            self._owns_detector = True
        self.adapter = LandmarkDetectorAdapter(
            self.detector, self.state, self.renderer, self.camera.latest, self.surface_size,
        )
        self.select_asset(self.cfg['DEFAULT_MODEL'])

        self.adapter.mount()
        self.dispatcher.mount()
        self._timers = [
            IntervalTimer(self.cfg['INFERENCE_INTERVAL_MS'] / 1000.0, self.adapter.tick, name="inference"),
            IntervalTimer(self.cfg['DISPATCH_INTERVAL_MS'] / 1000.0, self.dispatcher.tick, name="dispatch"),
        ]
        for t in self._timers:
            t.start()
        self.mounted = True

    def _cancel_timers(self):
        for t in self._timers:
            t.cancel()
        self._timers = []

    def unmount(self):
        if not self.mounted:
            return
        self._cancel_timers()
        if self.adapter is not None:
            self.adapter.unmount()
        self.dispatcher.unmount()
        self.driver.teardown()
        self.camera.release()
        if self._owns_detector and self.detector is not None:
            self.detector.close()
            self.detector = None
        close = getattr(self.client, 'close', None)
        if close is not None:
            close()
        self.log_summary()
        self.state.clear()
        self.mounted = False

    def log_summary(self):
        a = self.adapter
        d = self.dispatcher
        model_age, video_age = ("never" if t is None else f"{t:.1f}s" for t in self.state.ages())
        logger.info(
            "[session] inference submitted=%d skipped=%d results=%d misses=%d | "
            "dispatch issued=%d ok=%d failed=%d out_of_order=%d | overlay frames=%d edges_skipped=%d | "
            "sample age model=%s video=%s | last score %.2f",
            a.submissions if a else 0, a.skipped if a else 0, a.results if a else 0, a.misses if a else 0,
            d.requests_issued, d.successes, d.failures, d.out_of_order,
            self.renderer.frames_drawn, self.renderer.edges_skipped,
            model_age, video_age, self.presenter.score,
        )

    # ---------------- render loop ----------------
    def compose(self):
        w, h = self.surface_size
        live = self.camera.latest()
        if live is None:
            live = np.zeros((h, w, 3), dtype=np.uint8)
            cv2.putText(live, "No video", (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (180, 180, 180), 2, cv2.LINE_AA)
        combined = hstack_panels([live, self.renderer.surface, self.model_view.render(self.asset)])
        self.presenter.draw(combined)
        if self.model_name:
            label = f"{self.cfg['MODELS'][self.model_name]}  [1-{len(self.cfg['MODELS'])}] switch  [q] quit"
            cv2.putText(combined, label, (20, combined.shape[0] - 20), cv2.FONT_HERSHEY_SIMPLEX, 0.6,
                        (255, 255, 255), 2, cv2.LINE_AA)
        return combined

    def handle_key(self, key):
        if key in QUIT_KEYS:
            self.stop()
            return
        names = self.model_names()
        idx = key - ord('1')
        if 0 <= idx < min(len(names), 9) and names[idx] != self.model_name:
            self.select_asset(names[idx])

    def render_tick(self, delta, show=True):
        self.camera.read()
        self.driver.update(delta)
        frame = self.compose()
        if show:
            cv2.imshow(self.window_name, frame)
            self.handle_key(cv2.waitKey(1) & 0xFF)
        return frame

    def stop(self):
        self._running = False

    async def run(self, show=True):
        self.mount()
        self._running = True
        loop = asyncio.get_running_loop()
        frame_interval = 1.0 / max(1, int(self.cfg['RENDER_FPS']))
        last = loop.time()
        try:
            while self._running:
                await asyncio.sleep(max(0.0, last + frame_interval - loop.time()))
                now = loop.time()
                delta, last = now - last, now
                self.render_tick(delta, show=show)
        finally:
            self._cancel_timers()
            await self.dispatcher.drain()
            if self.adapter is not None:
                await self.adapter.drain()
            self.unmount()
            if show:
                cv2.destroyAllWindows()
