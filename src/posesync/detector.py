"""
Pose landmark detection: the MediaPipe wrapper and the fixed-interval adapter
that feeds it frames and publishes LandmarkSamples.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

import cv2
import numpy as np

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 33

# BlazePose 33-landmark topology, same pairs as mediapipe's POSE_CONNECTIONS
POSE_CONNECTIONS = (
    (0, 1), (1, 2), (2, 3), (3, 7), (0, 4), (4, 5), (5, 6), (6, 8), (9, 10),
    (11, 12), (11, 13), (13, 15), (15, 17), (15, 19), (15, 21), (17, 19),
    (12, 14), (14, 16), (16, 18), (16, 20), (16, 22), (18, 20),
    (11, 23), (12, 24), (23, 24), (23, 25), (24, 26), (25, 27), (26, 28),
    (27, 29), (28, 30), (29, 31), (30, 32), (27, 31), (28, 32),
)


class PoseDetector:
    def __init__(self, model_complexity=1, smooth_landmarks=True, enable_segmentation=False,
                 min_detection_confidence=0.5, min_tracking_confidence=0.5):
        try:
            import mediapipe as mp
        except ImportError as e:
            raise RuntimeError("MediaPipe is not installed: pip install mediapipe") from e
        solutions = getattr(mp, 'solutions', None)
        if solutions is None:
            raise RuntimeError("this mediapipe build has no solutions.pose API")

        self.mp_pose = solutions.pose
        self.pose = self.mp_pose.Pose(
            static_image_mode=False,
            model_complexity=int(model_complexity),
            smooth_landmarks=bool(smooth_landmarks),
            enable_segmentation=bool(enable_segmentation),
            min_detection_confidence=float(min_detection_confidence),
            min_tracking_confidence=float(min_tracking_confidence),
        )
        self.connections = tuple(sorted(self.mp_pose.POSE_CONNECTIONS))

    @classmethod
    def from_config(cls, cfg):
        return cls(
            model_complexity=cfg['POSE_MODEL_COMPLEXITY'],
            smooth_landmarks=cfg['SMOOTH_LANDMARKS'],
            enable_segmentation=cfg['ENABLE_SEGMENTATION'],
            min_detection_confidence=cfg['MIN_DETECTION_CONFIDENCE'],
            min_tracking_confidence=cfg['MIN_TRACKING_CONFIDENCE'],
        )

    def infer(self, bgr):
        """(33, 4) array of [x, y, z, visibility], or None when no pose is found."""
        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        res = self.pose.process(rgb)
        if not res.pose_landmarks:
            return None
        lm = res.pose_landmarks.landmark
        arr = np.zeros((len(lm), 4), dtype=np.float32)
        for i, p in enumerate(lm):
            arr[i, 0] = p.x; arr[i, 1] = p.y; arr[i, 2] = p.z; arr[i, 3] = p.visibility
        return arr

    def close(self):
        self.pose.close()


def to_landmark_sample(landmarks):
    """Normalize detector output (array rows or objects with x/y/z) into [[x, y, z], ...]."""
    sample = []
    for lm in landmarks:
        if hasattr(lm, 'x'):
            sample.append([float(lm.x), float(lm.y), float(lm.z)])
        else:
            sample.append([float(lm[0]), float(lm[1]), float(lm[2])])
    return sample


class LandmarkDetectorAdapter:
    """
    Called from the inference timer. Each tick copies the current video frame
    into an off-screen surface and submits it to the detector.

    Overlap policy: while a submission is in flight, ticks are skipped.
    Results from before the last mount/unmount are dropped.

    Inference runs on a single worker owned by the adapter, so a slow scorer
    or any other user of the loop's default executor cannot delay it.
    """

    def __init__(self, detector, state, renderer, frame_source, surface_size=(640, 480), connections=None):
        self.detector = detector
        self.state = state
        self.renderer = renderer
        self.frame_source = frame_source
        self.surface_size = surface_size
        if connections is None:
            connections = getattr(detector, 'connections', POSE_CONNECTIONS)
        self.connections = tuple(connections)
        self.surface = np.zeros((surface_size[1], surface_size[0], 3), dtype=np.uint8)

        self._mounted = False
        self._inflight = False
        self._generation = 0
        self._task = None
        self._executor = None

        self.submissions = 0
        self.skipped = 0
        self.misses = 0
        self.results = 0

    @property
    def in_flight(self):
        return self._inflight

    def mount(self):
        self._generation += 1
        self._inflight = False
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="posesync-inference")
        self._mounted = True

    def unmount(self):
        """Stop accepting ticks and wait for a running inference to return."""
        self._generation += 1
        self._mounted = False
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def tick(self):
        """Submit one frame if possible. Returns True when a submission was made."""
        if not self._mounted:
            return False
        if self._inflight:
            self.skipped += 1
            logger.debug("[detector] previous inference still running, tick skipped")
            return False
        frame = self.frame_source()
        if frame is None:
            return False

        w, h = self.surface_size
        self.surface = cv2.resize(frame, (w, h), interpolation=cv2.INTER_LINEAR)
        self._inflight = True
        self.submissions += 1
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._submit(self.surface, self._generation, self._executor))
        return True

    async def _submit(self, surface, generation, executor):
        if generation != self._generation:
            return
        loop = asyncio.get_running_loop()
        landmarks = None
        try:
            landmarks = await loop.run_in_executor(executor, self.detector.infer, surface)
        except Exception:
            logger.exception("[detector] inference failed")
        finally:
            if generation == self._generation:
                self._inflight = False
        self._apply(landmarks, surface, generation)

    def _apply(self, landmarks, surface, generation):
        if generation != self._generation or not self._mounted:
            return
        if landmarks is None or len(landmarks) == 0:
            self.misses += 1
            return
        sample = to_landmark_sample(landmarks)
        self.state.publish_video(sample)
        self.results += 1
        frame = self.frame_source()
        self.renderer.render(frame if frame is not None else surface, sample, self.connections)

    async def drain(self):
        """Wait for an in-flight inference to finish."""
        if self._task is not None and not self._task.done():
            await asyncio.gather(self._task, return_exceptions=True)
