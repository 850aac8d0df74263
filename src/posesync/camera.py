"""
Webcam capture. Failing to open the device is logged, not raised.
"""

import logging

import cv2

logger = logging.getLogger(__name__)


class Camera:
    def __init__(self, camera_id=0):
        self.camera_id = camera_id
        self._cap = None
        self._last = None

    @property
    def available(self):
        return self._cap is not None

    def open(self):
        cap = cv2.VideoCapture(self.camera_id)
        if not cap.isOpened():
            cap.release()
            logger.error("[camera] failed to open camera %s; continuing without video", self.camera_id)
            return False
        self._cap = cap
        logger.info("[camera] camera %s opened", self.camera_id)
        return True

    def read(self):
        """Grab the next frame; returns None on failure and keeps the last good one."""
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok:
            return None
        self._last = frame
        return frame

    def latest(self):
        return self._last

    def release(self):
        if self._cap is not None:
            self._cap.release()
        self._cap = None
        self._last = None
