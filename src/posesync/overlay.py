"""
Overlay drawing: video frame plus detected landmarks and their connections
"""

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class OverlayRenderer:
    def __init__(self, width=640, height=480, radius=5, landmark_color=(0, 0, 255),
                 connection_color=(255, 255, 255), thickness=2):
        self.width = width
        self.height = height
        self.radius = radius
        self.landmark_color = landmark_color
        self.connection_color = connection_color
        self.thickness = thickness
        self.surface = np.zeros((height, width, 3), dtype=np.uint8)
        self.frames_drawn = 0
        self.edges_skipped = 0

    def clear(self):
        self.surface[:] = 0

    def _px(self, p):
        x, y = p[0], p[1]
        if not (np.isfinite(x) and np.isfinite(y)):
            return None
        return int(x * self.width), int(y * self.height)

    def render(self, frame, landmarks, connections):
        """
        Clear, draw the frame, the landmark markers, then every connection.
        Edges that reference a missing landmark are skipped.
        Returns the number of edges drawn.
        """
        self.clear()
        if frame is not None:
            self.surface[:] = cv2.resize(frame, (self.width, self.height), interpolation=cv2.INTER_LINEAR)

        for p in landmarks:
            c = self._px(p)
            if c is None:
                continue
            cv2.circle(self.surface, c, self.radius, self.landmark_color, -1, cv2.LINE_AA)

        n = len(landmarks)
        drawn = skipped = 0
        for i, j in connections:
            if not (0 <= i < n and 0 <= j < n):
                skipped += 1
                continue
            a, b = self._px(landmarks[i]), self._px(landmarks[j])
            if a is None or b is None:
                skipped += 1
                continue
            cv2.line(self.surface, a, b, self.connection_color, self.thickness, cv2.LINE_AA)
            drawn += 1

        if skipped:
            self.edges_skipped += skipped
            logger.debug("[overlay] %d edge(s) skipped, %d landmark(s) available", skipped, n)
        self.frames_drawn += 1
        return drawn
