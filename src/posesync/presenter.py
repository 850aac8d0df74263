"""
Similarity score presentation: color band, fill, and the health bar drawing
"""

import cv2

HEALTHY = "healthy"
CAUTION = "caution"
CRITICAL = "critical"

BAND_COLORS = {
    HEALTHY: (0, 200, 0),     # green
    CAUTION: (0, 220, 255),   # yellow
    CRITICAL: (0, 0, 255),    # red
}


def score_band(score):
    if score > 70:
        return HEALTHY
    if score > 40:
        return CAUTION
    return CRITICAL


class ScorePresenter:
    def __init__(self, score=0.0):
        self.score = float(score)

    def update(self, score):
        self.score = float(score)

    @property
    def fill(self):
        """Bar fill in percent; equal to the score."""
        return self.score

    @property
    def band(self):
        return score_band(self.score)

    @property
    def label(self):
        return f"{self.score:.2f}%"

    def draw(self, canvas, origin=(20, 20), size=(300, 24)):
        x, y = origin
        w, h = size
        fill_w = int(w * max(0.0, min(100.0, self.fill)) / 100.0)
        cv2.putText(canvas, "Health Bar", (x, y + 14), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2, cv2.LINE_AA)
        top = y + 24
        cv2.rectangle(canvas, (x, top), (x + w, top + h), (60, 60, 60), -1)
        if fill_w > 0:
            cv2.rectangle(canvas, (x, top), (x + fill_w, top + h), BAND_COLORS[self.band], -1)
        cv2.rectangle(canvas, (x, top), (x + w, top + h), (200, 200, 200), 1)
        cv2.putText(canvas, self.label, (x + w + 10, top + h - 5), cv2.FONT_HERSHEY_SIMPLEX, 0.6,
                    (255, 255, 255), 2, cv2.LINE_AA)
        return canvas
