"""
Orthographic skeleton view of the animated asset (front view, y up).
Display only; joint coordinates for scoring come from skeleton.JointExtractor.
"""

import cv2
import numpy as np


def _parent_bone(node):
    p = node.parent
    while p is not None and not p.is_bone:
        p = p.parent
    return p


class ModelView:
    def __init__(self, width=480, height=480, margin=40, bone_color=(255, 200, 60), joint_color=(255, 255, 255)):
        self.width = width
        self.height = height
        self.margin = margin
        self.bone_color = bone_color
        self.joint_color = joint_color
        self._center = np.zeros(2)
        self._scale = 1.0

    def fit(self, asset):
        """Frame the asset's current (rest) pose inside the panel."""
        asset.root.update_world()
        pts = np.array([b.world_position()[:2] for b in asset.bones()], dtype=np.float64).reshape(-1, 2)
        if len(pts) == 0:
            self._center = np.zeros(2)
            self._scale = 1.0
            return
        lo, hi = pts.min(axis=0), pts.max(axis=0)
        self._center = (lo + hi) / 2.0
        extent = float(max(hi[0] - lo[0], hi[1] - lo[1]))
        usable = max(1, min(self.width, self.height) - 2 * self.margin)
        self._scale = usable / extent if extent > 1e-9 else 1.0

    def project(self, p):
        x = self.width / 2.0 + (p[0] - self._center[0]) * self._scale
        y = self.height / 2.0 - (p[1] - self._center[1]) * self._scale
        return int(round(x)), int(round(y))

    def render(self, asset):
        canvas = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        bones = asset.bones() if asset is not None else []
        if not bones:
            cv2.putText(canvas, "No skeleton", (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (180, 180, 180), 2, cv2.LINE_AA)
            return canvas
        asset.root.update_world()
        for b in bones:
            parent = _parent_bone(b)
            if parent is not None:
                cv2.line(canvas, self.project(parent.world_position()), self.project(b.world_position()),
                         self.bone_color, 2, cv2.LINE_AA)
        for b in bones:
            cv2.circle(canvas, self.project(b.world_position()), 3, self.joint_color, -1, cv2.LINE_AA)
        return canvas
