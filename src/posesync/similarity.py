"""
Positional similarity between model and video coordinates, used by the
development scorer. Order-based: point k of one set is compared with point k
of the other, so the result is only meaningful within one asset.
"""

import numpy as np

# MediaPipe image space is y-down with z toward the camera; assets are y-up.
VIDEO_TO_MODEL_AXES = np.array([1.0, -1.0, -1.0])


def cosine_sim(a, b, eps=1e-8):
    an = np.linalg.norm(a)
    bn = np.linalg.norm(b)
    return float(np.dot(a, b) / (an * bn + eps))


def normalize_points(points):
    """Center on the mean and scale so the farthest point has unit norm."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(pts) == 0:
        return pts
    pts = pts - pts.mean(axis=0)
    scale = float(np.max(np.linalg.norm(pts, axis=1)))
    if not np.isfinite(scale) or scale < 1e-6:
        scale = 1.0
    return pts / scale


def coordinate_similarity(model_coordinates, video_coordinates):
    """Similarity in [0, 100]; 0.0 when either side has fewer than two points."""
    m = np.asarray(model_coordinates, dtype=np.float64).reshape(-1, 3)
    v = np.asarray(video_coordinates, dtype=np.float64).reshape(-1, 3)
    k = min(len(m), len(v))
    if k < 2:
        return 0.0
    m = normalize_points(m)
    v = normalize_points(v * VIDEO_TO_MODEL_AXES)
    sim = cosine_sim(m[:k].ravel(), v[:k].ravel())
    return float(np.clip((sim + 1.0) * 50.0, 0.0, 100.0))
