"""
Small helpers: color parsing, side-by-side frame composition
"""

import cv2
import numpy as np


def parse_bgr(color_str, default=(0, 215, 255)):
    """
    Parse 'B,G,R' into a BGR tuple of ints. Fallback to default on error.
    """
    try:
        parts = [int(x.strip()) for x in color_str.split(',')]
        if len(parts) != 3:
            return default
        if any(p < 0 or p > 255 for p in parts):
            return default
        return tuple(parts)
    except (AttributeError, ValueError):
        return default


def hstack_panels(panels):
    """
    Stack frames left to right, resizing each to the height of the first.
    None entries are skipped.
    """
    panels = [p for p in panels if p is not None]
    if not panels:
        return None
    h = panels[0].shape[0]
    out = []
    for p in panels:
        ph, pw = p.shape[:2]
        if ph != h:
            scale = h / float(ph)
            p = cv2.resize(p, (max(1, int(pw * scale)), h), interpolation=cv2.INTER_LINEAR)
        out.append(p)
    return np.hstack(out)
