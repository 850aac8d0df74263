"""
Joint extraction: world-space bone positions of the active asset
"""

import logging

from .scene import SceneNode

logger = logging.getLogger(__name__)


def extract_bone_coordinates(root: SceneNode):
    """
    Refresh world transforms from the root down, then return
    (coordinates, names) for every bone in traversal order.
    """
    root.update_world()
    coords, names = [], []
    for node in root.traverse():
        if node.is_bone:
            x, y, z = node.world_position()
            coords.append([float(x), float(y), float(z)])
            names.append(node.name)
    return coords, names


class JointExtractor:
    """
    Runs once per asset load / animation start and publishes the JointSample.
    Not meant to be called per frame.
    """

    def __init__(self, state):
        self.state = state
        self.runs = 0

    def extract(self, asset):
        coords, names = extract_bone_coordinates(asset.root)
        if not coords:
            logger.warning("[asset] %s has no bones; publishing empty model coordinates", asset.name)
        self.state.publish_model(coords, names)
        self.runs += 1
        return coords
