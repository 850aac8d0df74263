"""
Minimal scene graph for skinned assets: nodes with local TRS, keyframe clips.
"""

from __future__ import annotations

from typing import Iterator, List, Optional

import numpy as np

IDENTITY_ROTATION = (0.0, 0.0, 0.0, 1.0)  # xyzw


def trs_to_mat4(t, r_xyzw, s):
    """Compose a 4x4 matrix from translation, xyzw quaternion and scale."""
    x, y, z, w = r_xyzw
    sx, sy, sz = s
    m = np.eye(4, dtype=np.float64)
    m[0, 0] = (1 - 2 * (y * y + z * z)) * sx
    m[0, 1] = (2 * (x * y - z * w)) * sy
    m[0, 2] = (2 * (x * z + y * w)) * sz
    m[1, 0] = (2 * (x * y + z * w)) * sx
    m[1, 1] = (1 - 2 * (x * x + z * z)) * sy
    m[1, 2] = (2 * (y * z - x * w)) * sz
    m[2, 0] = (2 * (x * z - y * w)) * sx
    m[2, 1] = (2 * (y * z + x * w)) * sy
    m[2, 2] = (1 - 2 * (x * x + y * y)) * sz
    m[0, 3], m[1, 3], m[2, 3] = t
    return m


def quat_slerp(q0, q1, alpha):
    q0 = np.asarray(q0, dtype=np.float64)
    q1 = np.asarray(q1, dtype=np.float64)
    dot = float(np.dot(q0, q1))
    if dot < 0.0:
        q1 = -q1
        dot = -dot
    if dot > 0.9995:
        out = q0 + alpha * (q1 - q0)
    else:
        theta = np.arccos(np.clip(dot, -1.0, 1.0))
        sin_t = np.sin(theta)
        out = (np.sin((1 - alpha) * theta) * q0 + np.sin(alpha * theta) * q1) / sin_t
    n = np.linalg.norm(out)
    return out / n if n > 1e-12 else np.array(IDENTITY_ROTATION)


class SceneNode:
    def __init__(self, name="", is_bone=False, translation=(0.0, 0.0, 0.0),
                 rotation=IDENTITY_ROTATION, scale=(1.0, 1.0, 1.0), matrix=None):
        self.name = name
        self.is_bone = is_bone
        self.translation = np.array(translation, dtype=np.float64)
        self.rotation = np.array(rotation, dtype=np.float64)
        self.scale = np.array(scale, dtype=np.float64)
        # Nodes declared with a baked matrix are not animatable.
        self.matrix = None if matrix is None else np.array(matrix, dtype=np.float64).reshape(4, 4)
        self.parent: Optional[SceneNode] = None
        self.children: List[SceneNode] = []
        self.world_matrix = np.eye(4, dtype=np.float64)

    def __repr__(self):
        kind = "Bone" if self.is_bone else "Node"
        return f"<{kind} {self.name!r} children={len(self.children)}>"

    def add(self, child: "SceneNode") -> "SceneNode":
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def local_matrix(self):
        if self.matrix is not None:
            return self.matrix
        return trs_to_mat4(self.translation, self.rotation, self.scale)

    def traverse(self) -> Iterator["SceneNode"]:
        """Pre-order depth-first walk, children in insertion order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def update_world(self, parent_world=None) -> None:
        """Recompute world matrices for this subtree."""
        if parent_world is None:
            parent_world = np.eye(4) if self.parent is None else self.parent.world_matrix
        self.world_matrix = parent_world @ self.local_matrix()
        for child in self.children:
            child.update_world(self.world_matrix)

    def world_position(self):
        return self.world_matrix[:3, 3].copy()


class Channel:
    """Keyframe track driving one property (translation/rotation/scale) of one node."""

    PATHS = ('translation', 'rotation', 'scale')

    def __init__(self, node: SceneNode, path: str, times, values, interpolation='LINEAR'):
        if path not in self.PATHS:
            raise ValueError(f"unsupported channel path: {path}")
        self.node = node
        self.path = path
        self.times = np.asarray(times, dtype=np.float64).ravel()
        self.values = np.asarray(values, dtype=np.float64).reshape(len(self.times), -1)
        self.interpolation = interpolation

    @property
    def duration(self) -> float:
        return float(self.times[-1]) if len(self.times) else 0.0

    def sample(self, t: float):
        times, values = self.times, self.values
        if len(times) == 0:
            return None
        if t <= times[0] or len(times) == 1:
            return values[0]
        if t >= times[-1]:
            return values[-1]
        k = int(np.searchsorted(times, t, side='right')) - 1
        if self.interpolation == 'STEP':
            return values[k]
        t0, t1 = times[k], times[k + 1]
        alpha = 0.0 if t1 - t0 < 1e-12 else (t - t0) / (t1 - t0)
        if self.path == 'rotation':
            return quat_slerp(values[k], values[k + 1], alpha)
        return (1 - alpha) * values[k] + alpha * values[k + 1]

    def apply(self, t: float) -> None:
        v = self.sample(t)
        if v is not None:
            setattr(self.node, self.path, np.array(v, dtype=np.float64))


class AnimationClip:
    def __init__(self, name: str, channels: List[Channel], duration: Optional[float] = None):
        self.name = name
        self.channels = channels
        self.duration = duration if duration is not None else max((c.duration for c in channels), default=0.0)

    def __repr__(self):
        return f"<AnimationClip {self.name!r} {self.duration:.2f}s channels={len(self.channels)}>"


class Asset:
    """One loaded 3D model: scene root plus its clips."""

    def __init__(self, name: str, root: SceneNode, clips: Optional[List[AnimationClip]] = None):
        self.name = name
        self.root = root
        self.clips = clips or []

    def bones(self) -> List[SceneNode]:
        return [n for n in self.root.traverse() if n.is_bone]

    def find(self, name: str) -> Optional[SceneNode]:
        for n in self.root.traverse():
            if n.name == name:
                return n
        return None


def empty_asset(name="") -> Asset:
    return Asset(name, SceneNode("root"), [])
