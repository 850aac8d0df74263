"""
Binary glTF 2.0 (.glb) reader producing an Asset: node hierarchy, skin joints
flagged as bones, and animation clips.
"""

import json
import logging
import struct
from pathlib import Path

import numpy as np

from .errors import AssetError
from .scene import AnimationClip, Asset, Channel, SceneNode

logger = logging.getLogger(__name__)

GLB_MAGIC = 0x46546C67
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942

_COMP = {
    5120: np.dtype('i1'), 5121: np.dtype('u1'), 5122: np.dtype('<i2'),
    5123: np.dtype('<u2'), 5125: np.dtype('<u4'), 5126: np.dtype('<f4'),
}
_NORM_DIV = {5120: 127.0, 5121: 255.0, 5122: 32767.0, 5123: 65535.0}
_TYPE_COUNT = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4, "MAT4": 16}


def load_glb(path) -> Asset:
    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as e:
        raise AssetError(f"cannot read {p}: {e}") from e
    return parse_glb(data, name=p.name)


def parse_glb(data: bytes, name: str = "") -> Asset:
    if len(data) < 12:
        raise AssetError("file too short for a GLB header")
    magic, version, length = struct.unpack_from('<III', data, 0)
    if magic != GLB_MAGIC:
        raise AssetError("not a binary glTF file")
    if version != 2:
        raise AssetError(f"unsupported glTF version {version}")

    gltf, buf = None, b''
    offset, end = 12, min(length, len(data))
    while offset + 8 <= end:
        chunk_len, chunk_type = struct.unpack_from('<II', data, offset)
        offset += 8
        chunk = data[offset:offset + chunk_len]
        offset += chunk_len
        if chunk_type == CHUNK_JSON:
            try:
                gltf = json.loads(chunk.decode('utf-8'))
            except (UnicodeDecodeError, ValueError) as e:
                raise AssetError(f"bad JSON chunk: {e}") from e
        elif chunk_type == CHUNK_BIN and not buf:
            buf = chunk
    if not isinstance(gltf, dict):
        raise AssetError("GLB has no JSON chunk")

    try:
        return build_asset(gltf, buf, name)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise AssetError(f"malformed glTF content in {name or 'asset'}: {e!r}") from e


def read_accessor(gltf, buf, index):
    acc = gltf['accessors'][index]
    dtype = _COMP[acc['componentType']]
    n = _TYPE_COUNT[acc['type']]
    count = int(acc['count'])
    if 'bufferView' not in acc:
        return np.zeros((count, n), dtype=np.float64)
    view = gltf['bufferViews'][acc['bufferView']]
    if view.get('buffer', 0) != 0:
        raise ValueError("only the embedded GLB buffer is supported")
    offset = view.get('byteOffset', 0) + acc.get('byteOffset', 0)
    packed = dtype.itemsize * n
    stride = view.get('byteStride') or packed
    if stride == packed:
        arr = np.frombuffer(buf, dtype=dtype, count=count * n, offset=offset)
    else:
        rows = [np.frombuffer(buf, dtype=dtype, count=n, offset=offset + i * stride) for i in range(count)]
        arr = np.concatenate(rows) if rows else np.zeros(0, dtype=dtype)
    arr = arr.reshape(count, n).astype(np.float64)
    if acc.get('normalized') and acc['componentType'] in _NORM_DIV:
        arr = np.maximum(arr / _NORM_DIV[acc['componentType']], -1.0)
    return arr


def _make_node(i, info, bone_idxs):
    name = info.get('name') or f"node_{i}"
    if 'matrix' in info:
        # glTF matrices are column-major
        m = np.array(info['matrix'], dtype=np.float64).reshape(4, 4).T
        return SceneNode(name, is_bone=i in bone_idxs, matrix=m)
    return SceneNode(
        name,
        is_bone=i in bone_idxs,
        translation=info.get('translation', (0.0, 0.0, 0.0)),
        rotation=info.get('rotation', (0.0, 0.0, 0.0, 1.0)),
        scale=info.get('scale', (1.0, 1.0, 1.0)),
    )


def build_asset(gltf, buf, name="") -> Asset:
    node_specs = gltf.get('nodes', [])
    bone_idxs = {j for skin in gltf.get('skins', []) for j in skin.get('joints', [])}
    nodes = [_make_node(i, info, bone_idxs) for i, info in enumerate(node_specs)]

    has_parent = set()
    for i, info in enumerate(node_specs):
        for c in info.get('children', []):
            nodes[i].add(nodes[c])
            has_parent.add(c)

    scenes = gltf.get('scenes')
    if scenes:
        top = scenes[gltf.get('scene', 0)].get('nodes', [])
    else:
        top = [i for i in range(len(nodes)) if i not in has_parent]

    root = SceneNode(name or "scene")
    for i in top:
        root.add(nodes[i])

    clips = []
    for a_idx, anim in enumerate(gltf.get('animations', [])):
        channels = []
        for ch in anim.get('channels', []):
            target = ch['target']
            path = target.get('path')
            if 'node' not in target or path not in Channel.PATHS:
                continue  # morph weights are not animated here
            sampler = anim['samplers'][ch['sampler']]
            times = read_accessor(gltf, buf, sampler['input']).ravel()
            values = read_accessor(gltf, buf, sampler['output'])
            interp = sampler.get('interpolation', 'LINEAR')
            if interp == 'CUBICSPLINE':
                # (in-tangent, value, out-tangent) per key; keep the values only
                values = values.reshape(len(times), 3, -1)[:, 1, :]
                interp = 'LINEAR'
            channels.append(Channel(nodes[target['node']], path, times, values, interp))
        clips.append(AnimationClip(anim.get('name') or f"clip_{a_idx}", channels))

    asset = Asset(name, root, clips)
    logger.info("[asset] %s: %d nodes, %d bones, %d clip(s)",
                name or '<memory>', len(nodes), len(bone_idxs), len(clips))
    return asset
