import json
import struct
import threading

import numpy as np
import pytest
import requests

GLB_MAGIC = 0x46546C67
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942


def make_glb(gltf, bin_data=b""):
    js = json.dumps(gltf).encode("utf-8")
    js += b" " * (-len(js) % 4)
    bin_data += b"\x00" * (-len(bin_data) % 4)
    body = struct.pack("<II", len(js), CHUNK_JSON) + js
    if bin_data:
        body += struct.pack("<II", len(bin_data), CHUNK_BIN) + bin_data
    return struct.pack("<III", GLB_MAGIC, 2, 12 + len(body)) + body


def chain_gltf(num_bones=3, animated=True):
    """
    Armature -> bone_0 -> bone_1 -> ... each bone 1 unit above its parent.
    When animated, bone_0 slides from x=0 to x=2 over one second.
    """
    nodes = [{"name": "Armature", "children": [1]}]
    for i in range(num_bones):
        node = {"name": f"bone_{i}", "translation": [0.0, 1.0, 0.0]}
        if i + 1 < num_bones:
            node["children"] = [i + 2]
        nodes.append(node)
    gltf = {
        "asset": {"version": "2.0"},
        "scene": 0,
        "scenes": [{"nodes": [0]}],
        "nodes": nodes,
        "skins": [{"joints": list(range(1, num_bones + 1))}],
    }
    bin_data = b""
    if animated and num_bones:
        times = np.array([0.0, 1.0], dtype="<f4").tobytes()
        values = np.array([[0.0, 1.0, 0.0], [2.0, 1.0, 0.0]], dtype="<f4").tobytes()
        bin_data = times + values
        gltf["buffers"] = [{"byteLength": len(bin_data)}]
        gltf["bufferViews"] = [
            {"buffer": 0, "byteOffset": 0, "byteLength": len(times)},
            {"buffer": 0, "byteOffset": len(times), "byteLength": len(values)},
        ]
        gltf["accessors"] = [
            {"bufferView": 0, "componentType": 5126, "count": 2, "type": "SCALAR"},
            {"bufferView": 1, "componentType": 5126, "count": 2, "type": "VEC3"},
        ]
        gltf["animations"] = [{
            "name": "slide",
            "samplers": [{"input": 0, "output": 1, "interpolation": "LINEAR"}],
            "channels": [{"sampler": 0, "target": {"node": 1, "path": "translation"}}],
        }]
    return gltf, bin_data


@pytest.fixture
def chain_glb_bytes():
    return make_glb(*chain_gltf())


@pytest.fixture
def model_dir(tmp_path):
    (tmp_path / "trial-1.glb").write_bytes(make_glb(*chain_gltf(3)))
    (tmp_path / "trial-2.glb").write_bytes(make_glb(*chain_gltf(5)))
    return tmp_path


def fake_landmarks(n=33, x=0.5, y=0.5):
    arr = np.zeros((n, 4), dtype=np.float32)
    arr[:, 0] = x
    arr[:, 1] = y
    arr[:, 3] = 1.0
    return arr


class FakeDetector:
    def __init__(self, results=None, block=None, error=None):
        self.results = list(results) if results is not None else None
        self.block = block
        self.error = error
        self.calls = 0
        self.completed = 0
        self.running = 0
        self.closed = False
        self.closed_while_running = False

    def infer(self, bgr):
        self.calls += 1
        self.running += 1
        try:
            if self.block is not None:
                self.block.wait(5.0)
            if self.error is not None:
                raise self.error
            if self.results is None:
                return fake_landmarks()
            return self.results.pop(0) if self.results else None
        finally:
            self.running -= 1
            self.completed += 1

    def close(self):
        self.closed_while_running = self.running > 0
        self.closed = True


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self._text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self._text is not None:
            return json.loads(self._text)
        return self._body


class FakeHTTPSession:
    """Stands in for requests.Session; replays responses and records posts."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.posts = []
        self.closed = False
        self._lock = threading.Lock()

    def post(self, url, json=None, timeout=None):
        with self._lock:
            self.posts.append({"url": url, "json": json, "timeout": timeout})
            if self.error is not None:
                raise self.error
            if self.responses:
                return self.responses.pop(0)
            return FakeResponse(200, {"similarity": 50})

    def close(self):
        self.closed = True


class FakeCamera:
    def __init__(self, ok=True, shape=(480, 640, 3)):
        self.ok = ok
        self.shape = shape
        self.opened = False
        self.released = False
        self._last = None

    def open(self):
        self.opened = self.ok
        return self.ok

    def read(self):
        if not self.opened:
            return None
        self._last = np.full(self.shape, 80, dtype=np.uint8)
        return self._last

    def latest(self):
        return self._last

    def release(self):
        self.released = True
        self.opened = False
        self._last = None


@pytest.fixture
def blank_frame():
    return np.zeros((480, 640, 3), dtype=np.uint8)


class HangingHTTPSession(FakeHTTPSession):
    """Posts block until `release` is set or `hang` seconds pass, then fail like a timeout."""

    def __init__(self, hang=1.0, responses=None):
        super().__init__(responses)
        self.hang = hang
        self.release = threading.Event()
        self.started = threading.Event()

    def post(self, url, json=None, timeout=None):
        self.started.set()
        if not self.release.wait(self.hang):
            with self._lock:
                self.posts.append({"url": url, "json": json, "timeout": timeout})
            raise requests.Timeout("read timed out")
        return super().post(url, json=json, timeout=timeout)
