"""
Coordinate buffers shared between the extractor, detector adapter and dispatcher.

One instance is created per session and handed to each component's constructor.
Each buffer has a single writer; publishing replaces the whole sample.
Under the asyncio loop no locking is needed. Moving writers onto real threads
requires a lock around publish_*() and payload().
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

Coordinate = List[float]


@dataclass
class CoordinateState:
    model_coordinates: List[Coordinate] = field(default_factory=list)
    model_joint_names: List[str] = field(default_factory=list)
    video_coordinates: List[Coordinate] = field(default_factory=list)
    model_updated_at: Optional[float] = None
    video_updated_at: Optional[float] = None

    def publish_model(self, coordinates, names=None) -> None:
        self.model_coordinates = [list(map(float, c)) for c in coordinates]
        self.model_joint_names = list(names) if names is not None else []
        self.model_updated_at = time.perf_counter()

    def publish_video(self, coordinates) -> None:
        self.video_coordinates = [list(map(float, c)) for c in coordinates]
        self.video_updated_at = time.perf_counter()

    def clear(self) -> None:
        self.model_coordinates = []
        self.model_joint_names = []
        self.video_coordinates = []
        self.model_updated_at = None
        self.video_updated_at = None

    def ages(self, now=None):
        """(model, video) seconds since each sample was published; None if never."""
        now = time.perf_counter() if now is None else now
        return tuple(None if t is None else now - t for t in (self.model_updated_at, self.video_updated_at))

    def payload(self) -> dict:
        """Request body for the scoring service. Empty samples stay []."""
        return {
            'modelCoordinates': [list(c) for c in self.model_coordinates],
            'videoCoordinates': [list(c) for c in self.video_coordinates],
        }
