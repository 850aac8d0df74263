"""
Pose-to-model coordinate synchronization pipeline
"""

from .animation import AnimationDriver, AnimationMixer
from .config import CONFIG, load_config
from .detector import POSE_CONNECTIONS, LandmarkDetectorAdapter, PoseDetector, to_landmark_sample
from .dispatcher import CoordinateDispatcher, ScoringClient
from .errors import AssetError, ConfigError, PoseSyncError, ScoringError
from .gltf_loader import load_glb, parse_glb
from .overlay import OverlayRenderer
from .presenter import CAUTION, CRITICAL, HEALTHY, ScorePresenter, score_band
from .scene import AnimationClip, Asset, Channel, SceneNode
from .skeleton import JointExtractor, extract_bone_coordinates
from .state import CoordinateState
from .timers import IntervalTimer

__version__ = "0.1.0"

__all__ = [
    'AnimationDriver',
    'AnimationMixer',
    'CONFIG',
    'load_config',
    'POSE_CONNECTIONS',
    'LandmarkDetectorAdapter',
    'PoseDetector',
    'to_landmark_sample',
    'CoordinateDispatcher',
    'ScoringClient',
    'AssetError',
    'ConfigError',
    'PoseSyncError',
    'ScoringError',
    'load_glb',
    'parse_glb',
    'OverlayRenderer',
    'CAUTION',
    'CRITICAL',
    'HEALTHY',
    'ScorePresenter',
    'score_band',
    'AnimationClip',
    'Asset',
    'Channel',
    'SceneNode',
    'JointExtractor',
    'extract_bone_coordinates',
    'CoordinateState',
    'IntervalTimer',
]
