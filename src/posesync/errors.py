"""
Exception types shared across the pipeline
"""


class PoseSyncError(Exception):
    """Base class for pipeline errors."""


class AssetError(PoseSyncError):
    """Raised when a 3D asset file cannot be read."""


class ScoringError(PoseSyncError):
    """Raised when the scoring service call fails or returns garbage."""


class ConfigError(PoseSyncError):
    """Raised when a config file exists but cannot be parsed."""
