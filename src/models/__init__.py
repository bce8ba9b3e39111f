"""
Typed models for the detection pipeline.
"""

from .frame import FrameData, FrameConfiguration
from .detection import BoundingBox, Recognition
from .track import TrackedObject, ScreenRect
from .config import (
    Config,
    CameraConfig,
    DetectorConfig,
    TrackingConfig,
    OverlayConfig,
    AlarmConfig,
)

__all__ = [
    # Frame
    "FrameData",
    "FrameConfiguration",
    # Detection
    "BoundingBox",
    "Recognition",
    # Tracking
    "TrackedObject",
    "ScreenRect",
    # Config
    "Config",
    "CameraConfig",
    "DetectorConfig",
    "TrackingConfig",
    "OverlayConfig",
    "AlarmConfig",
]
