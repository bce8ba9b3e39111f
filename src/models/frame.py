"""
Frame models: captured frames and the capture session's frame configuration.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from brushwake_errors import ConfigurationError


@dataclass
class FrameData:
    """
    Metadata and payload for a captured video frame.

    Attributes:
        frame: The raw frame data as a numpy array (BGR format).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Monotonic timestamp when the frame was captured.
        frame_index: Sequential frame number since start.
        source: Identifier for the camera/video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )


@dataclass(frozen=True)
class FrameConfiguration:
    """
    Capture session geometry, set once per session.

    Immutable so readers on other threads can hold a reference while a new
    configuration is swapped in.

    Attributes:
        frame_width: Raw sensor frame width in pixels.
        frame_height: Raw sensor frame height in pixels.
        sensor_orientation: Rotation in degrees to apply to the raw frame
                            to make it upright (0, 90, 180, 270).
    """
    frame_width: int
    frame_height: int
    sensor_orientation: int = 0

    @property
    def rotated(self) -> bool:
        """True when the sensor is mounted sideways relative to the display."""
        return self.sensor_orientation % 180 == 90

    def validate(self) -> None:
        for name in ("frame_width", "frame_height"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive number, got {value!r}")
