"""
Camera (or video file) frames through cv2.VideoCapture.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from .base import ObservationConfig, ObservationSource


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device_id: Camera index, or a path/URL cv2.VideoCapture understands.
        buffer_size: Driver-side frame queue. 1 keeps the preview live.
        open_attempts: Tries before giving up on the device.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    open_attempts: int = 3

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter: build from the camera section of config.yaml."""
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            open_attempts=camera_cfg.get("open_attempts", 3),
        )


class OpenCVSource(ObservationSource):
    """
    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0, resolution=(640, 480)))
        session.run(source)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._cv_config.device_id

    def _open_device(self) -> None:
        attempts = max(1, self._cv_config.open_attempts)
        for attempt in range(1, attempts + 1):
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                self._cap = cap
                self._apply_capture_settings()
                return
            cap.release()
            if attempt < attempts:
                delay = min(2 ** attempt, 10)
                logging.warning(f"Camera {self.device_id} not ready, retry {attempt}/{attempts - 1} in {delay}s")
                time.sleep(delay)
        raise RuntimeError(f"Failed to open camera {self.device_id} after {attempts} attempts")

    def _apply_capture_settings(self) -> None:
        # Only live cameras accept capture properties.
        if not isinstance(self.device_id, int):
            return
        if self._cv_config.resolution:
            w, h = self._cv_config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        if self._cv_config.fps:
            self._cap.set(cv2.CAP_PROP_FPS, self._cv_config.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._cv_config.buffer_size)
        logging.info(
            f"Camera {self.device_id} delivering "
            f"{self._cap.get(cv2.CAP_PROP_FRAME_WIDTH):.0f}x{self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT):.0f}"
        )

    def _grab(self) -> Optional[np.ndarray]:
        if self._cap is None:
            return None
        ok, image = self._cap.read()
        if not ok or image is None:
            logging.warning(f"No frame from camera {self.device_id}")
            return None
        return image

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
