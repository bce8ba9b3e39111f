"""
Frame sources for the detection session.

A source lends out one frame at a time. The consumer copies what it needs
and calls ready_for_next_image(); until then the frame is outstanding and
the source will not hand out another one. Capture therefore never runs
ahead of a consumer that forgot to acknowledge, and inference is free to
take as long as it likes on its own copy.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Attributes:
        source_id: Name stamped on every frame (e.g. "camera").
        resolution: Requested (width, height). None keeps the device default.
        fps: Requested frame rate. None keeps the device default.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    Base class for frame sources.

    Subclasses only talk to the device (_open_device, _grab, _release);
    frame numbering, timestamps and the acknowledgment handshake live here.

    Example:
        with OpenCVSource(config) as source:
            frame_data = source.read()
            crop = warp(frame_data.frame)
            source.ready_for_next_image()
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0
        self._acks = 0
        self._outstanding = False

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Frames handed out since open()."""
        return self._frame_index

    @property
    def acknowledged(self) -> int:
        """ready_for_next_image() calls since creation."""
        return self._acks

    @property
    def outstanding(self) -> bool:
        """True while the last frame handed out has not been acknowledged."""
        return self._outstanding

    @abstractmethod
    def _open_device(self) -> None:
        """Acquire the device. Raises RuntimeError if it cannot be opened."""

    @abstractmethod
    def _grab(self) -> Optional[np.ndarray]:
        """Next raw BGR image, or None when the device has nothing to give."""

    @abstractmethod
    def _release(self) -> None:
        """Release the device. Must tolerate being called twice."""

    def open(self) -> None:
        if self._is_open:
            return
        self._open_device()
        self._is_open = True
        self._frame_index = 0
        self._outstanding = False
        logging.info(f"Frame source opened: source_id={self.source_id}")

    def read(self) -> Optional[FrameData]:
        """
        Lend out the next frame.

        Returns:
            FrameData, or None if the source is closed or the device failed.

        Raises:
            RuntimeError: If the previous frame was never acknowledged.
        """
        if not self._is_open:
            return None
        if self._outstanding:
            raise RuntimeError(
                f"Frame {self._frame_index} from {self.source_id} was not acknowledged"
            )

        image = self._grab()
        if image is None:
            return None

        self._frame_index += 1
        self._outstanding = True
        return FrameData.from_numpy(
            image,
            timestamp=time.monotonic(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def ready_for_next_image(self) -> None:
        """Give the current frame back so the next one can be read."""
        self._outstanding = False
        self._acks += 1

    def close(self) -> None:
        self._release()
        if self._is_open:
            logging.info(f"Frame source closed: source_id={self.source_id}")
        self._is_open = False
        self._outstanding = False

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
