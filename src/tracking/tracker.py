"""
Multi-box tracker for the live preview overlay.

This tracker redisplays the current frame's detections; it does not match
objects across frames. Each call to track_results() throws away the
previous set and rebuilds it in detection order, handing out palette colors
by insertion index until the palette runs out. Colors can therefore swap
between frames when the set of detections changes.

Thread model: one background worker calls track_results() while the render
loop calls draw(). All mutable state sits behind a single lock and the
tracked set is published as an immutable tuple, so draw() always sees a
complete set.
"""

import logging
import threading
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from detection.filter import DEFAULT_MIN_SIZE, DetectionFilter
from geometry.transform import AffineTransform, SessionTransforms, frame_to_canvas_transform
from models.detection import BoundingBox, Recognition
from models.frame import FrameConfiguration
from models.track import Color, ScreenRect, TrackedObject
from overlay.renderer import DrawItem, OverlayRenderer

# BGR
DEFAULT_PALETTE: Tuple[Color, ...] = (
    (255, 0, 0),      # blue
    (0, 0, 255),      # red
    (0, 255, 0),      # green
    (0, 255, 255),    # yellow
    (255, 255, 0),    # cyan
    (255, 0, 255),    # magenta
    (255, 255, 255),  # white
    (85, 255, 85),    # #55FF55
    (0, 165, 255),    # #FFA500
    (136, 136, 255),  # #FF8888
    (255, 170, 170),  # #AAAAFF
    (170, 255, 255),  # #FFFFAA
    (170, 170, 85),   # #55AAAA
    (170, 51, 170),   # #AA33AA
)


class MultiBoxTracker:
    """
    Turns filtered crop-space recognitions into canvas-space tracked objects.

    Until set_frame_configuration() is called every transform is the
    identity, so early draw calls are harmless rather than errors.
    """

    def __init__(
        self,
        crop_size: int = 300,
        maintain_aspect: bool = False,
        min_size: float = DEFAULT_MIN_SIZE,
        min_confidence: float = 0.0,
        palette: Sequence[Color] = DEFAULT_PALETTE,
        renderer: Optional[OverlayRenderer] = None,
    ):
        """
        Args:
            crop_size: Side of the square model input in pixels.
            maintain_aspect: Letterbox the frame into the crop instead of
                             stretching it.
            min_size: Smallest crop-space box side that gets tracked.
            min_confidence: Lowest score that gets tracked.
            palette: Colors handed out by insertion index; its length caps
                     the number of tracked objects.
            renderer: Overlay renderer used by draw().
        """
        if not palette:
            raise ValueError("palette must not be empty")

        self.crop_size = crop_size
        self.maintain_aspect = maintain_aspect
        self.filter = DetectionFilter(min_confidence=min_confidence, min_size=min_size)
        self.renderer = renderer or OverlayRenderer()
        self._palette: Tuple[Color, ...] = tuple(palette)

        self._lock = threading.RLock()
        self._frame_config: Optional[FrameConfiguration] = None
        self._session = SessionTransforms.identity(crop_size)
        self._frame_to_canvas = AffineTransform.identity()
        self._tracked: Tuple[TrackedObject, ...] = ()
        self._screen_rects: Tuple[ScreenRect, ...] = ()
        self._last_timestamp: Optional[int] = None

        logging.info(f"Tracker initialized: crop_size={crop_size}, palette={len(self._palette)}")

    @property
    def palette_size(self) -> int:
        return len(self._palette)

    @property
    def is_configured(self) -> bool:
        with self._lock:
            return self._frame_config is not None

    @property
    def frame_configuration(self) -> Optional[FrameConfiguration]:
        with self._lock:
            return self._frame_config

    @property
    def session_transforms(self) -> SessionTransforms:
        with self._lock:
            return self._session

    @property
    def frame_to_canvas(self) -> AffineTransform:
        with self._lock:
            return self._frame_to_canvas

    @property
    def tracked_objects(self) -> Tuple[TrackedObject, ...]:
        with self._lock:
            return self._tracked

    @property
    def screen_rects(self) -> Tuple[ScreenRect, ...]:
        with self._lock:
            return self._screen_rects

    @property
    def last_timestamp(self) -> Optional[int]:
        with self._lock:
            return self._last_timestamp

    def set_frame_configuration(self, width: int, height: int, sensor_orientation: int) -> None:
        """
        Set the capture session geometry.

        Raises:
            ConfigurationError: If the dimensions are degenerate. The previous
                                configuration stays in force.
        """
        config = FrameConfiguration(width, height, sensor_orientation)
        session = SessionTransforms.build(config, self.crop_size, self.maintain_aspect)
        with self._lock:
            self._frame_config = config
            self._session = session
        logging.info(
            f"Frame configuration: {width}x{height}, sensor_orientation={sensor_orientation}"
        )

    def set_canvas_size(self, width: int, height: int) -> AffineTransform:
        """Recompute the cached frame->canvas transform for a canvas size."""
        with self._lock:
            self._frame_to_canvas = frame_to_canvas_transform(self._frame_config, width, height)
            return self._frame_to_canvas

    def _crop_to_canvas(self) -> AffineTransform:
        return self._session.crop_to_frame.then(self._frame_to_canvas)

    def track_results(
        self,
        recognitions: Iterable[Recognition],
        timestamp: int,
    ) -> Tuple[TrackedObject, ...]:
        """
        Replace the tracked set with this frame's detections.

        Args:
            recognitions: Crop-space recognitions for one frame.
            timestamp: Monotonic frame counter or clock value.

        Returns:
            The newly published tracked set.
        """
        with self._lock:
            crop_to_canvas = self._crop_to_canvas()
            result = self.filter.apply(recognitions)

            screen_rects = tuple(
                ScreenRect(r.confidence, crop_to_canvas.map_rect(r.bbox), r.bbox)
                for r in result.screen_candidates
            )

            tracked: List[TrackedObject] = []
            for potential in result.trackable:
                if len(tracked) >= len(self._palette):
                    logging.debug(
                        f"Palette exhausted, dropping {len(result.trackable) - len(tracked)} detections"
                    )
                    break
                index = len(tracked)
                tracked.append(
                    TrackedObject(
                        location=crop_to_canvas.map_rect(potential.bbox),
                        source_location=potential.bbox,
                        confidence=potential.confidence,
                        label=potential.label,
                        color_index=index,
                        color=self._palette[index],
                    )
                )

            self._screen_rects = screen_rects
            self._tracked = tuple(tracked)
            self._last_timestamp = timestamp
            return self._tracked

    def draw(self, canvas: np.ndarray) -> List[BoundingBox]:
        """
        Render the current tracked set onto ``canvas``.

        The frame->canvas transform is recomputed from the canvas size on
        every call since the preview can change orientation.

        Returns:
            Canvas rectangles that were drawn.
        """
        canvas_height, canvas_width = canvas.shape[:2]
        with self._lock:
            self.set_canvas_size(canvas_width, canvas_height)
            crop_to_canvas = self._crop_to_canvas()
            tracked = self._tracked
            screen_rects = self._screen_rects

        items = [
            DrawItem(
                rect=crop_to_canvas.map_rect(obj.source_location),
                label=obj.label,
                color=obj.color,
                confidence=obj.confidence,
            )
            for obj in tracked
        ]
        debug_rects = [crop_to_canvas.map_rect(s.source_rect) for s in screen_rects]
        return self.renderer.render(canvas, items, debug_rects)
