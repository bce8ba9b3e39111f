"""
Detection session: the per-frame loop tying capture, inference, tracking,
overlay and the alarm trigger together.

At most one frame is in inference at any time. Frames arriving while the
worker is busy are acknowledged and dropped, never queued.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import cv2
import numpy as np

from alarm.trigger import TargetTrigger
from detection.classifier import Classifier
from models.frame import FrameData
from models.track import TrackedObject
from observation.base import ObservationSource
from tracking.tracker import MultiBoxTracker


@dataclass
class SessionConfig:
    """
    Configuration for a detection session.

    Attributes:
        sensor_orientation: Rotation applied to raw frames (degrees).
        max_consecutive_failures: Max frame read failures before stopping.
        stats_log_interval: Seconds between status log messages.
        display: Show an OpenCV preview window with the overlay.
        canvas_size: Preview canvas as (width, height).
        window_name: Title of the preview window.
    """
    sensor_orientation: int = 90
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    display: bool = False
    canvas_size: Tuple[int, int] = (480, 640)
    window_name: str = "brushwake"


@dataclass
class SessionStats:
    """Runtime statistics for the session."""
    frame_count: int = 0
    processed_count: int = 0
    dropped_count: int = 0
    last_processing_ms: float = 0.0
    consecutive_failures: int = 0
    start_time: float = field(default_factory=time.monotonic)
    last_stats_log_time: float = field(default_factory=time.monotonic)


class DetectionSession:
    """
    Runs detection on a frame source until the alarm trigger fires.

    Example:
        session = DetectionSession(classifier, tracker, trigger, SessionConfig(display=True))
        session.run(source)
    """

    def __init__(
        self,
        classifier: Classifier,
        tracker: MultiBoxTracker,
        trigger: TargetTrigger,
        config: Optional[SessionConfig] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.classifier = classifier
        self.tracker = tracker
        self.trigger = trigger
        self.config = config or SessionConfig()
        self.stats = SessionStats()
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference")
        self._pending: Optional[Future] = None
        # Only the capture thread sets this and only the worker clears it.
        self._computing = False
        self._running = False
        self._started = False
        self._callbacks: List[Callable[[FrameData, Tuple[TrackedObject, ...]], None]] = []

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_busy(self) -> bool:
        return self._computing

    def add_callback(self, callback: Callable[[FrameData, Tuple[TrackedObject, ...]], None]) -> None:
        """
        Add a callback run by the worker after each processed frame.

        Args:
            callback: Function taking (frame_data, tracked_objects).
        """
        self._callbacks.append(callback)

    def start(self, frame_width: int, frame_height: int, sensor_orientation: Optional[int] = None) -> None:
        """
        Configure the session geometry.

        Raises:
            ConfigurationError: If the frame dimensions are degenerate.
        """
        if sensor_orientation is None:
            sensor_orientation = self.config.sensor_orientation
        self.tracker.set_frame_configuration(frame_width, frame_height, sensor_orientation)
        self._started = True
        self._running = True
        logging.info(
            f"Detection session started: frame={frame_width}x{frame_height}, "
            f"sensor_orientation={sensor_orientation}, crop={self.tracker.crop_size}"
        )

    def stop(self) -> None:
        """Signal the session to stop after the current frame."""
        self._running = False

    def snooze(self) -> bool:
        """Snooze the alarm by hand and end the session."""
        changed = self.trigger.alarm.snooze(self.trigger.alarm_id, self.trigger.snooze_minutes)
        self.stop()
        return changed

    def prepare_crop(self, frame: np.ndarray) -> np.ndarray:
        """Warp a raw frame into the square model input."""
        size = self.tracker.crop_size
        frame_to_crop = self.tracker.session_transforms.frame_to_crop
        return cv2.warpAffine(frame, frame_to_crop.as_cv2(), (size, size))

    def process_frame(self, frame_data: FrameData, source: ObservationSource) -> bool:
        """
        Hand a frame to the inference worker unless one is already in flight.

        The source is acknowledged before any slow work so capture never
        waits on inference. A frame that cannot be warped into the crop is
        logged and dropped.

        Returns:
            True if the frame was submitted, False if it was dropped.
        """
        self.stats.frame_count += 1
        timestamp = self.stats.frame_count

        if self._computing:
            source.ready_for_next_image()
            self.stats.dropped_count += 1
            return False

        if not self._started:
            self.start(frame_data.width, frame_data.height)

        self._computing = True
        source.ready_for_next_image()

        try:
            crop = self.prepare_crop(frame_data.frame)
            self._pending = self._executor.submit(self._detect, frame_data, crop, timestamp)
        except Exception:
            logging.exception(f"Could not hand frame {timestamp} to inference")
            self.stats.dropped_count += 1
            self._computing = False
            return False
        return True

    def _detect(self, frame_data: FrameData, crop: np.ndarray, timestamp: int) -> None:
        try:
            start = time.monotonic()
            results = self.classifier.recognize(crop)
            self.stats.last_processing_ms = (time.monotonic() - start) * 1000.0
            self.stats.processed_count += 1

            if self.trigger.evaluate(results) is not None:
                self.stop()

            tracked = self.tracker.track_results(results, timestamp)
            if tracked:
                logging.debug(f"Frame {timestamp} tracked: {[obj.to_dict() for obj in tracked]}")

            for callback in self._callbacks:
                try:
                    callback(frame_data, tracked)
                except Exception as e:
                    logging.warning(f"Callback error: {e}")
        except Exception:
            logging.exception(f"Detection failed for frame {timestamp}")
        finally:
            self._computing = False

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Block until the in-flight detection (if any) has finished."""
        pending = self._pending
        if pending is not None:
            pending.result(timeout=timeout)

    def render_preview(self, frame: np.ndarray) -> np.ndarray:
        """Rotate/scale the raw frame onto a canvas and draw the overlay."""
        width, height = self.config.canvas_size
        frame_to_canvas = self.tracker.set_canvas_size(width, height)
        canvas = cv2.warpAffine(frame, frame_to_canvas.as_cv2(), (width, height))
        self.tracker.draw(canvas)
        return canvas

    def run(self, source: ObservationSource) -> None:
        """
        Read frames from ``source`` until stopped, exhausted or interrupted.
        """
        self.stats = SessionStats()
        self._running = True

        try:
            source.open()
            logging.info(f"Session loop started: source={source.source_id}")

            while self._running:
                frame_data = source.read()

                if frame_data is None:
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(0.1)
                    continue

                self.stats.consecutive_failures = 0
                self.process_frame(frame_data, source)

                if self.config.display and not self._handle_display(frame_data):
                    break

                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Session interrupted by user")
        finally:
            self._cleanup(source)

    def _handle_display(self, frame_data: FrameData) -> bool:
        """
        Show the preview window.

        Returns False if the user quit ('q') or snoozed ('s').
        """
        cv2.imshow(self.config.window_name, self.render_preview(frame_data.frame))
        key = cv2.waitKey(1) & 0xFF
        if key == ord("s"):
            self.snooze()
            return False
        return key != ord("q")

    def _handle_periodic_tasks(self) -> None:
        now = time.monotonic()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Session stats: frames={self.stats.frame_count}, "
                f"processed={self.stats.processed_count}, dropped={self.stats.dropped_count}, "
                f"inference_ms={self.stats.last_processing_ms:.1f}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self, source: ObservationSource) -> None:
        self._running = False

        try:
            source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        self._executor.shutdown(wait=True)

        if self.config.display:
            cv2.destroyAllWindows()

        logging.info(
            f"Session stopped: frames={self.stats.frame_count}, "
            f"target_found={self.trigger.fired}"
        )
