"""
Tests for the detection session.
"""

import threading
from unittest.mock import patch

import cv2
import numpy as np
import pytest

from alarm.controller import AlarmState, InMemoryAlarmController
from alarm.trigger import TargetTrigger
from models.detection import Recognition
from models.frame import FrameData
from observation.base import ObservationConfig, ObservationSource
from pipeline.engine import DetectionSession, SessionConfig
from tracking.tracker import MultiBoxTracker


class MockObservationSource(ObservationSource):
    """Mock source producing blank 640x480 frames."""

    def __init__(self, config: ObservationConfig, max_frames: int = 10):
        super().__init__(config)
        self._max_frames = max_frames
        self._pos = 0
        self.closed = False

    def _open_device(self) -> None:
        self._pos = 0

    def _grab(self):
        if self._pos >= self._max_frames:
            return None
        self._pos += 1
        return np.zeros((480, 640, 3), dtype=np.uint8)

    def _release(self) -> None:
        self.closed = True


class FixedClassifier:
    """Returns the same recognitions for every image."""

    def __init__(self, results, source=None):
        self.results = results
        self.source = source
        self.calls = 0
        self.acks_seen = []
        self.shapes = []

    def recognize(self, image):
        self.calls += 1
        self.shapes.append(image.shape)
        if self.source is not None:
            self.acks_seen.append(self.source.acknowledged)
        return list(self.results)


class BlockingClassifier:
    def __init__(self):
        self.release = threading.Event()
        self.entered = threading.Event()

    def recognize(self, image):
        self.entered.set()
        self.release.wait(timeout=5)
        return []


class FailingClassifier:
    def recognize(self, image):
        raise RuntimeError("inference crashed")


TOOTHBRUSH = Recognition.from_xywh("toothbrush", 0.9, 100, 100, 50, 50)


def make_session(classifier, alarm_id=1, config=None):
    alarms = InMemoryAlarmController()
    alarms.ring(alarm_id)
    tracker = MultiBoxTracker(crop_size=300)
    trigger = TargetTrigger(alarms, alarm_id, target_label="toothbrush", min_confidence=0.65)
    session = DetectionSession(classifier, tracker, trigger, config or SessionConfig())
    return session, alarms


def make_frame(index=1):
    return FrameData.from_numpy(np.zeros((480, 640, 3), dtype=np.uint8), timestamp=0.0, frame_index=index)


class TestSessionConfig:
    def test_default_values(self):
        config = SessionConfig()
        assert config.sensor_orientation == 90
        assert config.max_consecutive_failures == 10
        assert config.display is False
        assert config.canvas_size == (480, 640)


class TestProcessFrame:
    def test_target_scenario_dismisses_once_and_stops(self):
        session, alarms = make_session(FixedClassifier([TOOTHBRUSH, TOOTHBRUSH]))
        source = MockObservationSource(ObservationConfig(source_id="test"))
        session.start(640, 480, 90)
        session.tracker.set_canvas_size(480, 640)

        assert session.process_frame(make_frame(), source) is True
        session.wait_idle(timeout=5)

        tracked = session.tracker.tracked_objects
        assert len(tracked) == 2
        assert tracked[0].label == "toothbrush"
        assert tracked[0].location.as_tuple() == pytest.approx((160.0, 640 / 3, 240.0, 320.0))
        assert alarms.state(1) == AlarmState.DISMISSED
        assert session.trigger.fired
        assert not session.is_running

    def test_low_confidence_does_not_dismiss(self):
        weak = Recognition.from_xywh("toothbrush", 0.5, 100, 100, 50, 50)
        session, alarms = make_session(FixedClassifier([weak]))
        source = MockObservationSource(ObservationConfig())
        session.start(640, 480, 90)

        session.process_frame(make_frame(), source)
        session.wait_idle(timeout=5)

        assert alarms.state(1) == AlarmState.RINGING
        assert not session.trigger.fired
        assert session.is_running
        # Tracker threshold is 0, so the weak box is still displayed.
        assert len(session.tracker.tracked_objects) == 1

    def test_source_acknowledged_before_inference(self):
        source = MockObservationSource(ObservationConfig())
        classifier = FixedClassifier([], source=source)
        session, _ = make_session(classifier)

        session.process_frame(make_frame(), source)
        session.wait_idle(timeout=5)

        assert classifier.acks_seen == [1]

    def test_classifier_gets_crop_sized_image(self):
        classifier = FixedClassifier([])
        session, _ = make_session(classifier)

        session.process_frame(make_frame(), MockObservationSource(ObservationConfig()))
        session.wait_idle(timeout=5)

        assert classifier.shapes == [(300, 300, 3)]

    def test_first_frame_configures_tracker(self):
        session, _ = make_session(FixedClassifier([]))

        session.process_frame(make_frame(), MockObservationSource(ObservationConfig()))
        session.wait_idle(timeout=5)

        config = session.tracker.frame_configuration
        assert (config.frame_width, config.frame_height, config.sensor_orientation) == (640, 480, 90)

    def test_busy_frames_are_dropped(self):
        classifier = BlockingClassifier()
        session, _ = make_session(classifier)
        source = MockObservationSource(ObservationConfig())

        assert session.process_frame(make_frame(1), source) is True
        assert classifier.entered.wait(timeout=5)
        assert session.process_frame(make_frame(2), source) is False
        assert session.process_frame(make_frame(3), source) is False

        classifier.release.set()
        session.wait_idle(timeout=5)

        assert session.stats.dropped_count == 2
        assert source.acknowledged == 3
        assert not session.is_busy
        assert session.process_frame(make_frame(4), source) is True
        session.wait_idle(timeout=5)

    def test_unwarpable_frame_is_dropped_and_acknowledged(self):
        classifier = FixedClassifier([])
        session, _ = make_session(classifier)
        source = MockObservationSource(ObservationConfig())
        session.start(640, 480, 90)

        with patch.object(session, "prepare_crop", side_effect=cv2.error("bad frame")):
            assert session.process_frame(make_frame(1), source) is False

        assert not session.is_busy
        assert source.acknowledged == 1
        assert session.stats.dropped_count == 1

        assert session.process_frame(make_frame(2), source) is True
        session.wait_idle(timeout=5)
        assert classifier.calls == 1

    def test_worker_error_clears_busy(self):
        session, _ = make_session(FailingClassifier())
        source = MockObservationSource(ObservationConfig())

        session.process_frame(make_frame(), source)
        session.wait_idle(timeout=5)

        assert not session.is_busy
        assert session.tracker.tracked_objects == ()

    def test_callbacks_receive_tracked_set(self):
        session, _ = make_session(FixedClassifier([Recognition.from_xywh("cup", 0.9, 0, 0, 40, 40)]))
        calls = []
        session.add_callback(lambda frame_data, tracked: calls.append((frame_data.frame_index, tracked)))

        session.process_frame(make_frame(5), MockObservationSource(ObservationConfig()))
        session.wait_idle(timeout=5)

        assert len(calls) == 1
        assert calls[0][0] == 5
        assert calls[0][1][0].label == "cup"


class TestRun:
    def test_run_stops_when_target_found(self):
        session, alarms = make_session(FixedClassifier([TOOTHBRUSH]), config=SessionConfig(max_consecutive_failures=1))
        source = MockObservationSource(ObservationConfig(source_id="test"), max_frames=50)

        session.run(source)

        assert session.trigger.fired
        assert alarms.state(1) == AlarmState.DISMISSED
        assert source.closed

    def test_run_stops_on_failures(self):
        session, alarms = make_session(FixedClassifier([]), config=SessionConfig(max_consecutive_failures=3))
        source = MockObservationSource(ObservationConfig(), max_frames=0)

        with patch("time.sleep"):
            session.run(source)

        assert session.stats.consecutive_failures >= 3
        assert alarms.state(1) == AlarmState.RINGING
        assert source.closed

    def test_manual_snooze(self):
        session, alarms = make_session(FixedClassifier([]))
        session.start(640, 480, 90)

        assert session.snooze() is True

        assert alarms.state(1) == AlarmState.SNOOZED
        assert not session.is_running


class TestPreview:
    def test_render_preview_uses_canvas_size(self):
        session, _ = make_session(FixedClassifier([TOOTHBRUSH]))
        source = MockObservationSource(ObservationConfig())
        session.process_frame(make_frame(), source)
        session.wait_idle(timeout=5)

        canvas = session.render_preview(np.full((480, 640, 3), 40, dtype=np.uint8))

        assert canvas.shape == (640, 480, 3)
        # Top edge of the box stroke vs. its untouched interior.
        assert canvas[214, 200].tolist() != [40, 40, 40]
        assert canvas[266, 200].tolist() == [40, 40, 40]
