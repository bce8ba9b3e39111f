"""
Tests for the alarm controller and the target trigger.
"""

from unittest.mock import MagicMock

import pytest

from alarm.controller import AlarmController, AlarmState, InMemoryAlarmController
from alarm.trigger import TargetTrigger
from models.detection import BoundingBox, Recognition


def rec(label="toothbrush", confidence=0.9, x=100, y=100, w=50, h=50):
    return Recognition.from_xywh(label, confidence, x, y, w, h)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestInMemoryAlarmController:
    def test_ring_registers_alarm(self):
        alarms = InMemoryAlarmController()
        alarms.ring(3, label="wake up")

        assert alarms.state(3) == AlarmState.RINGING
        assert alarms.get(3).label == "wake up"

    def test_dismiss_is_idempotent(self):
        alarms = InMemoryAlarmController()
        alarms.ring(3)

        assert alarms.dismiss(3) is True
        first = alarms.get(3)
        assert alarms.dismiss(3) is False

        assert alarms.state(3) == AlarmState.DISMISSED
        assert alarms.get(3) == first

    def test_dismiss_unknown_alarm_is_noop(self):
        alarms = InMemoryAlarmController()
        assert alarms.dismiss(42) is False
        assert alarms.get(42) is None

    def test_snooze_sets_expiry(self):
        clock = FakeClock(500.0)
        alarms = InMemoryAlarmController(clock=clock)
        alarms.ring(1)

        assert alarms.snooze(1, 10) is True

        record = alarms.get(1)
        assert record.state == AlarmState.SNOOZED
        assert record.snoozed_until == 500.0 + 600.0

    def test_snooze_twice_keeps_first_expiry(self):
        clock = FakeClock(0.0)
        alarms = InMemoryAlarmController(clock=clock)
        alarms.ring(1)
        alarms.snooze(1, 10)
        clock.now = 60.0

        assert alarms.snooze(1, 10) is False
        assert alarms.get(1).snoozed_until == 600.0

    def test_snooze_after_dismiss_is_noop(self):
        alarms = InMemoryAlarmController()
        alarms.ring(1)
        alarms.dismiss(1)

        assert alarms.snooze(1, 5) is False
        assert alarms.state(1) == AlarmState.DISMISSED

    def test_dismiss_after_snooze(self):
        alarms = InMemoryAlarmController()
        alarms.ring(1)
        alarms.snooze(1, 5)

        assert alarms.dismiss(1) is True
        assert alarms.get(1).snoozed_until is None

    def test_snooze_rejects_non_positive_duration(self):
        alarms = InMemoryAlarmController()
        alarms.ring(1)
        with pytest.raises(ValueError):
            alarms.snooze(1, 0)


class TestTargetTrigger:
    def test_fires_once_for_target(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=7)

        fired = trigger.evaluate([rec(confidence=0.9)])

        assert fired is not None
        assert fired.label == "toothbrush"
        assert trigger.fired
        alarm.dismiss.assert_called_once_with(7)
        alarm.snooze.assert_not_called()

    def test_below_threshold_does_not_fire(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=7, min_confidence=0.65)

        assert trigger.evaluate([rec(confidence=0.5)]) is None

        assert not trigger.fired
        alarm.dismiss.assert_not_called()

    def test_threshold_is_inclusive(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=1, min_confidence=0.65)
        assert trigger.evaluate([rec(confidence=0.65)]) is not None

    def test_multiple_boxes_one_action(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=1)

        fired = trigger.evaluate([rec(confidence=0.7), rec(confidence=0.95, x=10), rec(confidence=0.8)])

        assert fired.confidence == 0.95
        alarm.dismiss.assert_called_once_with(1)

    def test_latched_across_frames(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=1)

        trigger.evaluate([rec()])
        assert trigger.evaluate([rec()]) is None
        assert trigger.evaluate([rec(confidence=1.0)]) is None

        assert alarm.dismiss.call_count == 1

    def test_other_labels_and_boxless_ignored(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=1)

        assert trigger.evaluate([rec(label="cup"), Recognition("toothbrush", 0.99)]) is None
        alarm.dismiss.assert_not_called()

    def test_non_finite_box_ignored(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=1)
        broken = Recognition("toothbrush", 0.99, BoundingBox(10, 10, float("inf"), 60))

        assert trigger.evaluate([broken]) is None
        assert not trigger.fired
        alarm.dismiss.assert_not_called()

    def test_snooze_action(self):
        alarm = MagicMock(spec=AlarmController)
        trigger = TargetTrigger(alarm, alarm_id=2, action="snooze", snooze_minutes=5)

        trigger.evaluate([rec()])

        alarm.snooze.assert_called_once_with(2, 5)
        alarm.dismiss.assert_not_called()

    def test_on_fire_callback(self):
        seen = []
        trigger = TargetTrigger(MagicMock(spec=AlarmController), alarm_id=1, on_fire=seen.append)

        trigger.evaluate([rec()])

        assert len(seen) == 1
        assert trigger.fired_by is seen[0]

    def test_invalid_action(self):
        with pytest.raises(ValueError):
            TargetTrigger(MagicMock(spec=AlarmController), alarm_id=1, action="explode")

    def test_with_real_controller_double_dismiss_same_state(self):
        alarms = InMemoryAlarmController()
        alarms.ring(9)
        trigger = TargetTrigger(alarms, alarm_id=9)

        trigger.evaluate([rec()])
        once = alarms.get(9)
        alarms.dismiss(9)

        assert alarms.get(9) == once
        assert alarms.state(9) == AlarmState.DISMISSED
