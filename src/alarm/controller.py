"""
Alarm collaborator interface and an in-process implementation.

The detection pipeline only ever asks the alarm side to dismiss or snooze
the alarm that launched it. Both operations must be safe to repeat: a frame
loop may fire more than once before the session shuts down.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional


class AlarmState(str, Enum):
    """Lifecycle of a single alarm."""
    RINGING = "ringing"
    SNOOZED = "snoozed"
    DISMISSED = "dismissed"


@dataclass
class AlarmRecord:
    """
    Attributes:
        alarm_id: Alarm identifier.
        label: Display label.
        state: Current lifecycle state.
        snoozed_until: Monotonic time the snooze expires, if snoozed.
    """
    alarm_id: int
    label: str = ""
    state: AlarmState = AlarmState.RINGING
    snoozed_until: Optional[float] = None


class AlarmController(ABC):
    """Operations the detection pipeline may invoke on the alarm subsystem."""

    @abstractmethod
    def dismiss(self, alarm_id: int) -> bool:
        """
        Stop the alarm for good.

        Returns:
            True if this call changed state, False if it was a no-op.
        """

    @abstractmethod
    def snooze(self, alarm_id: int, duration_minutes: int) -> bool:
        """
        Silence the alarm and re-arm it ``duration_minutes`` from now.

        Returns:
            True if this call changed state, False if it was a no-op.
        """


class InMemoryAlarmController(AlarmController):
    """
    Thread-safe alarm registry kept in memory.

    Dismissing an unknown or already dismissed alarm is a no-op. Snoozing
    only acts on a ringing alarm.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._alarms: Dict[int, AlarmRecord] = {}

    def ring(self, alarm_id: int, label: str = "") -> AlarmRecord:
        """Register (or re-arm) a ringing alarm."""
        with self._lock:
            record = AlarmRecord(alarm_id=alarm_id, label=label)
            self._alarms[alarm_id] = record
        logging.info(f"Alarm {alarm_id} ringing")
        return record

    def get(self, alarm_id: int) -> Optional[AlarmRecord]:
        with self._lock:
            return self._alarms.get(alarm_id)

    def state(self, alarm_id: int) -> Optional[AlarmState]:
        record = self.get(alarm_id)
        return record.state if record else None

    def dismiss(self, alarm_id: int) -> bool:
        with self._lock:
            record = self._alarms.get(alarm_id)
            if record is None or record.state == AlarmState.DISMISSED:
                logging.debug(f"Dismiss alarm {alarm_id}: nothing to do")
                return False
            record.state = AlarmState.DISMISSED
            record.snoozed_until = None
        logging.info(f"Alarm {alarm_id} dismissed")
        return True

    def snooze(self, alarm_id: int, duration_minutes: int) -> bool:
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")
        with self._lock:
            record = self._alarms.get(alarm_id)
            if record is None or record.state != AlarmState.RINGING:
                logging.debug(f"Snooze alarm {alarm_id}: nothing to do")
                return False
            record.state = AlarmState.SNOOZED
            record.snoozed_until = self._clock() + 60.0 * duration_minutes
        logging.info(f"Alarm {alarm_id} snoozed for {duration_minutes} minutes")
        return True
