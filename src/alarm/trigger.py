"""
Target trigger: dismiss (or snooze) the alarm once the target is seen.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional

from detection.filter import rank_by_confidence
from models.detection import Recognition

from .controller import AlarmController

ACTION_DISMISS = "dismiss"
ACTION_SNOOZE = "snooze"


class TargetTrigger:
    """
    Fires a single alarm action the first time a qualifying recognition shows up.

    A recognition qualifies when it has a bounding box, its label equals
    ``target_label`` and its confidence is at least ``min_confidence``. Once
    fired the trigger is latched: later frames, or further qualifying boxes
    in the same frame, issue nothing.

    Example:
        trigger = TargetTrigger(alarms, alarm_id=3, on_fire=lambda r: session.stop())
        trigger.evaluate(recognitions)
    """

    def __init__(
        self,
        alarm: AlarmController,
        alarm_id: int,
        target_label: str = "toothbrush",
        min_confidence: float = 0.65,
        action: str = ACTION_DISMISS,
        snooze_minutes: int = 10,
        on_fire: Optional[Callable[[Recognition], None]] = None,
    ):
        if action not in (ACTION_DISMISS, ACTION_SNOOZE):
            raise ValueError(f"action must be one of: {ACTION_DISMISS}, {ACTION_SNOOZE}")
        self.alarm = alarm
        self.alarm_id = alarm_id
        self.target_label = target_label
        self.min_confidence = min_confidence
        self.action = action
        self.snooze_minutes = snooze_minutes
        self.on_fire = on_fire

        self._lock = threading.Lock()
        self._fired_by: Optional[Recognition] = None

    @property
    def fired(self) -> bool:
        with self._lock:
            return self._fired_by is not None

    @property
    def fired_by(self) -> Optional[Recognition]:
        with self._lock:
            return self._fired_by

    def qualifying(self, recognitions: Iterable[Recognition]) -> List[Recognition]:
        """Qualifying recognitions, best first."""
        matches = [
            r for r in recognitions
            if r.has_location
            and r.label == self.target_label
            and r.confidence >= self.min_confidence
        ]
        return rank_by_confidence(matches)

    def evaluate(self, recognitions: Iterable[Recognition]) -> Optional[Recognition]:
        """
        Check one frame's recognitions and fire if the target is present.

        Returns:
            The recognition that fired the trigger on this call, else None.
        """
        matches = self.qualifying(recognitions)
        if not matches:
            return None

        with self._lock:
            if self._fired_by is not None:
                return None
            best = matches[0]
            self._fired_by = best

        logging.info(
            f"Target '{self.target_label}' detected (confidence={best.confidence:.2f}), "
            f"{self.action} alarm {self.alarm_id}"
        )
        if self.action == ACTION_SNOOZE:
            self.alarm.snooze(self.alarm_id, self.snooze_minutes)
        else:
            self.alarm.dismiss(self.alarm_id)

        if self.on_fire is not None:
            self.on_fire(best)
        return best
