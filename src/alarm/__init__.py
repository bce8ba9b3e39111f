"""
Alarm collaborator and the detection-driven trigger policy.
"""

from .controller import AlarmController, AlarmRecord, AlarmState, InMemoryAlarmController
from .trigger import ACTION_DISMISS, ACTION_SNOOZE, TargetTrigger

__all__ = [
    "AlarmController",
    "AlarmRecord",
    "AlarmState",
    "InMemoryAlarmController",
    "ACTION_DISMISS",
    "ACTION_SNOOZE",
    "TargetTrigger",
]
