"""
Pipeline module.

The detection session orchestrates the per-frame flow:
- Frame acquisition from an observation source
- Crop preparation and background inference
- Alarm trigger evaluation and tracking
- Preview overlay rendering
"""

from .engine import DetectionSession, SessionConfig, SessionStats

__all__ = [
    "DetectionSession",
    "SessionConfig",
    "SessionStats",
]
