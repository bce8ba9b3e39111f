"""
Tracked object models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .detection import BoundingBox

# BGR
Color = Tuple[int, int, int]


@dataclass(frozen=True)
class TrackedObject:
    """
    A recognition promoted to display state for the current frame.

    Tracked objects are rebuilt from scratch on every frame; there is no
    identity carried across frames, so the same physical object may get a
    different color when the frame's composition changes.

    Attributes:
        location: Box in canvas space, mapped with the transform cached when
                  the frame was tracked.
        source_location: Box in model-input (crop) space as reported by the
                         classifier.
        confidence: Detection confidence.
        label: Class label.
        color_index: Insertion index in the frame's tracked set, which is
                     also the palette slot.
        color: Palette color (BGR).
    """
    location: BoundingBox
    source_location: BoundingBox
    confidence: float
    label: str
    color_index: int
    color: Color

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "confidence": self.confidence,
            "location": self.location.as_tuple(),
            "color_index": self.color_index,
        }


@dataclass(frozen=True)
class ScreenRect:
    """
    Debug rectangle for a boxed recognition of any size.

    Attributes:
        confidence: Detection confidence.
        rect: Box in canvas space at track time.
        source_rect: Box in crop space, remapped on every draw.
    """
    confidence: float
    rect: BoundingBox
    source_rect: BoundingBox
