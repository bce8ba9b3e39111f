"""
Detection models for classifier results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    An axis-aligned box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self.as_tuple())

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    def corners(self) -> np.ndarray:
        """Return the four corners as a (4, 2) array, clockwise from top-left."""
        return np.array([
            [self.x1, self.y1],
            [self.x2, self.y1],
            [self.x2, self.y2],
            [self.x1, self.y2],
        ], dtype=float)

    @classmethod
    def from_tuple(cls, t: Sequence[float]) -> "BoundingBox":
        """Create from (x1, y1, x2, y2) tuple."""
        return cls(x1=float(t[0]), y1=float(t[1]), x2=float(t[2]), y2=float(t[3]))

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)

    @classmethod
    def from_points(cls, points: np.ndarray) -> "BoundingBox":
        """Smallest box containing every (x, y) row of ``points``."""
        mins = points.min(axis=0)
        maxs = points.max(axis=0)
        return cls(x1=float(mins[0]), y1=float(mins[1]), x2=float(maxs[0]), y2=float(maxs[1]))


@dataclass(frozen=True)
class Recognition:
    """
    A single classifier output.

    Attributes:
        label: Human-readable class name (e.g. "toothbrush").
        confidence: Score in [0, 1].
        bbox: Location in model-input (crop) pixel space. None for
              classification-only results.
        class_id: Optional numeric class id from the model.
    """
    label: str
    confidence: float
    bbox: Optional[BoundingBox] = None
    class_id: Optional[int] = None

    @property
    def has_location(self) -> bool:
        return self.bbox is not None and self.bbox.is_finite()

    @classmethod
    def from_xywh(
        cls,
        label: str,
        confidence: float,
        x: float,
        y: float,
        w: float,
        h: float,
        class_id: Optional[int] = None,
    ) -> "Recognition":
        """Create a Recognition with a box given as (x, y, width, height)."""
        return cls(
            label=label,
            confidence=confidence,
            bbox=BoundingBox.from_xywh(x, y, w, h),
            class_id=class_id,
        )
