"""
Per-frame filtering of classifier recognitions.

Filtering happens in crop (model-input) space, before any transform, so the
size threshold does not depend on the canvas resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from models.detection import Recognition

# Smallest box side (crop pixels) considered worth tracking.
DEFAULT_MIN_SIZE = 16.0


@dataclass(frozen=True)
class FilterResult:
    """
    Attributes:
        screen_candidates: Every recognition with a finite bounding box, kept for
                           the diagnostic overlay regardless of size or score.
        trackable: Subset that passes the confidence and size thresholds.
    """
    screen_candidates: List[Recognition]
    trackable: List[Recognition]


def filter_recognitions(
    recognitions: Iterable[Recognition],
    min_confidence: float = 0.0,
    min_size: float = DEFAULT_MIN_SIZE,
) -> FilterResult:
    """
    Split one frame's recognitions into debug candidates and trackable ones.

    Order is preserved; ranking is left to later stages.

    Args:
        recognitions: Raw classifier output for one frame.
        min_confidence: Recognitions scoring below this are not trackable.
        min_size: Boxes narrower or shorter than this (crop pixels) are not
                  trackable.
    """
    screen_candidates: List[Recognition] = []
    trackable: List[Recognition] = []

    for result in recognitions:
        if not result.has_location:
            continue

        screen_candidates.append(result)

        bbox = result.bbox
        if bbox.width < min_size or bbox.height < min_size:
            continue
        if result.confidence < min_confidence:
            continue

        trackable.append(result)

    return FilterResult(screen_candidates=screen_candidates, trackable=trackable)


def rank_by_confidence(recognitions: Sequence[Recognition]) -> List[Recognition]:
    """Highest confidence first; ties keep their input order."""
    return sorted(recognitions, key=lambda r: r.confidence, reverse=True)


class DetectionFilter:
    """Holds the thresholds for :func:`filter_recognitions`."""

    def __init__(self, min_confidence: float = 0.0, min_size: float = DEFAULT_MIN_SIZE):
        if min_size < 0:
            raise ValueError(f"min_size must be non-negative, got {min_size}")
        self.min_confidence = min_confidence
        self.min_size = min_size

    def apply(self, recognitions: Iterable[Recognition]) -> FilterResult:
        return filter_recognitions(recognitions, self.min_confidence, self.min_size)
