"""
OpenCV overlay drawing for tracked objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from models.detection import BoundingBox
from models.track import Color

COLOR_DEBUG = (0, 0, 255)  # Red (BGR)
COLOR_TEXT = (255, 255, 255)
COLOR_TEXT_BORDER = (0, 0, 0)


@dataclass(frozen=True)
class DrawItem:
    """One box to draw, already in canvas coordinates."""
    rect: BoundingBox
    label: str
    color: Color
    confidence: float = 1.0


def draw_round_rect(
    canvas: np.ndarray,
    rect: BoundingBox,
    radius: float,
    color: Color,
    thickness: int,
) -> None:
    """Stroke a rectangle with rounded corners."""
    x1, y1, x2, y2 = rect.as_int_tuple()
    r = int(max(0, min(radius, (x2 - x1) / 2, (y2 - y1) / 2)))
    if r == 0:
        cv2.rectangle(canvas, (x1, y1), (x2, y2), color, thickness, cv2.LINE_AA)
        return

    cv2.line(canvas, (x1 + r, y1), (x2 - r, y1), color, thickness, cv2.LINE_AA)
    cv2.line(canvas, (x1 + r, y2), (x2 - r, y2), color, thickness, cv2.LINE_AA)
    cv2.line(canvas, (x1, y1 + r), (x1, y2 - r), color, thickness, cv2.LINE_AA)
    cv2.line(canvas, (x2, y1 + r), (x2, y2 - r), color, thickness, cv2.LINE_AA)
    cv2.ellipse(canvas, (x1 + r, y1 + r), (r, r), 180, 0, 90, color, thickness, cv2.LINE_AA)
    cv2.ellipse(canvas, (x2 - r, y1 + r), (r, r), 270, 0, 90, color, thickness, cv2.LINE_AA)
    cv2.ellipse(canvas, (x2 - r, y2 - r), (r, r), 0, 0, 90, color, thickness, cv2.LINE_AA)
    cv2.ellipse(canvas, (x1 + r, y2 - r), (r, r), 90, 0, 90, color, thickness, cv2.LINE_AA)


def draw_bordered_text(
    canvas: np.ndarray,
    text: str,
    origin: Tuple[int, int],
    background: Color,
    scale: float,
) -> None:
    """Label with a filled background whose bottom-left corner sits at ``origin``."""
    font = cv2.FONT_HERSHEY_SIMPLEX
    x, y = origin
    (tw, th), baseline = cv2.getTextSize(text, font, scale, 1)
    cv2.rectangle(canvas, (x, y - th - baseline - 4), (x + tw + 4, y), background, -1)
    cv2.putText(canvas, text, (x + 2, y - baseline - 2), font, scale, COLOR_TEXT_BORDER, 3, cv2.LINE_AA)
    cv2.putText(canvas, text, (x + 2, y - baseline - 2), font, scale, COLOR_TEXT, 1, cv2.LINE_AA)


class OverlayRenderer:
    """
    Draws tracked objects onto a BGR canvas.

    Example:
        renderer = OverlayRenderer(stroke_width=10, label_filter=["toothbrush"])
        drawn = renderer.render(canvas, items)
    """

    def __init__(
        self,
        stroke_width: int = 10,
        text_scale: float = 0.8,
        label_filter: Optional[Sequence[str]] = None,
        debug_rects: bool = False,
    ):
        self.stroke_width = stroke_width
        self.text_scale = text_scale
        self.label_filter = set(label_filter) if label_filter else None
        self.debug_rects = debug_rects

    def wants(self, label: str) -> bool:
        return self.label_filter is None or label in self.label_filter

    def render(
        self,
        canvas: np.ndarray,
        items: Iterable[DrawItem],
        screen_rects: Iterable[BoundingBox] = (),
    ) -> List[BoundingBox]:
        """
        Draw ``items`` (and debug rectangles when enabled).

        Returns:
            The canvas rectangles of the items actually drawn.
        """
        if self.debug_rects:
            for rect in screen_rects:
                x1, y1, x2, y2 = rect.as_int_tuple()
                cv2.rectangle(canvas, (x1, y1), (x2, y2), COLOR_DEBUG, 1)

        drawn: List[BoundingBox] = []
        for item in items:
            if not self.wants(item.label):
                continue
            corner = min(item.rect.width, item.rect.height) / 8.0
            draw_round_rect(canvas, item.rect, corner, item.color, self.stroke_width)
            draw_bordered_text(
                canvas,
                item.label,
                (int(item.rect.x1 + corner), int(item.rect.y1)),
                item.color,
                self.text_scale,
            )
            drawn.append(item.rect)
        return drawn
