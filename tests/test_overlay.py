"""
Tests for overlay drawing.
"""

import numpy as np

from models.detection import BoundingBox
from overlay.renderer import DrawItem, OverlayRenderer, draw_bordered_text, draw_round_rect


def blank(h=200, w=200):
    return np.zeros((h, w, 3), dtype=np.uint8)


class TestDrawHelpers:
    def test_round_rect_strokes_edges_only(self):
        canvas = blank()
        draw_round_rect(canvas, BoundingBox(20, 20, 180, 180), 20, (0, 255, 0), 2)

        assert canvas[20, 100, 1] > 0       # top edge
        assert not canvas[100, 100].any()   # interior untouched
        assert not canvas[21, 21].any()     # rounded corner cut away

    def test_zero_radius_falls_back_to_rectangle(self):
        canvas = blank()
        draw_round_rect(canvas, BoundingBox(20, 20, 22, 22), 0, (0, 255, 0), 1)
        assert canvas.any()

    def test_bordered_text_draws_background(self):
        canvas = blank()
        draw_bordered_text(canvas, "toothbrush", (10, 50), (255, 0, 0), 0.5)
        # bottom-left corner of the label background, clear of the glyphs
        assert canvas[49, 10].tolist() == [255, 0, 0]


class TestOverlayRenderer:
    def test_renders_all_without_filter(self):
        renderer = OverlayRenderer(stroke_width=2)
        items = [
            DrawItem(BoundingBox(10, 30, 60, 80), "cup", (0, 0, 255)),
            DrawItem(BoundingBox(100, 100, 150, 150), "toothbrush", (255, 0, 0)),
        ]

        drawn = renderer.render(blank(), items)

        assert drawn == [items[0].rect, items[1].rect]

    def test_label_filter(self):
        renderer = OverlayRenderer(label_filter=["toothbrush"])
        assert renderer.wants("toothbrush")
        assert not renderer.wants("cup")

        drawn = renderer.render(blank(), [DrawItem(BoundingBox(10, 30, 60, 80), "cup", (0, 0, 255))])
        assert drawn == []

    def test_debug_rects_only_when_enabled(self):
        rect = BoundingBox(10, 10, 50, 50)

        canvas = blank()
        OverlayRenderer(debug_rects=False).render(canvas, [], [rect])
        assert not canvas.any()

        OverlayRenderer(debug_rects=True).render(canvas, [], [rect])
        assert canvas[10, 30, 2] == 255
