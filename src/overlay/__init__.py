from .renderer import DrawItem, OverlayRenderer, draw_bordered_text, draw_round_rect

__all__ = ["DrawItem", "OverlayRenderer", "draw_bordered_text", "draw_round_rect"]
