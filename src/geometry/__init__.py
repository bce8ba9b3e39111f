"""
Coordinate-space transforms (frame, crop, canvas).
"""

from .transform import (
    AffineTransform,
    SessionTransforms,
    compute_transform,
    frame_to_canvas_transform,
)

__all__ = [
    "AffineTransform",
    "SessionTransforms",
    "compute_transform",
    "frame_to_canvas_transform",
]
