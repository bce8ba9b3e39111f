"""
Affine transforms between the three coordinate spaces of a capture session.

- frame space: raw sensor frame as delivered by the camera
- crop space: fixed-size square image the detection model consumes
- canvas space: preview surface the overlay is drawn on

Matrices are 3x3 homogeneous, applied to column vectors, and composed in
"post" order: ``a.then(b)`` maps a point through ``a`` first.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from brushwake_errors import ConfigurationError, GeometryError, NonInvertibleTransformError
from models.detection import BoundingBox
from models.frame import FrameConfiguration

# Determinant magnitude below which a matrix is treated as singular.
_SINGULAR_EPS = 1e-12


class AffineTransform:
    """Immutable 2D affine transform backed by a 3x3 numpy matrix."""

    __slots__ = ("_m",)

    def __init__(self, matrix: Optional[np.ndarray] = None):
        if matrix is None:
            matrix = np.eye(3)
        m = np.array(matrix, dtype=float)
        if m.shape == (2, 3):
            m = np.vstack([m, [0.0, 0.0, 1.0]])
        if m.shape != (3, 3):
            raise ValueError(f"expected a 2x3 or 3x3 matrix, got shape {m.shape}")
        m.setflags(write=False)
        self._m = m

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls()

    @classmethod
    def translation(cls, tx: float, ty: float) -> "AffineTransform":
        return cls(np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]]))

    @classmethod
    def scale(cls, sx: float, sy: float) -> "AffineTransform":
        return cls(np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]]))

    @classmethod
    def rotation(cls, degrees: float) -> "AffineTransform":
        """Rotation about the origin; positive is clockwise on a y-down image."""
        rad = math.radians(degrees)
        c, s = math.cos(rad), math.sin(rad)
        if degrees % 90 == 0:
            # exact quarter turns, no 1e-17 residue
            c, s = float(round(c)), float(round(s))
        return cls(np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]]))

    @property
    def matrix(self) -> np.ndarray:
        return self._m

    def then(self, other: "AffineTransform") -> "AffineTransform":
        """Transform that applies ``self`` first, then ``other``."""
        return AffineTransform(other._m @ self._m)

    def is_identity(self, atol: float = 1e-9) -> bool:
        return bool(np.allclose(self._m, np.eye(3), atol=atol))

    def determinant(self) -> float:
        return float(np.linalg.det(self._m[:2, :2]))

    def try_invert(self) -> Optional["AffineTransform"]:
        """Return the inverse, or None when the matrix is singular."""
        if not np.all(np.isfinite(self._m)) or abs(self.determinant()) < _SINGULAR_EPS:
            return None
        return AffineTransform(np.linalg.inv(self._m))

    def inverse(self) -> "AffineTransform":
        inv = self.try_invert()
        if inv is None:
            raise NonInvertibleTransformError(f"transform is not invertible:\n{self._m}")
        return inv

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        px, py, _ = self._m @ np.array([x, y, 1.0])
        return (float(px), float(py))

    def map_points(self, points: np.ndarray) -> np.ndarray:
        """Map an (N, 2) array of points."""
        pts = np.asarray(points, dtype=float).reshape(-1, 2)
        homogeneous = np.hstack([pts, np.ones((len(pts), 1))])
        return (homogeneous @ self._m.T)[:, :2]

    def map_rect(self, rect: BoundingBox) -> BoundingBox:
        """
        Map a box and return the axis-aligned bounds of its mapped corners.

        Raises:
            GeometryError: If the result is not finite.
        """
        mapped = BoundingBox.from_points(self.map_points(rect.corners()))
        if not mapped.is_finite():
            raise GeometryError(f"mapping {rect} produced non-finite box {mapped}")
        return mapped

    def as_cv2(self) -> np.ndarray:
        """2x3 float32 matrix suitable for cv2.warpAffine."""
        return self._m[:2, :].astype(np.float32)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AffineTransform):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def allclose(self, other: "AffineTransform", atol: float = 1e-6) -> bool:
        return bool(np.allclose(self._m, other._m, atol=atol))

    def __repr__(self) -> str:
        rows = "; ".join(" ".join(f"{v:.4g}" for v in row) for row in self._m[:2])
        return f"AffineTransform([{rows}])"


def _check_dimensions(**dims: float) -> None:
    for name, value in dims.items():
        if value is None or not math.isfinite(value) or value <= 0:
            raise ConfigurationError(f"{name} must be a positive finite number, got {value!r}")


def compute_transform(
    src_width: int,
    src_height: int,
    dst_width: int,
    dst_height: int,
    rotation_degrees: int,
    maintain_aspect: bool,
) -> AffineTransform:
    """
    Build the transform from a source image to a destination image.

    The source is rotated about its center, scaled to the destination size
    and re-centered on the destination. With ``maintain_aspect`` the smaller
    axis scale is applied to both axes so the whole source fits without
    distortion.

    Args:
        src_width: Source width in pixels.
        src_height: Source height in pixels.
        dst_width: Destination width in pixels.
        dst_height: Destination height in pixels.
        rotation_degrees: Clockwise rotation to apply, normally a multiple of 90.
        maintain_aspect: Scale uniformly instead of per axis.

    Raises:
        ConfigurationError: On zero, negative or non-finite dimensions.
    """
    _check_dimensions(
        src_width=src_width,
        src_height=src_height,
        dst_width=dst_width,
        dst_height=dst_height,
    )
    if rotation_degrees % 90 != 0:
        logging.warning(f"Rotation of {rotation_degrees} % 90 != 0")

    # A quarter turn swaps the extents the scale has to cover.
    transpose = (abs(rotation_degrees) + 90) % 180 == 0
    in_width = src_height if transpose else src_width
    in_height = src_width if transpose else src_height

    scale_x = dst_width / float(in_width)
    scale_y = dst_height / float(in_height)
    if maintain_aspect:
        scale_x = scale_y = min(scale_x, scale_y)

    return (
        AffineTransform.translation(-src_width / 2.0, -src_height / 2.0)
        .then(AffineTransform.rotation(rotation_degrees))
        .then(AffineTransform.scale(scale_x, scale_y))
        .then(AffineTransform.translation(dst_width / 2.0, dst_height / 2.0))
    )


def frame_to_canvas_transform(
    frame_config: Optional[FrameConfiguration],
    canvas_width: int,
    canvas_height: int,
) -> AffineTransform:
    """
    Transform from frame space to a canvas of the given size.

    The rotated frame is scaled uniformly so it fits the canvas without
    cropping. Without a frame configuration (or with an empty canvas) the
    identity is returned so early draw calls stay harmless.
    """
    if frame_config is None or canvas_width <= 0 or canvas_height <= 0:
        return AffineTransform.identity()

    rotated = frame_config.rotated
    frame_w = frame_config.frame_width
    frame_h = frame_config.frame_height

    multiplier = min(
        canvas_height / float(frame_w if rotated else frame_h),
        canvas_width / float(frame_h if rotated else frame_w),
    )
    return compute_transform(
        frame_w,
        frame_h,
        int(multiplier * (frame_h if rotated else frame_w)),
        int(multiplier * (frame_w if rotated else frame_h)),
        frame_config.sensor_orientation,
        False,
    )


@dataclass(frozen=True)
class SessionTransforms:
    """Frame/crop transforms fixed for the duration of a capture session."""

    frame_to_crop: AffineTransform
    crop_to_frame: AffineTransform
    crop_size: int

    @classmethod
    def identity(cls, crop_size: int) -> "SessionTransforms":
        return cls(AffineTransform.identity(), AffineTransform.identity(), crop_size)

    @classmethod
    def build(
        cls,
        frame_config: FrameConfiguration,
        crop_size: int,
        maintain_aspect: bool = False,
    ) -> "SessionTransforms":
        """
        Raises:
            ConfigurationError: If the frame configuration is degenerate or
                                the frame->crop mapping has no inverse.
        """
        frame_config.validate()
        frame_to_crop = compute_transform(
            frame_config.frame_width,
            frame_config.frame_height,
            crop_size,
            crop_size,
            frame_config.sensor_orientation,
            maintain_aspect,
        )
        return cls(frame_to_crop, frame_to_crop.inverse(), crop_size)
