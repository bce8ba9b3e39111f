"""
Exception types shared across the detection pipeline.
"""

from __future__ import annotations


class BrushwakeError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(BrushwakeError):
    """Invalid session or application configuration (e.g. zero-sized frame)."""


class NonInvertibleTransformError(ConfigurationError):
    """An affine transform has no inverse (degenerate scale)."""


class GeometryError(BrushwakeError):
    """A mapped coordinate came out non-finite."""


class ClassifierInitError(BrushwakeError):
    """The detection model could not be loaded. Fatal for the session."""
