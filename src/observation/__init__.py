"""
Observation layer for pluggable frame sources.
"""

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
]
