"""
Detection: classifier adapter and per-frame recognition filtering.
"""

from .filter import DetectionFilter, FilterResult, filter_recognitions, rank_by_confidence
from .classifier import Classifier, OpenCVDnnClassifier, decode_ssd_output, load_labels

__all__ = [
    "DetectionFilter",
    "FilterResult",
    "filter_recognitions",
    "rank_by_confidence",
    "Classifier",
    "OpenCVDnnClassifier",
    "decode_ssd_output",
    "load_labels",
]
