"""
Object detection classifier adapter.

The classifier is a black box that turns a crop-sized image into a list of
recognitions in crop pixel space. The OpenCV DNN backend covers SSD-style
models (TensorFlow object-detection exports, Caffe or ONNX with the same
output layout); anything else can implement the Classifier protocol.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Protocol

import cv2
import numpy as np

from brushwake_errors import ClassifierInitError
from models.detection import BoundingBox, Recognition


class Classifier(Protocol):
    def recognize(self, image: np.ndarray) -> List[Recognition]:
        ...


def load_labels(path: str) -> List[str]:
    """
    Read a label map with one class name per line.

    Blank lines are skipped. Placeholder entries such as the leading "???"
    of TensorFlow label maps are kept so indices match the model's class ids.

    Raises:
        ClassifierInitError: If the file cannot be read or holds no labels.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            labels = [line.strip() for line in f if line.strip()]
    except OSError as e:
        raise ClassifierInitError(f"Cannot read label map {path}: {e}") from e
    if not labels:
        raise ClassifierInitError(f"Label map {path} is empty")
    return labels


def decode_ssd_output(
    output: np.ndarray,
    labels: List[str],
    input_size: int,
    label_offset: int = 0,
) -> List[Recognition]:
    """
    Decode an SSD detection blob of shape (1, 1, N, 7).

    Each row is [batch_id, class_id, score, x1, y1, x2, y2] with normalized
    coordinates. Boxes are scaled to crop pixels and clipped to the crop.
    """
    rows = np.asarray(output, dtype=float).reshape(-1, 7)
    out: List[Recognition] = []
    for _, class_id, score, x1, y1, x2, y2 in rows:
        if score <= 0:
            continue
        k = int(class_id) + label_offset
        label = labels[k] if 0 <= k < len(labels) else str(int(class_id))
        box = np.clip(np.array([x1, y1, x2, y2]) * input_size, 0, input_size)
        out.append(
            Recognition(
                label=label,
                confidence=float(score),
                bbox=BoundingBox.from_tuple(box),
                class_id=int(class_id),
            )
        )
    return out


class OpenCVDnnClassifier:
    """
    SSD detector run through cv2.dnn.

    Raises:
        ClassifierInitError: If the model or label map cannot be loaded.
    """

    def __init__(
        self,
        model_path: str,
        labels_path: str,
        input_size: int = 300,
        config_path: Optional[str] = None,
        swap_rb: bool = True,
        label_offset: int = 0,
    ):
        self.input_size = input_size
        self.swap_rb = swap_rb
        self.label_offset = label_offset
        self.labels = load_labels(labels_path)

        if not os.path.exists(model_path):
            raise ClassifierInitError(f"Model file not found: {model_path}")
        try:
            self._net = cv2.dnn.readNet(model_path, config_path or "")
        except cv2.error as e:
            raise ClassifierInitError(f"Failed to load model {model_path}: {e}") from e

        logging.info(
            f"Classifier loaded: model={model_path}, labels={len(self.labels)}, "
            f"input_size={input_size}"
        )

    def set_num_threads(self, num_threads: int) -> None:
        cv2.setNumThreads(num_threads)

    def recognize(self, image: np.ndarray) -> List[Recognition]:
        blob = cv2.dnn.blobFromImage(
            image,
            size=(self.input_size, self.input_size),
            swapRB=self.swap_rb,
            crop=False,
        )
        self._net.setInput(blob)
        output = self._net.forward()
        return decode_ssd_output(output, self.labels, self.input_size, self.label_offset)
