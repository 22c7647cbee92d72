"""
Output decoding for the object detection pipeline.

Responsibility:
    Interpret the raw YOLO region tensor, apply the activation functions,
    filter candidates by confidence and project boxes to absolute pixel
    coordinates of the original image.

Non-goals:
    - No suppression of overlapping boxes (see nms.py).
    - No model loading or inference.

Hard-coded:
    - Output tensor layout: [1, G, G, B * (5 + C)] where each of the B
      slots of a cell holds [tx, ty, tw, th, tObj, classScore_0..C-1].
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from yolo_detect.detection import BoundingBox, Detection
from yolo_detect.errors import ShapeMismatch

# Box coordinates (tx, ty, tw, th) and objectness precede the class scores.
_BOX_FIELDS = 5


@dataclass(frozen=True)
class DecoderConfig:
    """Immutable decoding parameters, shareable across concurrent calls.

    Attributes:
        confidence_threshold: A class must score strictly above this.
        anchors: (width, height) priors in grid-cell units, one per box slot.
    """

    confidence_threshold: float
    anchors: Tuple[Tuple[float, float], ...]


def sigmoid(x: np.ndarray) -> np.ndarray:
    # tanh form saturates instead of overflowing for large |x|
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def softmax(x: np.ndarray, axis: int = -1) -> np.ndarray:
    """Numerically stable softmax along `axis`."""
    shifted = x - np.max(x, axis=axis, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=axis, keepdims=True)


def decode(
    network_output: np.ndarray,
    image_width: int,
    image_height: int,
    labels: Sequence[str],
    config: DecoderConfig,
) -> List[Detection]:
    """Decode a raw YOLO output tensor into candidate detections.

    One detection is emitted for every (cell, anchor, class) whose combined
    confidence, objectness * class probability, exceeds the threshold.
    Candidates come out in row-major (gy, gx, anchor, class) order.

    Args:
        network_output: Raw tensor of shape (1, G, G, B * (5 + C)).
        image_width: Original image width in pixels.
        image_height: Original image height in pixels.
        labels: Class names, C of them.
        config: Threshold and anchors.

    Returns:
        Unsuppressed candidate detections (possibly empty).

    Raises:
        ShapeMismatch: If the tensor layout disagrees with anchors and labels.
    """
    raw = np.asarray(network_output)
    num_anchors = len(config.anchors)
    num_classes = len(labels)
    expected_depth = num_anchors * (_BOX_FIELDS + num_classes)

    if raw.ndim != 4 or raw.shape[0] != 1:
        raise ShapeMismatch(
            f"Expected an output tensor of shape (1, G, G, {expected_depth}), "
            f"got {raw.shape}."
        )
    if raw.shape[3] != expected_depth:
        raise ShapeMismatch(
            f"Output depth {raw.shape[3]} does not match {num_anchors} anchors * "
            f"(5 + {num_classes} classes) = {expected_depth}."
        )

    grid_h, grid_w = raw.shape[1], raw.shape[2]
    cells = raw[0].astype(np.float64).reshape(grid_h, grid_w, num_anchors, _BOX_FIELDS + num_classes)

    objectness = sigmoid(cells[..., 4])
    class_probs = softmax(cells[..., _BOX_FIELDS:], axis=-1)
    confidences = objectness[..., np.newaxis] * class_probs  # (G, G, B, C)

    gy, gx, b, c = np.nonzero(confidences > config.confidence_threshold)
    if gy.size == 0:
        return []

    anchors = np.asarray(config.anchors, dtype=np.float64)
    picked = cells[gy, gx, b]

    center_x = (sigmoid(picked[:, 0]) + gx) / grid_w
    center_y = (sigmoid(picked[:, 1]) + gy) / grid_h
    with np.errstate(over="ignore"):
        box_w = anchors[b, 0] * np.exp(picked[:, 2]) / grid_w
        box_h = anchors[b, 1] * np.exp(picked[:, 3]) / grid_h

    left = np.clip((center_x - box_w / 2) * image_width, 0, image_width)
    top = np.clip((center_y - box_h / 2) * image_height, 0, image_height)
    right = np.clip((center_x + box_w / 2) * image_width, 0, image_width)
    bottom = np.clip((center_y + box_h / 2) * image_height, 0, image_height)

    scores = confidences[gy, gx, b, c]

    return [
        Detection(
            label=labels[int(cls)],
            confidence=float(score),
            box=BoundingBox(left=float(x1), top=float(y1), right=float(x2), bottom=float(y2)),
        )
        for cls, score, x1, y1, x2, y2 in zip(c, scores, left, top, right, bottom)
    ]
