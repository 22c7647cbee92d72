"""
YOLO Detect — single-image object detection with a pretrained YOLO network.

Public API:
    - Detector: The single entry point for object detection.
    - Detection, BoundingBox: Data transfer objects for results.
    - DetectionError and its subclasses: the error taxonomy.

All other modules in this package are internal implementation details
and should not be imported directly by consumers.

Usage:
    from yolo_detect import Detector

    with Detector() as detector:
        detections = detector.detect(image_bytes)
"""

from yolo_detect.detection import BoundingBox, Detection
from yolo_detect.detector import Detector
from yolo_detect.errors import (
    DecodeError,
    DetectionError,
    InferenceFailure,
    ResourceUnavailable,
    ShapeMismatch,
    UnsupportedChannelCount,
)

__all__ = [
    "Detector",
    "Detection",
    "BoundingBox",
    "DetectionError",
    "DecodeError",
    "UnsupportedChannelCount",
    "ShapeMismatch",
    "InferenceFailure",
    "ResourceUnavailable",
]
