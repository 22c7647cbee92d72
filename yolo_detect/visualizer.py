"""
Visualization for the object detection pipeline.

Responsibility:
    Draw bounding boxes and optional "label confidence" captions onto an
    image. This is a pure rendering module — it produces an annotated copy
    and performs no I/O.

Non-goals:
    - No file writing, window management, or display logic.
    - No detection or model logic.
"""

from typing import Sequence

import cv2
import numpy as np

from yolo_detect.config import VisualizationConfig
from yolo_detect.detection import Detection

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4


def draw_detections(
    image: np.ndarray,
    detections: Sequence[Detection],
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw bounding boxes and captions onto an image.

    Args:
        image: Input BGR image (not modified — a copy is returned).
        detections: Detections in the image's pixel coordinates.
        config: Visualization parameters (color, thickness, captions).

    Returns:
        A new BGR numpy array with detections drawn.
    """
    annotated = image.copy()

    for det in detections:
        x1, y1 = int(round(det.box.left)), int(round(det.box.top))
        x2, y2 = int(round(det.box.right)), int(round(det.box.bottom))

        cv2.rectangle(
            annotated,
            (x1, y1),
            (x2, y2),
            color=config.box_color,
            thickness=config.thickness,
        )

        if config.show_label:
            caption = f"{det.label} {det.confidence:.2f}"
            (text_w, text_h), _ = cv2.getTextSize(
                caption, _FONT, _FONT_SCALE, _FONT_THICKNESS
            )

            # Caption above the box, or below if too close to the top
            label_y = y1 - _LABEL_PADDING
            if label_y - text_h - _LABEL_PADDING < 0:
                label_y = y2 + text_h + _LABEL_PADDING

            cv2.rectangle(
                annotated,
                (x1, label_y - text_h - _LABEL_PADDING),
                (x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
                color=config.box_color,
                thickness=cv2.FILLED,
            )

            cv2.putText(
                annotated,
                caption,
                (x1 + _LABEL_PADDING // 2, label_y),
                _FONT,
                _FONT_SCALE,
                (0, 0, 0),
                _FONT_THICKNESS,
                cv2.LINE_AA,
            )

    return annotated
