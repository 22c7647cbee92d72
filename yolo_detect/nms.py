"""
Non-maximum suppression for the object detection pipeline.

Responsibility:
    Remove duplicate detections of the same physical object. Suppression is
    class-partitioned: detections with different labels never suppress each
    other. Detections are discarded, never edited.
"""

from typing import Dict, List, Sequence

import numpy as np

from yolo_detect.detection import BoundingBox, Detection


def iou(box_a: BoundingBox, box_b: BoundingBox) -> float:
    """Intersection-over-Union of two axis-aligned boxes.

    Returns 0.0 when the boxes do not overlap or both are degenerate.
    """
    inter_w = max(0.0, min(box_a.right, box_b.right) - max(box_a.left, box_b.left))
    inter_h = max(0.0, min(box_a.bottom, box_b.bottom) - max(box_a.top, box_b.top))
    inter = inter_w * inter_h
    union = box_a.area + box_b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def _suppress_partition(detections: Sequence[Detection], iou_threshold: float) -> List[Detection]:
    """Greedy NMS over detections that share one label."""
    scores = np.array([d.confidence for d in detections], dtype=np.float64)
    boxes = np.array(
        [(d.box.left, d.box.top, d.box.right, d.box.bottom) for d in detections],
        dtype=np.float64,
    )
    x1, y1, x2, y2 = boxes.T
    areas = (x2 - x1) * (y2 - y1)

    # Stable sort keeps insertion order among equal confidences
    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0:
        i = order[0]
        keep.append(int(i))
        rest = order[1:]

        w = np.maximum(0.0, np.minimum(x2[i], x2[rest]) - np.maximum(x1[i], x1[rest]))
        h = np.maximum(0.0, np.minimum(y2[i], y2[rest]) - np.maximum(y1[i], y1[rest]))
        inter = w * h
        union = areas[i] + areas[rest] - inter
        overlap = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)

        order = rest[overlap <= iou_threshold]

    return [detections[i] for i in keep]


def suppress(candidates: Sequence[Detection], iou_threshold: float) -> List[Detection]:
    """Per-class greedy non-maximum suppression.

    Within each label, candidates are visited by descending confidence (ties
    in input order); every remaining candidate whose IoU with a kept box
    exceeds `iou_threshold` is discarded.

    Args:
        candidates: Unsuppressed detections from the decoder.
        iou_threshold: Overlap above which a lower-scored box is dropped.

    Returns:
        Kept detections, grouped by label in order of first appearance and
        sorted by descending confidence within each label. Running suppress
        on its own output returns it unchanged.
    """
    partitions: Dict[str, List[Detection]] = {}
    for det in candidates:
        partitions.setdefault(det.label, []).append(det)

    kept: List[Detection] = []
    for group in partitions.values():
        kept.extend(_suppress_partition(group, iou_threshold))
    return kept
