"""
Serialization for the object detection pipeline.

Responsibility:
    Map detections to the consumer-facing response shape and export batch
    results to structured file formats (JSON, CSV).

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output — writes complete files at the end of a run.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Sequence

from yolo_detect.detection import Detection

logger = logging.getLogger(__name__)


def to_response(detections: Sequence[Detection]) -> List[dict]:
    """Map detections to the response records.

    Each record:
        {"label": "dog", "confidence": "0.87",
         "location": {"left": ..., "top": ..., "right": ..., "bottom": ...}}

    Confidence is stringified here and nowhere else.
    """
    records = [d.to_dict() for d in detections]
    for record in records:
        logger.debug("%s", record)
    return records


def save_json(
    results_by_image: Dict[str, List[Detection]],
    output_path: str,
) -> None:
    """Export all detections to a JSON file.

    Output schema:
        {
            "images": [
                {"image": "dog.jpg", "detections": [<response record>, ...]}
            ],
            "total_images": N,
            "total_detections": M
        }

    Args:
        results_by_image: Mapping of image name → list of Detection objects.
        output_path: Path to the output JSON file.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    images = []
    total_detections = 0

    for name, dets in results_by_image.items():
        total_detections += len(dets)
        images.append({
            "image": name,
            "detections": to_response(dets),
        })

    payload = {
        "images": images,
        "total_images": len(images),
        "total_detections": total_detections,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d images, %d detections)",
        output_path, len(images), total_detections,
    )


def save_csv(
    results_by_image: Dict[str, List[Detection]],
    output_path: str,
) -> None:
    """Export all detections to a CSV file.

    Columns: image, label, confidence, left, top, right, bottom

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    fieldnames = ["image", "label", "confidence", "left", "top", "right", "bottom"]

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        total = 0
        for name, dets in results_by_image.items():
            for det in dets:
                writer.writerow({
                    "image": name,
                    "label": det.label,
                    "confidence": det.confidence,
                    **det.box.to_dict(),
                })
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
