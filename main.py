"""
Object Detection CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, run the
    detector over the given images, print the JSON response for each and
    write any requested artifacts.

Usage:
    python main.py dog.jpg                               # Print detections
    python main.py images/*.jpg --output-format json,image
    python main.py street.png --config configs/tiny-yolo-voc.yaml

Exit codes:
    0  every image was processed
    1  configuration or initialization failed
    2  at least one image failed

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

import cv2
import numpy as np

from yolo_detect.config import AppConfig, load_config, parse_formats, resolve_path, validate_config
from yolo_detect.detection import Detection
from yolo_detect.detector import Detector
from yolo_detect.errors import DetectionError
from yolo_detect.serializer import save_csv, save_json, to_response
from yolo_detect.visualizer import draw_detections


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="YOLO Object Detection — CLI",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "images",
        nargs="+",
        help="Image files to run detection on.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        help="Confidence threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--iou",
        type=float,
        help="IoU threshold for non-maximum suppression (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--engine",
        type=str,
        choices=["opencv", "onnxruntime"],
        help="Inference runtime. Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--output-format",
        type=str,
        help="Artifacts to write, comma-separated: json, csv, image. "
             "Example: 'json,image'. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Directory for output artifacts. Overrides config.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of config with CLI arguments applied."""
    model, detection, output = config.model, config.detection, config.output

    if args.engine is not None:
        model = dataclasses.replace(model, engine=args.engine)
    if args.backend is not None:
        model = dataclasses.replace(model, backend=args.backend)
    if args.confidence is not None:
        detection = dataclasses.replace(detection, confidence_threshold=args.confidence)
    if args.iou is not None:
        detection = dataclasses.replace(detection, iou_threshold=args.iou)
    if args.output_format is not None:
        output = dataclasses.replace(output, formats=args.output_format.lower())
    if args.output_path is not None:
        output = dataclasses.replace(output, save_path=args.output_path)

    return dataclasses.replace(config, model=model, detection=detection, output=output)


def save_annotated(
    image_bytes: bytes,
    detections: List[Detection],
    output_file: Path,
    config: AppConfig,
) -> None:
    """Draw detections on the image and write it next to the other artifacts."""
    image = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
    annotated = draw_detections(image, detections, config.visualization)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(output_file), annotated)
    logger.debug("Saved annotated image to %s", output_file)


def main(argv=None) -> int:
    """Main execution loop."""
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_overrides(load_config(args.config), args)
        # Re-validate after CLI overrides
        validate_config(config)
        logger.info("Configuration active for this run.")
    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    formats = parse_formats(config.output.formats)
    save_path = resolve_path(config.output.save_path)

    # 2. Initialize Detector
    try:
        detector = Detector(config)
    except (DetectionError, ValueError) as e:
        logger.error("Initialization failed: %s", e)
        return 1

    # 3. Processing Loop
    results: Dict[str, List[Detection]] = {}
    failures = 0

    with detector:
        for image_path in args.images:
            path = Path(image_path)
            try:
                image_bytes = path.read_bytes()
                detections = detector.detect(image_bytes)
            except (OSError, DetectionError) as e:
                logger.error("Failed to process %s: %s", path, e)
                failures += 1
                continue

            results[path.name] = detections
            print(json.dumps({"image": str(path), "detections": to_response(detections)}))

            if "image" in formats:
                save_annotated(image_bytes, detections, save_path / f"{path.stem}_detections.jpg", config)

    # 4. Write artifacts
    if "json" in formats:
        save_json(results, str(save_path / "detections.json"))
    if "csv" in formats:
        save_csv(results, str(save_path / "detections.csv"))

    logger.info(
        "Processing finished. Images: %d, failed: %d.", len(args.images), failures
    )
    return 2 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
