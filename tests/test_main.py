"""
Tests for the CLI entry point.
"""

import json

import numpy as np
import pytest

import main
from conftest import encode_png
from yolo_detect.detection import BoundingBox, Detection
from yolo_detect.errors import DecodeError, ResourceUnavailable

DOG = Detection(label="dog", confidence=0.9, box=BoundingBox(1.0, 2.0, 30.0, 40.0))


class StubDetector:
    """Detector double that returns DOG for every valid image."""

    instances = []

    def __init__(self, config):
        self.config = config
        self.closed = False
        StubDetector.instances.append(self)

    def detect(self, image_bytes):
        if not image_bytes.startswith(b"\x89PNG"):
            raise DecodeError("bad image")
        return [DOG]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True


@pytest.fixture
def stub_detector(monkeypatch):
    StubDetector.instances = []
    monkeypatch.setattr(main, "Detector", StubDetector)
    return StubDetector


def test_cli_prints_and_writes_artifacts(tmp_path, capsys, stub_detector):
    image = tmp_path / "dog.png"
    image.write_bytes(encode_png(np.zeros((50, 50, 3), dtype=np.uint8)))
    out_dir = tmp_path / "out"

    code = main.main([
        str(image),
        "--confidence", "0.3",
        "--output-format", "json,csv,image",
        "--output-path", str(out_dir),
    ])

    assert code == 0
    detector = stub_detector.instances[0]
    assert detector.config.detection.confidence_threshold == 0.3
    assert detector.closed

    printed = json.loads(capsys.readouterr().out.strip())
    assert printed["detections"][0]["label"] == "dog"
    assert printed["detections"][0]["confidence"] == "0.9"

    assert (out_dir / "detections.json").is_file()
    assert (out_dir / "detections.csv").is_file()
    assert (out_dir / "dog_detections.jpg").is_file()


def test_cli_reports_failed_images(tmp_path, stub_detector):
    good = tmp_path / "good.png"
    good.write_bytes(encode_png(np.zeros((5, 5, 3), dtype=np.uint8)))
    bad = tmp_path / "bad.jpg"
    bad.write_bytes(b"garbage")

    code = main.main([str(good), str(bad), str(tmp_path / "missing.jpg")])
    assert code == 2


def test_cli_invalid_override(tmp_path, stub_detector):
    code = main.main([str(tmp_path / "x.png"), "--iou", "1.5"])

    assert code == 1
    assert stub_detector.instances == []


def test_cli_initialization_failure(tmp_path, monkeypatch):
    def failing_detector(config):
        raise ResourceUnavailable("Model file not found.")

    monkeypatch.setattr(main, "Detector", failing_detector)

    assert main.main([str(tmp_path / "x.png")]) == 1
