"""
Tests for the configuration module.
"""

import pytest

from yolo_detect.config import (
    TINY_YOLO_VOC_ANCHORS,
    AppConfig,
    DetectionConfig,
    ModelConfig,
    OutputConfig,
    load_config,
    validate_config,
)


def test_load_defaults():
    """Test loading configuration without any file."""
    config = load_config(None)
    assert isinstance(config, AppConfig)
    assert config.model.engine == "opencv"
    assert config.model.input_size == 416
    assert config.model.normalization_scale == 255.0
    assert config.detection.confidence_threshold == 0.5
    assert config.detection.iou_threshold == 0.5
    assert config.detection.anchors == TINY_YOLO_VOC_ANCHORS
    assert config.detection.max_detections == 24


def test_validation_failure():
    """Test fail-fast validation."""
    with pytest.raises(ValueError, match="confidence_threshold"):
        validate_config(AppConfig(detection=DetectionConfig(confidence_threshold=1.5)))

    with pytest.raises(ValueError, match="iou_threshold"):
        validate_config(AppConfig(detection=DetectionConfig(iou_threshold=-0.1)))

    with pytest.raises(ValueError, match="backend"):
        validate_config(AppConfig(model=ModelConfig(backend="invalid")))

    with pytest.raises(ValueError, match="engine"):
        validate_config(AppConfig(model=ModelConfig(engine="tensorflow")))

    with pytest.raises(ValueError, match="input_size"):
        validate_config(AppConfig(model=ModelConfig(input_size=0)))

    with pytest.raises(ValueError, match="normalization_scale"):
        validate_config(AppConfig(model=ModelConfig(normalization_scale=0.0)))

    with pytest.raises(ValueError, match="anchors"):
        validate_config(AppConfig(detection=DetectionConfig(anchors=())))

    with pytest.raises(ValueError, match="anchors"):
        validate_config(AppConfig(detection=DetectionConfig(anchors=((1.0, -2.0),))))

    with pytest.raises(ValueError, match="formats"):
        validate_config(AppConfig(output=OutputConfig(formats="json,xml")))


def test_yaml_file(tmp_path):
    """Test loading values from a YAML file, including flat anchor lists."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "model:\n"
        "  input_size: 608\n"
        "  engine: ONNXRUNTIME\n"
        "detection:\n"
        "  confidence_threshold: 0.3\n"
        "  anchors: [0.57, 0.67, 1.87, 2.06]\n"
        "  max_detections: null\n"
        "output:\n"
        "  formats: [json, image]\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert config.model.input_size == 608
    assert config.model.engine == "onnxruntime"
    assert config.detection.confidence_threshold == 0.3
    assert config.detection.anchors == ((0.57, 0.67), (1.87, 2.06))
    assert config.detection.max_detections is None
    assert config.output.formats == "json,image"


def test_yaml_nested_anchors(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("detection:\n  anchors: [[1, 2], [3, 4]]\n", encoding="utf-8")

    config = load_config(str(path))
    assert config.detection.anchors == ((1.0, 2.0), (3.0, 4.0))


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_env_override(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("YOLO_DETECT_DETECTION_CONFIDENCE_THRESHOLD", "0.9")
    monkeypatch.setenv("YOLO_DETECT_MODEL_BACKEND", "cuda")
    monkeypatch.setenv("YOLO_DETECT_DETECTION_ANCHORS", "1,2 3,4")
    monkeypatch.setenv("YOLO_DETECT_DETECTION_MAX_DETECTIONS", "none")

    config = load_config(None)

    assert config.detection.confidence_threshold == 0.9
    assert config.model.backend == "cuda"
    assert config.detection.anchors == ((1.0, 2.0), (3.0, 4.0))
    assert config.detection.max_detections is None
