"""
Configuration management for the object detection system.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: yolo_detect/config.py → project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


def resolve_path(path: str) -> Path:
    """Resolve a possibly relative path against the project root."""
    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = _PROJECT_ROOT / resolved
    return resolved


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

# Anchor priors of the tiny-YOLO-VOC network, in grid-cell units.
TINY_YOLO_VOC_ANCHORS: Tuple[Tuple[float, float], ...] = (
    (1.08, 1.19),
    (3.42, 4.41),
    (6.63, 11.38),
    (9.42, 5.11),
    (16.62, 10.52),
)


@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        model_path: Serialized inference graph (relative to project root).
        labels_path: Newline-separated class names (relative to project root).
        engine: Inference runtime — 'opencv' or 'onnxruntime'.
        backend: Compute backend — 'cpu' or 'cuda'.
        input_size: Side length S of the square network input.
        normalization_scale: Every pixel value is divided by this constant.
    """

    model_path: str = "models/tiny-yolo-voc.pb"
    labels_path: str = "models/tiny-yolo-voc-labels.txt"
    engine: str = "opencv"
    backend: str = "cpu"
    input_size: int = 416
    normalization_scale: float = 255.0


@dataclass(frozen=True)
class DetectionConfig:
    """Decoding and suppression parameters.

    Attributes:
        confidence_threshold: A candidate must score strictly above this.
        iou_threshold: Same-class boxes overlapping more than this are suppressed.
        anchors: (width, height) priors, one per box predicted in each grid cell.
        max_detections: Upper bound on returned detections. None disables the cap.
    """

    confidence_threshold: float = 0.5
    iou_threshold: float = 0.5
    anchors: Tuple[Tuple[float, float], ...] = TINY_YOLO_VOC_ANCHORS
    max_detections: Optional[int] = 24


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        formats: Comma-separated artifacts written per run:
                 'json', 'csv', 'image'. Empty means print only.
        save_path: Directory where output artifacts are written.
    """

    formats: str = ""
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Visualization rendering parameters.

    Attributes:
        box_color: BGR color tuple for bounding boxes.
        thickness: Line thickness in pixels.
        show_label: Whether to render the "label confidence" caption.
    """

    box_color: Tuple[int, int, int] = (0, 255, 0)
    thickness: int = 2
    show_label: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_ENGINES = {"opencv", "onnxruntime"}
_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_OUTPUT_FORMATS = {"json", "csv", "image"}


def parse_formats(formats: str) -> set:
    """Split a comma-separated format string, ignoring blanks."""
    return {f.strip() for f in formats.split(",") if f.strip()}


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.engine not in _VALID_ENGINES:
        raise ValueError(
            f"Invalid model.engine: '{config.model.engine}'. "
            f"Must be one of {_VALID_ENGINES}."
        )

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    if config.model.input_size <= 0:
        raise ValueError(
            f"model.input_size must be positive, got {config.model.input_size}."
        )

    if config.model.normalization_scale <= 0:
        raise ValueError(
            f"model.normalization_scale must be positive, "
            f"got {config.model.normalization_scale}."
        )

    if not (0.0 <= config.detection.confidence_threshold <= 1.0):
        raise ValueError(
            f"detection.confidence_threshold must be in [0.0, 1.0], "
            f"got {config.detection.confidence_threshold}."
        )

    if not (0.0 <= config.detection.iou_threshold <= 1.0):
        raise ValueError(
            f"detection.iou_threshold must be in [0.0, 1.0], "
            f"got {config.detection.iou_threshold}."
        )

    if not config.detection.anchors:
        raise ValueError("detection.anchors must contain at least one (width, height) pair.")

    for anchor in config.detection.anchors:
        if len(anchor) != 2 or any(v <= 0 for v in anchor):
            raise ValueError(
                f"detection.anchors entries must be positive (width, height) pairs, "
                f"got {anchor}."
            )

    max_det = config.detection.max_detections
    if max_det is not None and max_det <= 0:
        raise ValueError(
            f"detection.max_detections must be positive or None, got {max_det}."
        )

    invalid_formats = parse_formats(config.output.formats) - _VALID_OUTPUT_FORMATS
    if invalid_formats:
        raise ValueError(
            f"Invalid output.formats: {invalid_formats}. "
            f"Valid formats: {_VALID_OUTPUT_FORMATS}. "
            f"Use comma-separated values for multiple outputs."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: int, cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    return value


def _parse_anchors(value) -> Tuple[Tuple[float, float], ...]:
    """Accept [[w, h], ...] or a flat [w, h, w, h, ...] list."""
    if isinstance(value, str):
        value = [float(v) for v in value.replace(",", " ").split()]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"anchors must be a list, got {value!r}")
    if value and not isinstance(value[0], (list, tuple)):
        if len(value) % 2:
            raise ValueError(f"Flat anchor list must have an even length, got {len(value)}.")
        value = [value[i:i + 2] for i in range(0, len(value), 2)]
    return tuple(_parse_tuple(pair, 2, float) for pair in value)


def _parse_optional_int(value) -> Optional[int]:
    if value is None or str(value).strip().lower() in ("", "none", "null"):
        return None
    return int(value)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "model_path" in raw:
        kwargs["model_path"] = str(raw["model_path"])
    if "labels_path" in raw:
        kwargs["labels_path"] = str(raw["labels_path"])
    if "engine" in raw:
        kwargs["engine"] = str(raw["engine"]).lower()
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    if "input_size" in raw:
        kwargs["input_size"] = int(raw["input_size"])
    if "normalization_scale" in raw:
        kwargs["normalization_scale"] = float(raw["normalization_scale"])
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "confidence_threshold" in raw:
        kwargs["confidence_threshold"] = float(raw["confidence_threshold"])
    if "iou_threshold" in raw:
        kwargs["iou_threshold"] = float(raw["iou_threshold"])
    if "anchors" in raw:
        kwargs["anchors"] = _parse_anchors(raw["anchors"])
    if "max_detections" in raw:
        kwargs["max_detections"] = _parse_optional_int(raw["max_detections"])
    return DetectionConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "formats" in raw:
        formats = raw["formats"]
        if isinstance(formats, (list, tuple)):
            formats = ",".join(str(f) for f in formats)
        kwargs["formats"] = str(formats or "").lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "box_color" in raw:
        kwargs["box_color"] = _parse_tuple(raw["box_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_label" in raw:
        kwargs["show_label"] = bool(raw["show_label"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "YOLO_DETECT_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        YOLO_DETECT_MODEL_BACKEND=cuda
        YOLO_DETECT_DETECTION_CONFIDENCE_THRESHOLD=0.7
        YOLO_DETECT_DETECTION_ANCHORS="1.08,1.19 3.42,4.41"
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_PATH": ("model", "model_path"),
        f"{_ENV_PREFIX}MODEL_LABELS_PATH": ("model", "labels_path"),
        f"{_ENV_PREFIX}MODEL_ENGINE": ("model", "engine"),
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}MODEL_INPUT_SIZE": ("model", "input_size"),
        f"{_ENV_PREFIX}MODEL_NORMALIZATION_SCALE": ("model", "normalization_scale"),
        f"{_ENV_PREFIX}DETECTION_CONFIDENCE_THRESHOLD": ("detection", "confidence_threshold"),
        f"{_ENV_PREFIX}DETECTION_IOU_THRESHOLD": ("detection", "iou_threshold"),
        f"{_ENV_PREFIX}DETECTION_ANCHORS": ("detection", "anchors"),
        f"{_ENV_PREFIX}DETECTION_MAX_DETECTIONS": ("detection", "max_detections"),
        f"{_ENV_PREFIX}OUTPUT_FORMATS": ("output", "formats"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = resolve_path(config_path)

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model") or {}),
        detection=_build_detection_config(raw.get("detection") or {}),
        output=_build_output_config(raw.get("output") or {}),
        visualization=_build_visualization_config(raw.get("visualization") or {}),
    )

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
