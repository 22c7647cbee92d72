"""
Detector — the single public API for object detection.

This module is the ONLY intended programmatic entry point for consumers
of the object detection library. All other modules are internal.

Public contract:
    Detector.detect(image_bytes: bytes) -> list[Detection]

Constraints:
    - Input is an encoded image buffer (JPEG, PNG, ...).
    - Each call is independent; the detector holds no per-call state.
    - Concurrent detect() calls share the engine and label set read-only.
    - The engine is released on close(), on leaving a `with` block, or if
      construction fails after the engine was loaded.

Non-goals:
    - No file reading, camera access, or I/O of any kind.
    - No visualization or output writing.
    - No tracking or temporal state.
"""

import logging
from typing import List, Optional, Sequence

from yolo_detect.config import AppConfig, load_config
from yolo_detect.decoder import DecoderConfig, decode
from yolo_detect.detection import Detection
from yolo_detect.engine import InferenceEngine, load_engine
from yolo_detect.errors import ResourceUnavailable
from yolo_detect.labels import load_labels
from yolo_detect.nms import suppress
from yolo_detect.preprocessor import normalize

logger = logging.getLogger(__name__)


class Detector:
    """YOLO object detector.

    All internal modules (preprocessor, engine, decoder, nms) are wired
    together here and should not be used directly.

    Usage:
        with Detector() as detector:                # Uses safe defaults
            detections = detector.detect(image_bytes)

        detector = Detector(config=my_config)       # Custom config
        ...
        detector.close()

    The constructor loads the labels and the model once. Subsequent
    detect() calls reuse the loaded network.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        engine: Optional[InferenceEngine] = None,
        labels: Optional[Sequence[str]] = None,
    ) -> None:
        """Initialize the detector, loading labels and model.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
            engine: Pre-built inference engine. The detector takes
                    ownership and releases it on close().
            labels: Pre-loaded label set; read from config when omitted.

        Raises:
            ResourceUnavailable: If the model or label file cannot be loaded.
            ValueError: If configuration values are invalid.
        """
        self._engine: Optional[InferenceEngine] = None

        try:
            if config is None:
                config = load_config()
            self._config = config

            if labels is None:
                labels = load_labels(config.model.labels_path)
            self._labels = tuple(labels)
            if not self._labels:
                raise ResourceUnavailable("The label set is empty.")

            self._decoder_config = DecoderConfig(
                confidence_threshold=config.detection.confidence_threshold,
                anchors=tuple(tuple(a) for a in config.detection.anchors),
            )

            self._engine = engine if engine is not None else load_engine(config.model)
        except BaseException:
            if engine is not None:
                engine.release()
            raise

        logger.info(
            "Detector initialized (engine=%s, backend=%s, labels=%d, "
            "confidence_threshold=%.2f, iou_threshold=%.2f)",
            self._engine.name,
            config.model.backend,
            len(self._labels),
            config.detection.confidence_threshold,
            config.detection.iou_threshold,
        )

    def detect(self, image_bytes: bytes) -> List[Detection]:
        """Detect objects in a single encoded image.

        Args:
            image_bytes: Raw image bytes. Not modified.

        Returns:
            Detections sorted by confidence (descending), capped at
            detection.max_detections. Empty if nothing is detected.

        Raises:
            ResourceUnavailable: If the detector has been closed.
            DecodeError: If the bytes are not a valid image.
            UnsupportedChannelCount: If the image cannot be converted to RGB.
            InferenceFailure: If the inference engine fails.
            ShapeMismatch: If the network output disagrees with the configuration.
        """
        engine = self._engine
        if engine is None:
            raise ResourceUnavailable("Detector is closed.")

        # Preprocess: bytes → tensor
        prepared = normalize(image_bytes, self._config.model)

        # Inference
        output = engine.run(prepared.tensor)

        # Postprocess: raw output → candidates → suppressed detections
        candidates = decode(
            output,
            image_width=prepared.width,
            image_height=prepared.height,
            labels=self._labels,
            config=self._decoder_config,
        )
        detections = suppress(candidates, self._config.detection.iou_threshold)

        detections.sort(key=lambda d: d.confidence, reverse=True)
        max_det = self._config.detection.max_detections
        if max_det is not None:
            detections = detections[:max_det]

        logger.debug(
            "Detected %d objects (%d candidates) in %dx%d image",
            len(detections), len(candidates), prepared.width, prepared.height,
        )
        return detections

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def labels(self) -> Sequence[str]:
        """Return the label set (read-only)."""
        return self._labels

    @property
    def closed(self) -> bool:
        return self._engine is None

    def close(self) -> None:
        """Release the inference engine. Safe to call more than once."""
        engine, self._engine = self._engine, None
        if engine is not None:
            engine.release()
            logger.info("Detector closed.")

    def __enter__(self) -> "Detector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:
        """Safety net: release the engine if close() was never called."""
        if getattr(self, "_engine", None) is not None:
            self.close()
