"""
Inference engines for the object detection system.

Responsibility:
    Load the serialized network from disk and expose it as an opaque
    capability: run(tensor) -> tensor, plus an explicit release().

Non-goals:
    - No preprocessing or output decoding.
    - No automatic model downloading.
    - No fallback to alternative runtimes.

Failure behavior:
    - Missing or unloadable model files raise ResourceUnavailable with the
      exact path and expected location.
    - Errors raised by the runtime during run() surface as InferenceFailure.
    - Running a released engine raises ResourceUnavailable.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Optional, Sequence

import cv2
import numpy as np

from yolo_detect.config import ModelConfig, resolve_path
from yolo_detect.errors import DetectionError, InferenceFailure, ResourceUnavailable

logger = logging.getLogger(__name__)


class InferenceEngine:
    """Base class for a loaded network.

    Input tensors are NHWC float32 of shape (1, S, S, 3); outputs are
    returned as NHWC arrays of shape (1, G, G, depth).

    Usage:
        with load_engine(config.model) as engine:
            output = engine.run(tensor)
    """

    name = "base"

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run the network on one input tensor.

        Raises:
            ResourceUnavailable: If the engine has been released.
            InferenceFailure: If the runtime fails.
        """
        self._ensure_open()
        start = time.perf_counter()
        try:
            output = self._run(tensor)
        except DetectionError:
            raise
        except Exception as e:
            raise InferenceFailure(f"{self.name} inference failed: {e}") from e
        logger.debug(
            "%s run time: %.3f seconds", self.name, time.perf_counter() - start
        )
        return output

    def release(self) -> None:
        """Free native resources. Safe to call more than once."""

    @property
    def released(self) -> bool:
        raise NotImplementedError

    def _run(self, tensor: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _ensure_open(self) -> None:
        if self.released:
            raise ResourceUnavailable(f"{self.name} engine has been released.")

    def __enter__(self) -> "InferenceEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class OpenCVEngine(InferenceEngine):
    """Network executed by the OpenCV DNN module.

    cv2.dnn.readNet detects the format from the file extension
    (TensorFlow .pb, ONNX, Darknet, Caffe, ...). OpenCV works in NCHW, so
    inputs are transposed on the way in and 4-D outputs on the way out.
    setInput()/forward() share state on the Net, so the call is serialized.
    """

    name = "opencv"

    def __init__(self, model_path: Path, backend: str = "cpu") -> None:
        try:
            net = cv2.dnn.readNet(str(model_path))
        except cv2.error as e:
            raise ResourceUnavailable(
                f"OpenCV could not load the model at {model_path}.\n"
                f"  OpenCV error: {e}"
            ) from e

        if net.empty():
            raise ResourceUnavailable(f"OpenCV loaded an empty network from {model_path}.")

        if backend == "cuda":
            logger.info("Setting CUDA backend and target.")
            try:
                net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
                net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
            except cv2.error as e:
                raise ResourceUnavailable(
                    f"Failed to set CUDA backend. Ensure OpenCV was built with "
                    f"CUDA support.\n"
                    f"  OpenCV error: {e}"
                ) from e
        else:
            logger.info("Using CPU backend.")
            net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
            net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

        self._net = net
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._net is None

    def _run(self, tensor: np.ndarray) -> np.ndarray:
        blob = np.ascontiguousarray(np.transpose(tensor, (0, 3, 1, 2)))
        with self._lock:
            self._ensure_open()
            self._net.setInput(blob)
            output = self._net.forward()
        if output.ndim == 4:
            output = np.transpose(output, (0, 2, 3, 1))
        return output

    def release(self) -> None:
        with self._lock:
            if self._net is not None:
                self._net = None
                logger.debug("OpenCV network released.")


class OnnxRuntimeEngine(InferenceEngine):
    """Network executed by ONNX Runtime.

    The model must accept the NHWC tensor as produced by the preprocessor.
    InferenceSession.run is reentrant, so no lock is taken.
    """

    name = "onnxruntime"

    def __init__(
        self,
        model_path: Path,
        backend: str = "cpu",
        providers: Optional[Sequence[str]] = None,
    ) -> None:
        try:
            import onnxruntime as ort
        except ImportError as e:
            raise ResourceUnavailable(
                "onnxruntime is required for the ONNX Runtime engine. Install it with "
                "`pip install yolo-detect[onnx]` (or `onnxruntime-gpu`)."
            ) from e

        if providers is None:
            providers = ["CPUExecutionProvider"]
            if backend == "cuda":
                providers.insert(0, "CUDAExecutionProvider")

        try:
            self._session = ort.InferenceSession(str(model_path), providers=list(providers))
        except Exception as e:
            raise ResourceUnavailable(
                f"ONNX Runtime could not load the model at {model_path}: {e}"
            ) from e

        self._input_name = self._session.get_inputs()[0].name
        self._output_name = self._session.get_outputs()[0].name
        logger.info("ONNX Runtime providers in use: %s", self._session.get_providers())

    @property
    def released(self) -> bool:
        return self._session is None

    def _run(self, tensor: np.ndarray) -> np.ndarray:
        session = self._session
        if session is None:
            raise ResourceUnavailable("onnxruntime engine has been released.")
        return session.run([self._output_name], {self._input_name: tensor})[0]

    def release(self) -> None:
        if self._session is not None:
            self._session = None
            logger.debug("ONNX Runtime session released.")


def load_engine(config: ModelConfig) -> InferenceEngine:
    """Load the configured model with the configured runtime.

    Args:
        config: ModelConfig containing the model path, engine and backend.

    Returns:
        A ready-to-run InferenceEngine.

    Raises:
        ResourceUnavailable: If the model file is missing or cannot be loaded.
        ValueError: If the engine name is unknown.
    """
    model_path = resolve_path(config.model_path)

    # Validate file existence — fail fast with actionable messages
    if not model_path.is_file():
        raise ResourceUnavailable(
            f"Model file not found.\n"
            f"  Expected: {model_path}\n"
            f"  Provide the file or update 'model.model_path' in your config."
        )

    logger.info("Loading model with %s: %s", config.engine, model_path)
    if config.engine == "opencv":
        engine: InferenceEngine = OpenCVEngine(model_path, backend=config.backend)
    elif config.engine == "onnxruntime":
        engine = OnnxRuntimeEngine(model_path, backend=config.backend)
    else:
        raise ValueError(f"Unsupported engine: {config.engine!r}")

    logger.info("Model loaded successfully.")
    return engine
