"""
Shared fixtures for the test suite.
"""

import cv2
import numpy as np
import pytest

from yolo_detect.engine import InferenceEngine


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode a BGR (or grayscale/BGRA) uint8 array as lossless PNG bytes."""
    ok, buffer = cv2.imencode(".png", pixels)
    assert ok
    return buffer.tobytes()


class FakeEngine(InferenceEngine):
    """In-process engine returning a fixed output tensor."""

    name = "fake"

    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.inputs = []
        self.release_count = 0
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def _run(self, tensor):
        self.inputs.append(tensor)
        if self.error is not None:
            raise self.error
        return self.output

    def release(self) -> None:
        self.release_count += 1
        self._released = True


@pytest.fixture
def png_bytes():
    """A 64x48 BGR image with a bright square."""
    image = np.zeros((48, 64, 3), dtype=np.uint8)
    image[10:30, 20:40] = (0, 128, 255)
    return encode_png(image)
