"""
Preprocessing for the object detection pipeline.

Responsibility:
    Decode raw image bytes and convert them into the [1, S, S, 3] float32
    tensor the network expects, remembering the original size for
    coordinate back-projection.

Non-goals:
    - No file reading or I/O.
    - No inference or coordinate mapping.
    - No letterboxing: the aspect ratio is not preserved.

Hard-coded:
    - Channel order of the tensor is RGB.
    - Resizing is bilinear with corner-aligned source coordinates
      (src = dst * in / out, clamped to the last pixel), the convention
      the pretrained graphs were exported with.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from yolo_detect.config import ModelConfig
from yolo_detect.errors import DecodeError, UnsupportedChannelCount

# Conversion from each decodable channel count to RGB
_TO_RGB = {
    1: cv2.COLOR_GRAY2RGB,
    3: cv2.COLOR_BGR2RGB,
    4: cv2.COLOR_BGRA2RGB,
}


@dataclass(frozen=True)
class PreparedImage:
    """Network input tensor plus the original image dimensions."""

    tensor: np.ndarray
    width: int
    height: int


def decode_image(image_bytes: bytes) -> np.ndarray:
    """Decode an encoded image buffer into an (H, W, 3) RGB array.

    Raises:
        DecodeError: If the buffer is empty or not a valid image.
        UnsupportedChannelCount: If the image cannot be converted to 3 channels.
    """
    if not image_bytes:
        raise DecodeError("Cannot decode an empty image buffer.")

    buffer = np.frombuffer(image_bytes, dtype=np.uint8)
    try:
        pixels = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise DecodeError(f"OpenCV failed to decode the image buffer: {e}") from e

    if pixels is None or pixels.size == 0:
        raise DecodeError(
            f"Image buffer of {len(image_bytes)} bytes is not a valid image."
        )

    # 16-bit PNG/TIFF keep their depth under IMREAD_UNCHANGED
    if pixels.dtype == np.uint16:
        pixels = (pixels >> 8).astype(np.uint8)
    elif pixels.dtype != np.uint8:
        raise DecodeError(
            f"Unsupported pixel depth {pixels.dtype}; expected 8- or 16-bit channels."
        )

    return to_rgb(pixels)


def to_rgb(pixels: np.ndarray) -> np.ndarray:
    """Convert a decoded OpenCV pixel grid (BGR order) to 3-channel RGB.

    Raises:
        UnsupportedChannelCount: If the channel count has no RGB conversion.
    """
    channels = 1 if pixels.ndim == 2 else pixels.shape[2]
    code = _TO_RGB.get(channels)
    if pixels.ndim not in (2, 3) or code is None:
        raise UnsupportedChannelCount(
            f"Cannot convert an image with {channels} channels "
            f"(shape {pixels.shape}) to RGB. Supported: {sorted(_TO_RGB)}."
        )
    return cv2.cvtColor(pixels, code)


def _source_coords(out_size: int, in_size: int):
    """Corner-aligned sampling: lower index, upper index and lerp weight."""
    coords = np.arange(out_size, dtype=np.float64) * (in_size / out_size)
    lower = np.floor(coords).astype(np.intp)
    upper = np.minimum(lower + 1, in_size - 1)
    weight = (coords - lower).astype(np.float32)
    return lower, upper, weight


def resize_bilinear(pixels: np.ndarray, size: int) -> np.ndarray:
    """Bilinear resize of an (H, W, C) float32 grid to (size, size, C).

    Source coordinates are dst * in / out with no half-pixel offset; the
    upper neighbour is clamped to the last row/column. Weights are exact,
    unlike cv2.remap which quantizes them to 1/32 of a pixel.
    """
    height, width = pixels.shape[:2]
    y0, y1, wy = _source_coords(size, height)
    x0, x1, wx = _source_coords(size, width)

    top, bottom = pixels[y0], pixels[y1]
    rows = top + (bottom - top) * wy[:, np.newaxis, np.newaxis]

    left, right = rows[:, x0], rows[:, x1]
    return left + (right - left) * wx[np.newaxis, :, np.newaxis]


def normalize(image_bytes: bytes, config: ModelConfig) -> PreparedImage:
    """Convert raw image bytes into the network input tensor.

    Args:
        image_bytes: Encoded image (JPEG, PNG, ...). Not modified.
        config: ModelConfig providing input_size and normalization_scale.

    Returns:
        A PreparedImage whose tensor has shape (1, S, S, 3), dtype float32,
        values divided by config.normalization_scale.

    Raises:
        DecodeError: If the bytes are not a valid image.
        UnsupportedChannelCount: If the image cannot be converted to RGB.
    """
    rgb = decode_image(image_bytes)
    height, width = rgb.shape[:2]

    size = config.input_size
    resized = resize_bilinear(rgb.astype(np.float32), size)
    tensor = (resized / np.float32(config.normalization_scale))[np.newaxis, ...]

    return PreparedImage(tensor=tensor.astype(np.float32, copy=False), width=width, height=height)
