"""
Tests for the preprocessing module.
"""

import numpy as np
import pytest

from conftest import encode_png
from yolo_detect.config import ModelConfig
from yolo_detect.errors import DecodeError, UnsupportedChannelCount
from yolo_detect.preprocessor import decode_image, normalize, resize_bilinear, to_rgb


@pytest.mark.parametrize("height,width", [(48, 64), (416, 416), (1, 1), (600, 97)])
def test_normalize_output_shape(height, width):
    """The tensor shape is fixed regardless of the input resolution."""
    image = np.full((height, width, 3), 200, dtype=np.uint8)
    prepared = normalize(encode_png(image), ModelConfig(input_size=416))

    assert prepared.tensor.shape == (1, 416, 416, 3)
    assert prepared.tensor.dtype == np.float32
    assert (prepared.width, prepared.height) == (width, height)


def test_normalize_scales_values():
    """Values are divided by the scale constant, not re-centered."""
    image = np.full((8, 8, 3), 255, dtype=np.uint8)
    prepared = normalize(encode_png(image), ModelConfig(input_size=4, normalization_scale=255.0))

    np.testing.assert_allclose(prepared.tensor, 1.0, atol=1e-6)


def test_normalize_bilinear_upsample_2x2():
    """A 2x2 image upsampled to 4x4 matches hand-computed bilinear values."""
    gray = np.array([[0, 10], [20, 30]], dtype=np.uint8)
    image = np.stack([gray, gray, gray], axis=-1)

    prepared = normalize(encode_png(image), ModelConfig(input_size=4, normalization_scale=1.0))

    # Source coordinate d * 2 / 4 gives 0, 0.5, 1, 1.5; the upper neighbour of the
    # last two samples is clamped to the edge, so they repeat the last pixel.
    expected = np.array(
        [
            [0.0, 5.0, 10.0, 10.0],
            [10.0, 15.0, 20.0, 20.0],
            [20.0, 25.0, 30.0, 30.0],
            [20.0, 25.0, 30.0, 30.0],
        ],
        dtype=np.float32,
    )
    for channel in range(3):
        np.testing.assert_allclose(prepared.tensor[0, :, :, channel], expected, atol=1e-5)


def test_decode_converts_bgr_to_rgb():
    image = np.zeros((2, 2, 3), dtype=np.uint8)
    image[..., 0] = 255  # blue in OpenCV order

    rgb = decode_image(encode_png(image))

    assert rgb.shape == (2, 2, 3)
    assert (rgb[..., 2] == 255).all()
    assert (rgb[..., 0] == 0).all()


def test_decode_grayscale_and_bgra():
    gray = np.full((3, 5), 77, dtype=np.uint8)
    assert decode_image(encode_png(gray)).shape == (3, 5, 3)

    bgra = np.zeros((3, 5, 4), dtype=np.uint8)
    bgra[..., 2] = 90
    bgra[..., 3] = 255
    rgb = decode_image(encode_png(bgra))
    assert rgb.shape == (3, 5, 3)
    assert (rgb[..., 0] == 90).all()


def test_unsupported_channel_count():
    with pytest.raises(UnsupportedChannelCount):
        to_rgb(np.zeros((4, 4, 2), dtype=np.uint8))


def test_empty_bytes():
    with pytest.raises(DecodeError):
        normalize(b"", ModelConfig())


def test_invalid_bytes():
    with pytest.raises(DecodeError):
        normalize(b"definitely not an image", ModelConfig())


def test_input_bytes_not_modified():
    image = np.full((10, 10, 3), 42, dtype=np.uint8)
    data = encode_png(image)
    snapshot = bytes(data)

    normalize(data, ModelConfig(input_size=8))
    assert data == snapshot


def test_resize_bilinear_downsample():
    """Downsampling samples at dst * in / out without a half-pixel offset."""
    pixels = np.arange(6, dtype=np.float32).reshape(1, 6, 1)
    pixels = np.repeat(pixels, 2, axis=0)

    resized = resize_bilinear(pixels, 4)

    # source x = 0, 1.5, 3, 4.5
    np.testing.assert_allclose(resized[0, :, 0], [0.0, 1.5, 3.0, 4.5], atol=1e-6)
    assert resized.shape == (4, 4, 1)


def test_normalize_16bit_png():
    """16-bit channels are reduced to 8 bits before scaling."""
    image = np.full((4, 4, 3), 65535, dtype=np.uint16)
    image[0, 0] = 0x1234

    prepared = normalize(encode_png(image), ModelConfig(input_size=4, normalization_scale=255.0))

    assert prepared.tensor.max() <= 1.0
    np.testing.assert_allclose(prepared.tensor[0, 3, 3], 1.0, atol=1e-6)
    np.testing.assert_allclose(prepared.tensor[0, 0, 0], 0x12 / 255.0, atol=1e-6)
