"""
Error taxonomy for the detection pipeline.

Every failure raised by this package derives from DetectionError, and also
from the built-in exception a caller would naturally catch (ValueError for
bad input, RuntimeError for engine and resource problems).
"""


class DetectionError(Exception):
    """Base class for all detection pipeline errors."""


class DecodeError(DetectionError, ValueError):
    """The image byte buffer could not be decoded."""


class UnsupportedChannelCount(DetectionError, ValueError):
    """The decoded image has a channel count that cannot be converted to RGB."""


class ShapeMismatch(DetectionError, ValueError):
    """The network output tensor is inconsistent with the anchors and labels."""


class InferenceFailure(DetectionError, RuntimeError):
    """The inference engine failed while running the network."""


class ResourceUnavailable(DetectionError, RuntimeError):
    """A model or label file could not be loaded, or the detector is closed."""
