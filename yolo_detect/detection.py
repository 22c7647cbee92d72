"""
Detection data transfer objects.

This module defines BoundingBox and Detection — the output types returned
by Detector.detect(). They are frozen containers: suppression discards
detections, it never edits them.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation methods (that belongs in the decoder).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box in absolute pixels of the original image.

    Attributes:
        left: Left edge x coordinate.
        top: Top edge y coordinate.
        right: Right edge x coordinate (>= left).
        bottom: Bottom edge y coordinate (>= top).
    """

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        """Box width in pixels."""
        return self.right - self.left

    @property
    def height(self) -> float:
        """Box height in pixels."""
        return self.bottom - self.top

    @property
    def area(self) -> float:
        """Box area in square pixels."""
        return self.width * self.height

    def to_dict(self) -> dict:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
        }


@dataclass(frozen=True, slots=True)
class Detection:
    """A single detected object.

    Attributes:
        label: Class name taken from the label set.
        confidence: objectness * class probability, in [0.0, 1.0].
        box: Location in the original image.
    """

    label: str
    confidence: float
    box: BoundingBox

    def to_dict(self) -> dict:
        """Return the consumer-facing dict; confidence is stringified here only."""
        return {
            "label": self.label,
            "confidence": str(self.confidence),
            "location": self.box.to_dict(),
        }
