"""
Tests for label set loading.
"""

import pytest

from yolo_detect.errors import ResourceUnavailable
from yolo_detect.labels import load_labels


def test_load_labels(tmp_path):
    path = tmp_path / "labels.txt"
    path.write_text("aeroplane\nbicycle\n  bird \n\n", encoding="utf-8")

    labels = load_labels(str(path))
    assert labels == ("aeroplane", "bicycle", "bird")
    assert labels[1] == "bicycle"


def test_missing_labels(tmp_path):
    with pytest.raises(ResourceUnavailable, match="not found"):
        load_labels(str(tmp_path / "missing.txt"))


def test_empty_labels(tmp_path):
    path = tmp_path / "labels.txt"
    path.write_text("\n\n", encoding="utf-8")

    with pytest.raises(ResourceUnavailable, match="empty"):
        load_labels(str(path))
