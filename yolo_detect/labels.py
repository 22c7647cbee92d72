"""
Label set loading.

The label file is a plain list of class names, one per line, in the order of
the network's class channels.
"""

import logging
from typing import Tuple

from yolo_detect.config import resolve_path
from yolo_detect.errors import ResourceUnavailable

logger = logging.getLogger(__name__)


def load_labels(labels_path: str) -> Tuple[str, ...]:
    """Load an ordered, immutable label set.

    Blank lines are skipped and surrounding whitespace is stripped.

    Raises:
        ResourceUnavailable: If the file is missing, unreadable, or empty.
    """
    path = resolve_path(labels_path)

    if not path.is_file():
        raise ResourceUnavailable(
            f"Label file not found.\n"
            f"  Expected: {path}\n"
            f"  Provide the file or update 'model.labels_path' in your config."
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            labels = tuple(line.strip() for line in f if line.strip())
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceUnavailable(f"Failed to read label file {path}: {e}") from e

    if not labels:
        raise ResourceUnavailable(f"Label file is empty: {path}")

    logger.info("Loaded %d labels from %s", len(labels), path)
    return labels
