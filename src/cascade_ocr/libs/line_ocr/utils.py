"""Utility functions for the line OCR stages."""

import numpy as np

from ...schemas import BoundingBox


def crop_region(image: np.ndarray, box: BoundingBox) -> np.ndarray:
    """Copy a box out of the page image.

    The crop is an independent buffer so it can be handed to a worker
    while the caller keeps the page.
    """
    h, w = image.shape[:2]
    x1 = min(max(box.x, 0), w)
    y1 = min(max(box.y, 0), h)
    x2 = min(max(box.x2, x1), w)
    y2 = min(max(box.y2, y1), h)
    return np.ascontiguousarray(image[y1:y2, x1:x2]).copy()
