# bubble_detector.py
"""
Functions to decide which modeled bubbles are filled in.
"""
import logging
from dataclasses import replace

import numpy as np

from . import config
from .image_processing import to_grayscale

logger = logging.getLogger(__name__)


def _disc_pixels(gray, cx, cy, radius):
    """Gray values of the pixels within radius of (cx, cy) that lie inside the image."""
    h, w = gray.shape
    y0, y1 = max(cy - radius, 0), min(cy + radius, h - 1)
    x0, x1 = max(cx - radius, 0), min(cx + radius, w - 1)
    if y0 > y1 or x0 > x1:
        return gray[0:0, 0:0].ravel()

    ys, xs = np.ogrid[y0:y1 + 1, x0:x1 + 1]
    inside = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius
    return gray[y0:y1 + 1, x0:x1 + 1][inside]


def is_bubble_filled(gray, cx, cy, radius, dark_threshold=config.FILL_DARK_THRESHOLD):
    """
    A bubble is filled when more than half of the pixels inside its circle
    are darker than dark_threshold. A circle entirely off the image is empty.
    """
    samples = _disc_pixels(gray, cx, cy, radius)
    if samples.size == 0:
        return False
    dark = np.count_nonzero(samples < dark_threshold)
    return dark / samples.size > config.FILL_RATIO_THRESHOLD


def detect_bubbles(image, grid, dark_threshold=config.FILL_DARK_THRESHOLD):
    """
    Evaluates every modeled bubble against the image.

    Returns new BubbleMarks carrying the fill verdict, in grid order.
    """
    gray = to_grayscale(image)
    marks = [
        replace(b, filled=is_bubble_filled(gray, b.x, b.y, b.radius, dark_threshold))
        for b in grid
    ]
    logger.info("Filled bubbles: %d of %d.", sum(m.filled for m in marks), len(marks))
    return marks
