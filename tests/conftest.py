import sys
from pathlib import Path

import numpy as np
import pytest

# Add the project root to sys.path so offline_omr and main import without installing
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from offline_omr.grid_mapper import map_layout_to_grid  # noqa: E402
from offline_omr.schemas import LayoutDescriptor, RasterImage  # noqa: E402

SHEET_WIDTH = 400
SHEET_HEIGHT = 1200


def paint_disc(image, cx, cy, radius, value=0):
    """Fills a disc with a flat gray value, leaving alpha alone."""
    ys, xs = np.ogrid[:image.height, :image.width]
    inside = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius
    image.pixels[inside, :3] = value


def make_sheet(layout, fills, width=SHEET_WIDTH, height=SHEET_HEIGHT):
    """
    White sheet with the given bubbles blacked in.

    fills maps a 0-based question index to the choice indices to mark.
    """
    image = RasterImage.blank(width, height)
    for b in map_layout_to_grid(layout, width, height):
        if b.choice_index in fills.get(b.question_index, ()):
            paint_disc(image, b.x, b.y, b.radius)
    return image


@pytest.fixture
def layout():
    """A ten-question test layout."""
    return LayoutDescriptor(test_id="test-0001", version_id="v-0001", layout_seed=424242, num_questions=10)


@pytest.fixture
def sheet_factory(layout):
    def factory(fills, **kwargs):
        return make_sheet(layout, fills, **kwargs)
    return factory


@pytest.fixture
def answer_key():
    return {"q1": 0, "q2": 2, "q3": 3}
