# grid_mapper.py
"""
Functions to model the expected answer-bubble grid of a sheet layout.

Bubble positions come from a fixed template scaled to the image size; the
sheet is assumed to match the template once preprocessing is done. There is
no skew or shift compensation.
"""
import logging
from dataclasses import dataclass

from . import config
from .schemas import BubbleMark

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridGeometry:
    start_x: float
    start_y: float
    row_height: int
    circle_spacing: int
    circle_radius: int


def bubble_grid_geometry(width, height):
    """Template constants for an image of the given size."""
    return GridGeometry(
        start_x=width * config.GRID_START_X_RATIO,
        start_y=height * config.GRID_START_Y_RATIO,
        row_height=config.GRID_ROW_HEIGHT,
        circle_spacing=config.GRID_CIRCLE_SPACING,
        circle_radius=config.GRID_CIRCLE_RADIUS,
    )


def modeled_question_count(layout):
    """Number of questions the grid covers; at most config.MAX_QUESTIONS."""
    return min(layout.num_questions, config.MAX_QUESTIONS)


def map_layout_to_grid(layout, width, height):
    """
    One unfilled BubbleMark per (question, choice), ordered by question and
    then by choice.

    Only the first MAX_QUESTIONS questions are modeled; later ones never
    receive an answer.
    """
    geometry = bubble_grid_geometry(width, height)
    num_questions = modeled_question_count(layout)
    if layout.num_questions > num_questions:
        logger.warning(
            "Layout has %d questions; only the first %d are modeled on the sheet.",
            layout.num_questions, num_questions)

    bubbles = []
    for q in range(num_questions):
        y = int(round(geometry.start_y + q * geometry.row_height))
        for choice in range(config.CHOICES_PER_QUESTION):
            x = int(round(geometry.start_x + choice * geometry.circle_spacing))
            bubbles.append(BubbleMark(
                question_index=q,
                choice_index=choice,
                x=x,
                y=y,
                radius=geometry.circle_radius,
            ))

    logger.debug("Modeled %d bubbles for %d questions.", len(bubbles), num_questions)
    return bubbles
