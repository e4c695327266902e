# answer_extractor.py
"""
Functions to extract the student's answers from a normalized sheet image.
"""
import logging
from collections import defaultdict

from . import config
from .bubble_detector import detect_bubbles
from .grid_mapper import map_layout_to_grid
from .schemas import ExtractedAnswerSet, StudentInfo, question_id

logger = logging.getLogger(__name__)


def decode_answers(marks):
    """
    For each question, determines which choice is marked.

    Exactly one filled bubble gives that choice. Several filled bubbles give
    the lowest filled choice index. A question with no filled bubble is left
    out of the result.

    Returns a dict: {'q1': 0, 'q3': 2, ...}
    """
    # Group bubbles by the question they belong to
    question_to_bubbles = defaultdict(list)
    for b in marks:
        question_to_bubbles[b.question_index].append(b)

    answers = {}
    for q_index in sorted(question_to_bubbles):
        filled = sorted(
            (b for b in question_to_bubbles[q_index] if b.filled),
            key=lambda b: b.choice_index)
        if not filled:
            continue
        if len(filled) > 1:
            logger.warning(
                "%s has %d marked choices (%s); using %s.",
                question_id(q_index), len(filled),
                ", ".join(b.letter for b in filled), filled[0].letter)
        answers[question_id(q_index)] = filled[0].choice_index

    return answers


def extract_answers(image, layout, dark_threshold=config.FILL_DARK_THRESHOLD):
    """
    Runs fill analysis over the layout's bubble grid and decodes the marks.

    Student identity is not read from the sheet; placeholders are returned
    for the reviewer to replace.

    Returns (ExtractedAnswerSet, list of BubbleMark).
    """
    logger.info("OMR extraction started for test %s (version %s)",
                layout.test_id, layout.version_id)
    grid = map_layout_to_grid(layout, image.width, image.height)
    marks = detect_bubbles(image, grid, dark_threshold)
    mcq_answers = decode_answers(marks)

    extracted = ExtractedAnswerSet(
        mcq_answers=mcq_answers,
        short_answers={},
        student_info=StudentInfo(),
    )
    logger.info("Extracted answers for %d of %d questions.",
                len(mcq_answers), layout.num_questions)
    return extracted, marks
