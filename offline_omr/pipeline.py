# pipeline.py
"""
Runs one answer sheet through preprocessing and extraction and opens a
review session for it.
"""
import logging
from dataclasses import dataclass
from typing import List

from . import config
from .answer_extractor import extract_answers
from .grader import ReviewSession
from .image_processing import load_image, preprocess
from .schemas import BubbleMark, PreprocessingSettings, RasterImage

logger = logging.getLogger(__name__)


@dataclass
class SheetRun:
    source: RasterImage
    processed: RasterImage
    marks: List[BubbleMark]
    session: ReviewSession


def process_sheet(image_path, layout, answer_key, settings=None,
                  dark_threshold=config.FILL_DARK_THRESHOLD):
    """
    Load -> preprocess -> extract -> review session.

    Without explicit settings the image is preprocessed with the defaults
    for its size. Raises ImageLoadError if the image cannot be decoded.
    """
    source = load_image(image_path)
    if settings is None:
        settings = PreprocessingSettings.for_image(source)

    processed = preprocess(source, settings)
    extracted, marks = extract_answers(processed, layout, dark_threshold)
    session = ReviewSession(extracted, layout, answer_key, original_image=str(image_path))
    logger.info("Sheet %s ready for review.", image_path)
    return SheetRun(source=source, processed=processed, marks=marks, session=session)
