# schemas.py
"""
Data structures passed between the pipeline stages.

Pixel buffers, preprocessing settings, the layout read from the sheet's QR
code, bubble marks and the extracted/reviewed answer sets.
"""
import copy
import json
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

import numpy as np

from . import config
from .errors import ImageLoadError, InvalidLayoutError


# =============================================================================
# Raster buffer
# =============================================================================

class RasterImage:
    """
    An RGBA image held as a row-major (height, width, 4) uint8 array.
    """

    def __init__(self, pixels):
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ImageLoadError(f"Expected an RGBA buffer, got shape {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ImageLoadError(f"Image has no pixels (shape={pixels.shape})")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    @classmethod
    def blank(cls, width, height, color=(255, 255, 255, 255)):
        """Creates a uniformly coloured image."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:] = color
        return cls(pixels)

    @property
    def width(self):
        return self.pixels.shape[1]

    @property
    def height(self):
        return self.pixels.shape[0]

    def get_pixel(self, x, y):
        """Returns the (R, G, B, A) tuple at column x, row y."""
        return tuple(int(v) for v in self.pixels[y, x])

    def set_pixel(self, x, y, rgba):
        self.pixels[y, x] = rgba

    def copy(self):
        return RasterImage(self.pixels.copy())

    def __eq__(self, other):
        if not isinstance(other, RasterImage):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    def __repr__(self):
        return f"RasterImage(width={self.width}, height={self.height})"


# =============================================================================
# Preprocessing settings
# =============================================================================

@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class PerspectiveQuad:
    """Corner points of the sheet in source-image pixel coordinates."""
    top_left: Point
    top_right: Point
    bottom_left: Point
    bottom_right: Point

    @classmethod
    def for_size(cls, width, height):
        """The image's own corners, i.e. no correction."""
        return cls(
            top_left=Point(0, 0),
            top_right=Point(width, 0),
            bottom_left=Point(0, height),
            bottom_right=Point(width, height),
        )

    def as_array(self):
        """Corners as float32 in (tl, tr, br, bl) order, as OpenCV expects."""
        return np.array([
            [self.top_left.x, self.top_left.y],
            [self.top_right.x, self.top_right.y],
            [self.bottom_right.x, self.bottom_right.y],
            [self.bottom_left.x, self.bottom_left.y],
        ], dtype=np.float32)


@dataclass(frozen=True)
class PreprocessingSettings:
    """
    User-adjustable preprocessing parameters.

    Values are never accumulated: every change yields a new settings value,
    and the output is re-derived from the original source image.
    """
    rotation: float = config.DEFAULT_ROTATION
    brightness: float = config.DEFAULT_BRIGHTNESS
    contrast: float = config.DEFAULT_CONTRAST
    threshold: float = config.DEFAULT_THRESHOLD
    perspective: PerspectiveQuad = field(
        default_factory=lambda: PerspectiveQuad.for_size(100, 100))

    def __post_init__(self):
        object.__setattr__(self, 'rotation', self.rotation % 360)

    @classmethod
    def for_image(cls, image):
        """Default settings for a freshly loaded source image."""
        return cls(perspective=PerspectiveQuad.for_size(image.width, image.height))

    def rotated(self, direction):
        """Returns settings turned by one 90 degree step ('left' or 'right')."""
        if direction == 'left':
            step = -config.ROTATION_STEP
        elif direction == 'right':
            step = config.ROTATION_STEP
        else:
            raise ValueError(f"Unknown rotation direction: {direction!r}")
        return replace(self, rotation=self.rotation + step)

    def reset(self, image):
        """Restores every setting to its default for the given source image."""
        return PreprocessingSettings.for_image(image)


# =============================================================================
# Layout descriptor
# =============================================================================

@dataclass(frozen=True)
class LayoutDescriptor:
    """Test metadata printed in the sheet's QR code."""
    test_id: str
    version_id: str
    layout_seed: int
    num_questions: int

    def __post_init__(self):
        if isinstance(self.num_questions, bool) or not isinstance(self.num_questions, int):
            raise InvalidLayoutError(f"num_questions must be an integer, got {self.num_questions!r}")
        if self.num_questions < 0:
            raise InvalidLayoutError(f"num_questions cannot be negative ({self.num_questions})")

    @classmethod
    def from_dict(cls, data):
        """Builds a descriptor from the camelCase QR/wire form."""
        if not isinstance(data, dict):
            raise InvalidLayoutError("Layout payload must be a JSON object")
        test_id = data.get('testId')
        version_id = data.get('versionId')
        seed = data.get('layoutSeed')
        num_questions = data.get('numQuestions')
        if not test_id or not version_id or seed is None or not num_questions:
            raise InvalidLayoutError("Not a valid test QR payload")
        return cls(
            test_id=str(test_id),
            version_id=str(version_id),
            layout_seed=seed,
            num_questions=num_questions,
        )

    @classmethod
    def from_qr_payload(cls, text):
        """Parses the JSON text decoded from a sheet's QR code."""
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise InvalidLayoutError(f"Could not read QR payload: {e}") from e
        return cls.from_dict(data)

    def to_dict(self):
        return {
            'testId': self.test_id,
            'versionId': self.version_id,
            'layoutSeed': self.layout_seed,
            'numQuestions': self.num_questions,
        }


# =============================================================================
# Extraction results
# =============================================================================

@dataclass(frozen=True)
class BubbleMark:
    """One modeled answer bubble and its fill verdict."""
    question_index: int
    choice_index: int
    x: int
    y: int
    radius: int
    filled: bool = False

    @property
    def letter(self):
        return chr(ord('A') + self.choice_index)

    @property
    def question_id(self):
        return question_id(self.question_index)


def question_id(question_index):
    """0-based question index -> 'q<N>' id used by answer maps and keys."""
    return f"q{question_index + 1}"


@dataclass
class StudentInfo:
    name: str = config.STUDENT_INFO_PLACEHOLDER
    student_id: str = config.STUDENT_INFO_PLACEHOLDER

    def to_dict(self):
        return {'name': self.name, 'studentId': self.student_id}


@dataclass
class ExtractedAnswerSet:
    """
    Answers recovered from one sheet.

    mcq_answers only holds questions with a decoded mark; unanswered
    questions are absent rather than mapped to a placeholder.
    """
    mcq_answers: Dict[str, int] = field(default_factory=dict)
    short_answers: Dict[str, str] = field(default_factory=dict)
    student_info: StudentInfo = field(default_factory=StudentInfo)

    def copy(self):
        return copy.deepcopy(self)

    def to_dict(self):
        return {
            'mcqAnswers': dict(self.mcq_answers),
            'shortAnswers': dict(self.short_answers),
            'studentInfo': self.student_info.to_dict(),
        }


# The reviewer edits a copy with exactly the same shape.
ReviewedAnswerSet = ExtractedAnswerSet


@dataclass(frozen=True)
class GradingResult:
    correct: int
    total: int

    @property
    def percentage(self):
        return (100.0 * self.correct / self.total) if self.total else 0.0


@dataclass(frozen=True)
class PersistedAttempt:
    """An attempt record as handed to the attempt store, with its id."""
    attempt_id: str
    record: dict
    result: Optional[GradingResult] = None
