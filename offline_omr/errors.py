# errors.py
"""
Exceptions raised by the offline OMR pipeline.
"""


class OMRError(Exception):
    """Base class for pipeline errors."""


class ImageLoadError(OMRError, IOError):
    """The source image could not be decoded, or has no pixels."""


class InvalidLayoutError(OMRError, ValueError):
    """A layout descriptor (usually a scanned QR payload) is malformed."""


class SubmissionValidationError(OMRError, ValueError):
    """A review session was submitted without the mandatory identity fields."""


class ReviewClosedError(OMRError):
    """A submitted review session was edited or submitted again."""


class AnswerKeyError(OMRError, ValueError):
    """The master answer file is empty or holds an unreadable entry."""
