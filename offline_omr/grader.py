# grader.py
"""
Functions for reviewing extracted answers and grading them against a key.

A ReviewSession holds the reviewer's editable copy of the extracted answers.
The score is recomputed from that copy on every request and only frozen when
the session is submitted to an attempt store.
"""
import logging
import re
from datetime import datetime, timezone
from enum import Enum

import pandas as pd

from . import config
from .errors import AnswerKeyError, ReviewClosedError, SubmissionValidationError
from .schemas import GradingResult, PersistedAttempt

logger = logging.getLogger(__name__)

QUESTION_ID_PATTERN = re.compile(r'^q[1-9]\d*$')


def _question_key(value):
    text = str(value).strip().lower()
    if text.startswith('q'):
        text = text[1:]
    return f"q{int(float(text))}"


def _choice_index(value):
    text = str(value).strip().upper()
    if len(text) == 1 and 'A' <= text <= 'Z':
        return ord(text) - ord('A')
    return int(float(text))


def load_master_answers(path):
    """
    Loads the answer key from a CSV file with question and answer columns.

    Answers may be letters (A, B, ...) or 0-based choice indices.
    Returns {'q1': 0, 'q2': 3, ...}.
    """
    try:
        df = pd.read_csv(path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Master answer file not found at {path}")
    except pd.errors.EmptyDataError:
        raise AnswerKeyError(f"Master answer file {path} is empty")
    if df.shape[1] < 2:
        raise AnswerKeyError(f"Master answer file {path} needs question and answer columns")
    # Standardize column names for easier access
    df = df.iloc[:, :2]
    df.columns = ['question', 'answer']
    df = df.dropna()
    try:
        key = {_question_key(q): _choice_index(a) for q, a in zip(df['question'], df['answer'])}
    except ValueError as e:
        raise AnswerKeyError(f"Invalid entry in master answer file {path}: {e}") from e
    logger.info("Loaded answer key with %d questions from %s", len(key), path)
    return key


def score_answers(reviewed, answer_key):
    """
    Compares reviewed answers to the key.

    Every reviewed question counts toward the total; questions the key has no
    entry for can never be correct. Unanswered questions do not count.
    """
    correct = 0
    total = 0
    for q_id, answer in reviewed.mcq_answers.items():
        total += 1
        key_answer = answer_key.get(q_id)
        if key_answer is not None and answer == key_answer:
            correct += 1
    return GradingResult(correct=correct, total=total)


def question_results(reviewed, answer_key):
    """Per-question rows for the results CSV, in question order."""
    results = []
    for q_id in sorted(reviewed.mcq_answers, key=lambda q: int(q[1:])):
        answer = reviewed.mcq_answers[q_id]
        key_answer = answer_key.get(q_id)
        results.append({
            'question_number': q_id,
            'correct_answer': chr(ord('A') + key_answer) if key_answer is not None else '',
            'student_answer': chr(ord('A') + answer),
            'marks': int(key_answer is not None and answer == key_answer),
        })
    return results


def apply_override(reviewed, question_id, choice_index):
    """Returns a copy of the reviewed answers with one choice reassigned."""
    if not QUESTION_ID_PATTERN.match(str(question_id)):
        raise ValueError(f"Invalid question id: {question_id!r}")
    if isinstance(choice_index, bool) or not isinstance(choice_index, int) \
            or not 0 <= choice_index < config.CHOICES_PER_QUESTION:
        raise ValueError(
            f"Choice index must be between 0 and {config.CHOICES_PER_QUESTION - 1}, got {choice_index!r}")
    updated = reviewed.copy()
    updated.mcq_answers[question_id] = choice_index
    return updated


def validate_identity(student_info):
    """Name and student id are mandatory and must not be the extraction placeholder."""
    missing = [
        label for label, value in (('name', student_info.name), ('student id', student_info.student_id))
        if not str(value or '').strip() or value == config.STUDENT_INFO_PLACEHOLDER
    ]
    if missing:
        raise SubmissionValidationError(f"Enter the student's {' and '.join(missing)} before submitting")


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


def build_attempt_record(layout, extracted, reviewed, result, original_image=None):
    """
    The attempt record handed to the store. Both the extracted and the
    reviewed answers are kept for audit.
    """
    now = _timestamp()
    answers = {q_id: str(choice) for q_id, choice in reviewed.mcq_answers.items()}
    answers.update(reviewed.short_answers)
    return {
        'testId': layout.test_id,
        'versionId': layout.version_id,
        'startedAt': now,
        'status': config.ATTEMPT_STATUS_COMPLETED,
        'candidate': {
            'name': reviewed.student_info.name,
            'system': config.DEFAULT_CANDIDATE_SYSTEM,
            'grade': config.DEFAULT_CANDIDATE_GRADE,
            'note': f"Offline grading - student id: {reviewed.student_info.student_id}",
        },
        'answers': answers,
        'submittedAt': now,
        'autoTotal': result.correct,
        'maxTotal': result.total,
        'finalTotal': result.correct,
        'layout': {'seed': layout.layout_seed},
        'offlineProcessing': {
            'originalImage': original_image,
            'processedAt': now,
            'extractedAnswers': extracted.to_dict(),
            'reviewedAnswers': reviewed.to_dict(),
        },
    }


class ReviewState(str, Enum):
    EXTRACTED = "extracted"
    UNDER_REVIEW = "under_review"
    SUBMITTED = "submitted"


class ReviewSession:
    """
    Human review of one extracted answer sheet.

    Extracted -> UnderReview (any number of edits) -> Submitted. A submitted
    session cannot be edited or submitted again.
    """

    def __init__(self, extracted, layout, answer_key, original_image=None):
        self.layout = layout
        self.answer_key = dict(answer_key)
        self.original_image = original_image
        self.extracted = extracted.copy()
        self.reviewed = extracted.copy()
        self.state = ReviewState.EXTRACTED
        self.final_result = None
        self.attempt = None

    def _begin_edit(self):
        if self.state == ReviewState.SUBMITTED:
            raise ReviewClosedError("This answer sheet has already been submitted")
        self.state = ReviewState.UNDER_REVIEW

    @property
    def result(self):
        """Live score of the reviewed answers; frozen once submitted."""
        if self.final_result is not None:
            return self.final_result
        result = score_answers(self.reviewed, self.answer_key)
        logger.info("Auto score: %d/%d", result.correct, result.total)
        return result

    def override_answer(self, question_id, choice_index):
        self._begin_edit()
        self.reviewed = apply_override(self.reviewed, question_id, choice_index)
        logger.info("%s set to %s by reviewer", question_id, chr(ord('A') + choice_index))
        return self.result

    def set_short_answer(self, question_id, text):
        self._begin_edit()
        self.reviewed.short_answers[question_id] = text

    def set_student_info(self, name=None, student_id=None):
        self._begin_edit()
        if name is not None:
            self.reviewed.student_info.name = name
        if student_id is not None:
            self.reviewed.student_info.student_id = student_id

    def submit(self, store):
        """
        Validates identity, freezes the score and writes one attempt record.

        On a validation error nothing is written and the session stays
        under review.
        """
        self._begin_edit()
        validate_identity(self.reviewed.student_info)

        result = score_answers(self.reviewed, self.answer_key)
        record = build_attempt_record(
            self.layout, self.extracted, self.reviewed, result, self.original_image)
        attempt_id = store.save(record)

        self.final_result = result
        self.attempt = PersistedAttempt(attempt_id=attempt_id, record={'id': attempt_id, **record}, result=result)
        self.state = ReviewState.SUBMITTED
        logger.info("Grading complete: %s saved (%d/%d)", attempt_id, result.correct, result.total)
        return self.attempt
