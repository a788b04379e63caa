# assessments/grading.py
"""
Grader: ``grade(question, answer) -> Verdict``.

Pure and total for well-formed questions. Answers are compared leniently so a
stored payload with a slightly different shape (an int option id, a
dict with int keys) still grades instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from exams.question_types import (
    EssayPayload,
    MatchingPayload,
    MultipleChoicePayload,
    ShortAnswerPayload,
    TrueFalsePayload,
    is_blank,
)


def round_half_up(value) -> int:
    """round(2.5) == 3, unlike Python's banker's rounding."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Verdict:
    is_correct: Optional[bool]
    raw_score: Optional[int]  # 0..100, None for ungraded essays

    @property
    def is_manual(self) -> bool:
        return self.raw_score is None


WRONG = Verdict(is_correct=False, raw_score=0)
RIGHT = Verdict(is_correct=True, raw_score=100)
UNGRADED = Verdict(is_correct=None, raw_score=None)


def _binary(matched: bool) -> Verdict:
    return RIGHT if matched else WRONG


def _grade_multiple_choice(payload_spec: MultipleChoicePayload, answer: Any) -> Verdict:
    if isinstance(answer, bool):
        return WRONG
    return _binary(str(answer).strip() == payload_spec.correct_option_id)


def _grade_true_false(payload_spec: TrueFalsePayload, answer: Any) -> Verdict:
    return _binary(isinstance(answer, bool) and answer == payload_spec.correct_value)


def _grade_short_answer(payload_spec: ShortAnswerPayload, answer: Any) -> Verdict:
    if not isinstance(answer, str):
        return WRONG
    submitted = answer.strip()
    if payload_spec.case_sensitive:
        return _binary(submitted in payload_spec.accepted_answers)
    submitted = submitted.casefold()
    return _binary(any(submitted == accepted.casefold() for accepted in payload_spec.accepted_answers))


def _grade_matching(payload_spec: MatchingPayload, answer: Any) -> Verdict:
    if not isinstance(answer, dict):
        return WRONG
    submitted = {str(k): str(v) for k, v in answer.items() if v is not None}
    total = len(payload_spec.correct_pairs)
    matched = sum(1 for left, right in payload_spec.correct_pairs.items() if submitted.get(left) == right)
    return Verdict(is_correct=matched == total, raw_score=round_half_up(100 * matched / total))


GRADERS = {
    MultipleChoicePayload: _grade_multiple_choice,
    TrueFalsePayload: _grade_true_false,
    ShortAnswerPayload: _grade_short_answer,
    MatchingPayload: _grade_matching,
}


def grade(question, answer: Any) -> Verdict:
    payload_spec = question.typed_payload
    if isinstance(payload_spec, EssayPayload):
        return UNGRADED
    if is_blank(answer):
        return WRONG
    return GRADERS[type(payload_spec)](payload_spec, answer)
