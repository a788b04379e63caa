# assessments/scoring.py
"""
Score aggregation.

Auto-graded points and hand-graded essay points are kept apart so a
submission whose essays are still ungraded reports no score at all rather
than a partial one.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional

from .grading import round_half_up
from .states import SubmissionStatus


@dataclass(frozen=True)
class ScoreSummary:
    total_points: int
    earned_auto: int
    earned_manual: Decimal
    all_manual_graded: bool
    final_score: Optional[int]
    status: str
    total_questions: int
    total_graded: int

    def as_dict(self):
        return {
            "score": self.final_score,
            "status": self.status,
            "total_points": self.total_points,
            "total_questions": self.total_questions,
            "total_graded": self.total_graded,
        }


def aggregate(questions: Iterable, answers_by_question: Dict[int, object]) -> ScoreSummary:
    """
    ``answers_by_question`` maps question id to a StudentAnswer (or anything
    with ``is_correct`` and ``grade_value``). Missing answers count as wrong
    for auto types and ungraded for essays.
    """
    total_points = 0
    earned_auto = 0
    earned_manual = Decimal("0")
    all_manual_graded = True
    total_questions = 0
    total_graded = 0

    for question in questions:
        total_questions += 1
        total_points += question.points
        answer = answers_by_question.get(question.id)
        grade_value = getattr(answer, "grade_value", None)

        if question.is_manual:
            if grade_value is None:
                all_manual_graded = False
                continue
            # the weight may have been lowered after grading
            earned_manual += min(Decimal(grade_value), Decimal(question.points))
            total_graded += 1
            continue

        total_graded += 1
        if question.question_type == question.QuestionType.MATCHING:
            raw = Decimal(grade_value or 0)
            earned_auto += round_half_up(raw / 100 * question.points)
        elif getattr(answer, "is_correct", False):
            earned_auto += question.points

    if all_manual_graded:
        final_score = round_half_up(earned_auto + earned_manual)
        status = SubmissionStatus.COMPLETED
    else:
        final_score = None
        status = SubmissionStatus.PENDING

    return ScoreSummary(
        total_points=total_points,
        earned_auto=earned_auto,
        earned_manual=earned_manual,
        all_manual_graded=all_manual_graded,
        final_score=final_score,
        status=status,
        total_questions=total_questions,
        total_graded=total_graded,
    )
