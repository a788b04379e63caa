# exam_platform/exams/services.py
from __future__ import annotations

import logging
from typing import List, Sequence

from django.db import transaction
from django.db.models import Max
from django.utils.html import strip_tags
from rest_framework.exceptions import ValidationError

from cores.models import AuditLog

from .models import Exam, Question
from .question_types import PayloadError

logger = logging.getLogger(__name__)


def next_order_index(exam: Exam) -> int:
    last = exam.questions.aggregate(last=Max("order_index"))["last"]
    return (last or 0) + 1


@transaction.atomic
def renumber_questions(exam: Exam) -> None:
    """Close gaps so order_index runs 1..n in the current order."""
    for idx, question in enumerate(exam.questions.order_by("order_index", "id"), start=1):
        if question.order_index != idx:
            question.order_index = idx
            question.save(update_fields=["order_index"])


@transaction.atomic
def reorder_questions(exam: Exam, question_ids: Sequence[int]) -> List[Question]:
    questions = {q.id: q for q in exam.questions.select_for_update()}
    requested = [int(qid) for qid in question_ids]
    if len(requested) != len(set(requested)) or set(requested) != set(questions):
        raise ValidationError({"question_ids": "must list every question of the exam exactly once"})

    for idx, qid in enumerate(requested, start=1):
        question = questions[qid]
        if question.order_index != idx:
            question.order_index = idx
            question.save(update_fields=["order_index"])
    return [questions[qid] for qid in requested]


def publish_problems(exam: Exam) -> List[str]:
    problems = []
    questions = list(exam.questions.all())
    if not questions:
        problems.append("exam has no questions")
    if exam.ends_at <= exam.starts_at:
        problems.append("exam must end after it starts")
    for question in questions:
        label = f"question {question.order_index}"
        if not strip_tags(question.text or "").strip():
            problems.append(f"{label}: prompt text is empty")
        try:
            question.typed_payload
        except PayloadError as exc:
            problems.append(f"{label}: {exc}")
    return problems


@transaction.atomic
def publish_exam(exam: Exam, actor=None) -> Exam:
    problems = publish_problems(exam)
    if problems:
        raise ValidationError({"detail": "exam cannot be published", "problems": problems})

    renumber_questions(exam)
    exam.is_published = True
    exam.save(update_fields=["is_published"])

    AuditLog.objects.create(
        actor=actor,
        action=AuditLog.Action.PUBLISH,
        target_model="Exam",
        target_object_id=str(exam.id),
        details=f"Published exam '{exam.title}' with {exam.questions.count()} questions",
    )
    logger.info("EXAM_PUBLISHED exam_id=%s", exam.id)
    return exam
