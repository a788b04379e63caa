# assessments/services.py
"""
Submission state machine.

    draft --submit--> pending    (essays still ungraded)
    draft --submit--> completed  (no essays)
    pending --grade essay / recalculate--> completed

Every check uses the server clock. A submission with ``submitted_at`` set is
final: answer payloads never change again, only derived grading fields,
``score`` and ``status`` do.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from cores.models import AuditLog
from exams.models import Exam
from exams.question_types import PayloadError
from exams.sanitizer import question_for_review, sanitize_for_student

from . import exceptions
from .checksum import answers_checksum
from .grading import grade
from .models import ExamSubmission, StudentAnswer
from .scoring import ScoreSummary, aggregate
from .throttling import acquire_save_slot

logger = logging.getLogger(__name__)

LOG_ANSWER_SAVED = "ANSWER_SAVED exam_id=%s student_id=%s question_id=%s created=%s"
LOG_ANSWERS_SAVED = "ANSWERS_SAVED exam_id=%s student_id=%s count=%s"
LOG_SUBMIT = "SUBMIT exam_id=%s student_id=%s score=%s status=%s"
LOG_ESSAY_GRADED = "ESSAY_GRADED submission_id=%s question_id=%s points=%s score=%s status=%s"
LOG_RECALCULATE = "RECALCULATE exam_id=%s submissions=%s"
LOG_CHECKSUM_MISMATCH = "CHECKSUM_MISMATCH exam_id=%s student_id=%s"

DATETIME_FORMAT = "%d %B %Y at %H:%M"


def _format_time(value):
    return timezone.localtime(value).strftime(DATETIME_FORMAT)


class SubmissionService:
    """
    One instance per request. ``clock`` is injectable so tests can move the
    server time around the exam window.
    """

    def __init__(self, clock=timezone.now, save_interval=None, require_checksum=None):
        self.clock = clock
        self.save_interval = (
            settings.EXAM_SAVE_ANSWER_INTERVAL_SECONDS if save_interval is None else save_interval
        )
        self.require_checksum = (
            settings.EXAM_REQUIRE_SUBMIT_CHECKSUM if require_checksum is None else require_checksum
        )

    # ---------------------------------------------------------
    # Lookups and guards
    # ---------------------------------------------------------

    def _get_exam(self, exam_id) -> Exam:
        exam = Exam.objects.filter(pk=exam_id, is_published=True).first()
        if exam is None:
            raise exceptions.ExamNotFound(exam_id=exam_id)
        return exam

    def _get_question(self, exam, question_id):
        question = exam.questions.filter(pk=question_id).first()
        if question is None:
            raise exceptions.UnknownQuestion(exam_id=exam.id, question_id=question_id)
        return question

    def _locked_submission(self, exam, student, now) -> ExamSubmission:
        """Get or create the attempt and lock its row. Call inside a transaction."""
        submission, _ = ExamSubmission.objects.get_or_create(
            exam=exam, student=student, defaults={"started_at": now}
        )
        return ExamSubmission.objects.select_for_update().get(pk=submission.pk)

    def _ensure_open(self, exam, submission, now):
        """Finality first, then the time window."""
        if submission is not None and submission.is_finalized:
            raise exceptions.AlreadyFinalized(
                exam_id=exam.id, submission_id=submission.id, status=submission.status,
            )
        state = exam.window_state(now)
        if state == Exam.WindowState.NOT_STARTED:
            raise exceptions.NotStarted(
                f"The exam has not started. It opens on {_format_time(exam.starts_at)}",
                exam_id=exam.id, starts_at=exam.starts_at.isoformat(),
            )
        if state == Exam.WindowState.ENDED:
            raise exceptions.WindowClosed(
                f"The exam time is over. It ended on {_format_time(exam.ends_at)}",
                exam_id=exam.id, ends_at=exam.ends_at.isoformat(),
            )

    def _clean(self, question, payload):
        try:
            return question.typed_payload.clean_answer(payload)
        except PayloadError as exc:
            raise exceptions.MalformedPayload(
                f"Question {question.id}: {exc.message}", question_id=question.id, field=exc.field,
            )

    # ---------------------------------------------------------
    # Student: taking the exam
    # ---------------------------------------------------------

    def access_status(self, exam_id, student) -> Dict[str, Any]:
        """Whether the student may work on the exam right now, and why not."""
        now = self.clock()
        exam = self._get_exam(exam_id)
        submission = ExamSubmission.objects.filter(exam=exam, student=student).first()
        try:
            self._ensure_open(exam, submission, now)
        except exceptions.ExamEngineError as exc:
            can_start, reason, message = False, exc.error_code, exc.message
        else:
            can_start, reason, message = True, None, "The exam is open"
        return {
            "exam_id": exam.id,
            "title": exam.title,
            "can_start": can_start,
            "reason": reason,
            "access_message": message,
            "starts_at": exam.starts_at,
            "ends_at": exam.ends_at,
            "submission_status": submission.status if submission else None,
        }

    def questions_for_student(self, exam_id, student) -> Dict[str, Any]:
        """Sanitized questions plus the student's saved answers, so a reopened session resumes."""
        now = self.clock()
        exam = self._get_exam(exam_id)
        submission = ExamSubmission.objects.filter(exam=exam, student=student).first()
        self._ensure_open(exam, submission, now)

        saved = {}
        if submission is not None:
            saved = {
                str(a.question_id): a.answer_payload
                for a in submission.answers.all()
            }
        return {
            "exam_id": exam.id,
            "title": exam.title,
            "can_start": True,
            "access_message": "The exam is open",
            "time_remaining_seconds": exam.seconds_remaining(now),
            "questions": [sanitize_for_student(q) for q in exam.questions.all()],
            "saved_answers": saved,
        }

    def time_remaining(self, exam_id, student) -> Dict[str, Any]:
        now = self.clock()
        exam = self._get_exam(exam_id)
        remaining = exam.seconds_remaining(now)
        return {
            "time_remaining_seconds": remaining,
            "is_expired": remaining <= 0,
            "has_started": ExamSubmission.objects.filter(exam=exam, student=student).exists(),
            "exam_start": exam.starts_at,
            "exam_end": exam.ends_at,
        }

    def save_answer(self, exam_id, student, question_id, payload) -> Dict[str, Any]:
        """Upsert one answer and grade it when the type is auto-graded."""
        now = self.clock()
        exam = self._get_exam(exam_id)
        question = self._get_question(exam, question_id)
        cleaned = self._clean(question, payload)

        with transaction.atomic():
            submission = self._locked_submission(exam, student, now)
            self._ensure_open(exam, submission, now)

            if not acquire_save_slot(student.id, question.id, self.save_interval):
                raise exceptions.RateLimited(
                    exam_id=exam.id, student_id=student.id, question_id=question.id,
                    retry_after=self.save_interval,
                )

            answer, created = self._store_answer(submission, question, cleaned)

        logger.debug(LOG_ANSWER_SAVED, exam.id, student.id, question.id, created)
        return {
            "question_id": question.id,
            "saved_at": answer.updated_at,
            "is_correct": answer.is_correct,
            "grade_value": answer.grade_value,
        }

    def save_answers(self, exam_id, student, items) -> Dict[str, Any]:
        """
        Upsert several answers in one go. Every item is checked before
        anything is written; a later item for the same question wins.
        """
        now = self.clock()
        exam = self._get_exam(exam_id)
        if not items:
            raise exceptions.MalformedPayload("answers must be a non-empty list", exam_id=exam.id)

        cleaned = {}
        for item in items:
            question = self._get_question(exam, item["question_id"])
            cleaned[question.id] = (question, self._clean(question, item.get("answer")))

        with transaction.atomic():
            submission = self._locked_submission(exam, student, now)
            self._ensure_open(exam, submission, now)

            if not acquire_save_slot(student.id, f"batch-{exam.id}", self.save_interval):
                raise exceptions.RateLimited(
                    exam_id=exam.id, student_id=student.id, retry_after=self.save_interval,
                )

            saved_at = None
            for question, payload in cleaned.values():
                answer, _ = self._store_answer(submission, question, payload)
                saved_at = answer.updated_at

        logger.debug(LOG_ANSWERS_SAVED, exam.id, student.id, len(cleaned))
        return {
            "question_ids": list(cleaned),
            "saved_count": len(cleaned),
            "saved_at": saved_at,
        }

    def _store_answer(self, submission, question, cleaned):
        verdict = grade(question, cleaned)
        return StudentAnswer.objects.update_or_create(
            submission=submission,
            question=question,
            defaults={
                "answer_payload": cleaned,
                "is_correct": verdict.is_correct,
                "grade_value": verdict.raw_score,
            },
        )

    def submit(self, exam_id, student, answers: Optional[Dict[Any, Any]] = None,
               checksum: Optional[str] = None) -> Dict[str, Any]:
        """
        Finalize the attempt. ``answers`` overrides what was autosaved; every
        question of the exam is graded, unanswered ones as blank.
        """
        now = self.clock()
        exam = self._get_exam(exam_id)
        answers = answers or {}
        if not isinstance(answers, dict):
            raise exceptions.MalformedPayload("answers must map question ids to answers", exam_id=exam.id)

        questions = list(exam.questions.all())
        by_id = {q.id: q for q in questions}

        # Validate everything before touching the database
        submitted = {}
        for raw_qid, payload in answers.items():
            try:
                qid = int(raw_qid)
            except (TypeError, ValueError):
                raise exceptions.MalformedPayload(f"{raw_qid!r} is not a question id", exam_id=exam.id)
            if qid not in by_id:
                raise exceptions.UnknownQuestion(exam_id=exam.id, question_id=qid)
            submitted[qid] = self._clean(by_id[qid], payload)

        with transaction.atomic():
            submission = self._locked_submission(exam, student, now)
            # a repeated submit reports finality, whatever checksum it carries
            self._ensure_open(exam, submission, now)
            self._verify_checksum(exam, student, answers, checksum)

            stored = {a.question_id: a for a in submission.answers.all()}
            graded = {}
            for question in questions:
                if question.id in submitted:
                    payload = submitted[question.id]
                else:
                    previous = stored.get(question.id)
                    payload = previous.answer_payload if previous else None
                verdict = grade(question, payload)
                graded[question.id], _ = StudentAnswer.objects.update_or_create(
                    submission=submission,
                    question=question,
                    defaults={
                        "answer_payload": payload,
                        "is_correct": verdict.is_correct,
                        "grade_value": verdict.raw_score,
                    },
                )

            summary = aggregate(questions, graded)
            submission.submitted_at = now
            submission.score = summary.final_score
            submission.status = summary.status
            submission.save(update_fields=["submitted_at", "score", "status"])

            AuditLog.objects.create(
                actor=student,
                action=AuditLog.Action.SUBMIT,
                target_model="ExamSubmission",
                target_object_id=str(submission.id),
                details=f"Submitted exam '{exam.title}': score={summary.final_score} status={summary.status}",
            )

        logger.info(LOG_SUBMIT, exam.id, student.id, summary.final_score, summary.status)
        result = summary.as_dict()
        result.update(submission_id=submission.id, submitted_at=submission.submitted_at)
        return result

    def _verify_checksum(self, exam, student, answers, checksum):
        if not checksum:
            if self.require_checksum:
                raise exceptions.ChecksumMismatch(
                    "A checksum of the answers is required", exam_id=exam.id, student_id=student.id,
                )
            return
        expected = answers_checksum(answers)
        if checksum != expected:
            logger.warning(LOG_CHECKSUM_MISMATCH, exam.id, student.id)
            raise exceptions.ChecksumMismatch(
                exam_id=exam.id, student_id=student.id, expected=expected, received=checksum,
            )

    def review(self, exam_id, student) -> Dict[str, Any]:
        """Post-submission view: answer keys, the student's answers and their grading."""
        exam = self._get_exam(exam_id)
        submission = ExamSubmission.objects.filter(exam=exam, student=student).first()
        if submission is None or not submission.is_finalized:
            raise exceptions.SubmissionNotFinalized(
                exam_id=exam.id, status=submission.status if submission else None,
            )

        answers = {a.question_id: a for a in submission.answers.all()}
        items = []
        for question in exam.questions.all():
            data = question_for_review(question)
            answer = answers.get(question.id)
            data.update(
                answer=answer.answer_payload if answer else None,
                is_correct=answer.is_correct if answer else False,
                grade_value=answer.grade_value if answer else None,
                grader_comment=answer.grader_comment if answer else "",
            )
            items.append(data)
        return {
            "submission_id": submission.id,
            "exam_id": exam.id,
            "title": exam.title,
            "status": submission.status,
            "score": submission.score,
            "started_at": submission.started_at,
            "submitted_at": submission.submitted_at,
            "questions": items,
        }

    # ---------------------------------------------------------
    # Teacher: grading and recalculation
    # ---------------------------------------------------------

    def _rescore(self, submission) -> ScoreSummary:
        """Re-grade auto answers from their stored payloads and re-aggregate."""
        questions = list(submission.exam.questions.all())
        answers = {a.question_id: a for a in submission.answers.all()}

        for question in questions:
            answer = answers.get(question.id)
            if answer is None:
                continue
            if question.is_manual:
                # an auto raw score left over from before a type change is not a grade
                if answer.graded_at is None and (answer.grade_value is not None or answer.is_correct is not None):
                    answer.grade_value = None
                    answer.is_correct = None
                    answer.save(update_fields=["is_correct", "grade_value", "updated_at"])
                continue
            verdict = grade(question, answer.answer_payload)
            grade_value = Decimal(verdict.raw_score)
            if answer.is_correct != verdict.is_correct or answer.grade_value != grade_value:
                answer.is_correct = verdict.is_correct
                answer.grade_value = grade_value
                answer.save(update_fields=["is_correct", "grade_value", "updated_at"])

        summary = aggregate(questions, answers)
        if submission.score != summary.final_score or submission.status != summary.status:
            submission.score = summary.final_score
            submission.status = summary.status
            submission.save(update_fields=["score", "status"])
        return summary

    def grade_essay_answer(self, submission_id, question_id, points, feedback="", grader=None) -> Dict[str, Any]:
        now = self.clock()
        with transaction.atomic():
            submission = (
                ExamSubmission.objects.select_for_update()
                .select_related("exam")
                .filter(pk=submission_id)
                .first()
            )
            if submission is None:
                raise exceptions.SubmissionNotFound(submission_id=submission_id)
            if not submission.is_finalized:
                raise exceptions.SubmissionNotFinalized(
                    "Essays are graded after the exam is submitted",
                    submission_id=submission.id, status=submission.status,
                )

            answer = (
                StudentAnswer.objects.select_related("question")
                .filter(submission=submission, question_id=question_id)
                .first()
            )
            if answer is None:
                raise exceptions.AnswerNotFound(submission_id=submission.id, question_id=question_id)
            question = answer.question
            if not question.is_manual:
                raise exceptions.NotManuallyGradable(
                    submission_id=submission.id, question_id=question.id,
                    question_type=question.question_type,
                )

            value = self._grade_value(points, question)
            answer.grade_value = value
            answer.grader_comment = feedback or ""
            answer.graded_at = now
            answer.save(update_fields=["grade_value", "grader_comment", "graded_at", "updated_at"])

            summary = self._rescore(submission)

            AuditLog.objects.create(
                actor=grader,
                action=AuditLog.Action.GRADE,
                target_model="StudentAnswer",
                target_object_id=str(answer.id),
                details=f"Graded question {question.id} of submission {submission.id}: {value}/{question.points}",
            )

        logger.info(LOG_ESSAY_GRADED, submission.id, question.id, value, summary.final_score, summary.status)
        result = summary.as_dict()
        result.update(submission_id=submission.id, question_id=question.id, grade_value=value)
        return result

    def _grade_value(self, points, question) -> Decimal:
        if isinstance(points, bool):
            raise exceptions.InvalidGradeValue(question_id=question.id, points=str(points))
        try:
            value = Decimal(str(points))
        except (InvalidOperation, TypeError, ValueError):
            raise exceptions.InvalidGradeValue(question_id=question.id, points=str(points))
        if not value.is_finite() or value < 0 or value > question.points:
            raise exceptions.InvalidGradeValue(
                f"Grade must be between 0 and {question.points}",
                question_id=question.id, points=str(points), max_points=question.points,
            )
        return value.quantize(Decimal("0.01"))

    def recalculate_exam(self, exam_id, actor=None) -> int:
        """Re-score every submitted attempt of the exam. Safe to run repeatedly."""
        exam = Exam.objects.filter(pk=exam_id).first()
        if exam is None:
            raise exceptions.ExamNotFound(exam_id=exam_id)

        with transaction.atomic():
            submissions = list(
                exam.submissions.select_for_update()
                .filter(submitted_at__isnull=False)
                .order_by("id")
            )
            for submission in submissions:
                self._rescore(submission)

            AuditLog.objects.create(
                actor=actor,
                action=AuditLog.Action.RECALCULATE,
                target_model="Exam",
                target_object_id=str(exam.id),
                details=f"Recalculated {len(submissions)} submissions of '{exam.title}'",
            )

        logger.info(LOG_RECALCULATE, exam.id, len(submissions))
        return len(submissions)
