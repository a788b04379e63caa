"""Builders shared by the exam and assessment test suites."""
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from exams.models import Exam, Question

User = get_user_model()

MC_PAYLOAD = {
    "options": [{"id": "a", "text": "3"}, {"id": "b", "text": "4"}, {"id": "c", "text": "5"}],
    "correct_option_id": "b",
}
TF_PAYLOAD = {"correct_value": True}
SHORT_PAYLOAD = {"accepted_answers": ["Jakarta", "DKI Jakarta"], "case_sensitive": False}
MATCHING_PAYLOAD = {
    "left_items": [{"id": "l1", "text": "H2O"}, {"id": "l2", "text": "NaCl"},
                   {"id": "l3", "text": "CO2"}, {"id": "l4", "text": "O2"}],
    "right_items": [{"id": "r1", "text": "Water"}, {"id": "r2", "text": "Salt"},
                    {"id": "r3", "text": "Carbon dioxide"}, {"id": "r4", "text": "Oxygen"}],
    "correct_pairs": {"l1": "r1", "l2": "r2", "l3": "r3", "l4": "r4"},
}
ESSAY_PAYLOAD = {"min_words": 10, "max_words": 200, "reference_answer": "Photosynthesis turns light into sugar."}

PAYLOADS = {
    Question.QuestionType.MULTIPLE_CHOICE: MC_PAYLOAD,
    Question.QuestionType.TRUE_FALSE: TF_PAYLOAD,
    Question.QuestionType.SHORT_ANSWER: SHORT_PAYLOAD,
    Question.QuestionType.MATCHING: MATCHING_PAYLOAD,
    Question.QuestionType.ESSAY: ESSAY_PAYLOAD,
}


def make_user(email, role=User.Role.STUDENT, **extra):
    return User.objects.create_user(
        username=email.split("@")[0], email=email, password="testpass123", role=role, **extra
    )


def make_exam(teacher, starts_at=None, ends_at=None, published=True, title="Chemistry Midterm"):
    now = timezone.now()
    return Exam.objects.create(
        title=title,
        created_by=teacher,
        starts_at=starts_at or now - timedelta(hours=1),
        ends_at=ends_at or now + timedelta(hours=1),
        is_published=published,
    )


def add_question(exam, question_type=Question.QuestionType.MULTIPLE_CHOICE, points=10, payload=None, text=None):
    order_index = exam.questions.count() + 1
    return Question.objects.create(
        exam=exam,
        question_type=question_type,
        order_index=order_index,
        text=text if text is not None else f"Question {order_index}",
        points=points,
        payload=payload if payload is not None else PAYLOADS[question_type],
    )


def unsaved_question(question_type, payload=None, points=10, question_id=1):
    """A Question that never touches the database, for pure grading tests."""
    return Question(
        id=question_id,
        question_type=question_type,
        order_index=question_id,
        text=f"Question {question_id}",
        points=points,
        payload=payload if payload is not None else PAYLOADS[question_type],
    )
