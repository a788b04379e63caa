# exam_platform/exams/sanitizer.py
"""
Two views of a question.

``sanitize_for_student`` is what leaves the system while an attempt is in
progress: stimulus only, every answer-key field dropped. ``question_for_review``
is the teacher / post-submission view and carries the full payload.
"""


def _base(question):
    return {
        "id": question.id,
        "question_type": question.question_type,
        "order_index": question.order_index,
        "question_text": question.text,
        "points": question.points,
    }


def sanitize_for_student(question):
    data = _base(question)
    data["payload"] = question.typed_payload.public_dict()
    return data


def question_for_review(question):
    data = _base(question)
    data["payload"] = question.typed_payload.to_dict()
    return data
