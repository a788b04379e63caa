# exam_platform/exams/models.py
from django.conf import settings
from django.db import models
from django.utils.functional import cached_property

from .question_types import QuestionType, is_manual, parse_payload


class Exam(models.Model):
    class WindowState(models.TextChoices):
        NOT_STARTED = "not_started", "Not started"
        OPEN = "open", "Open"
        ENDED = "ended", "Ended"

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='exams'
    )

    # The exam is open for answers inside [starts_at, ends_at], by server time.
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()

    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def window_state(self, now):
        if now < self.starts_at:
            return self.WindowState.NOT_STARTED
        if now > self.ends_at:
            return self.WindowState.ENDED
        return self.WindowState.OPEN

    def seconds_remaining(self, now):
        return max(0, int((self.ends_at - now).total_seconds()))


class Question(models.Model):
    QuestionType = QuestionType

    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.CASCADE)

    question_type = models.CharField(max_length=20, choices=QuestionType.choices, default=QuestionType.MULTIPLE_CHOICE)
    # Dense, 1-based position inside the exam
    order_index = models.PositiveIntegerField(default=1)

    # Rich text prompt; frontend sends 'question_text'
    text = models.TextField(blank=True)
    points = models.PositiveIntegerField(default=1)

    # Stimulus + answer key, shape depends on question_type (see question_types.py)
    payload = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['order_index', 'id']

    def __str__(self):
        return f"Q{self.order_index} {self.text[:50]}"

    @cached_property
    def typed_payload(self):
        """Typed payload for this question; raises PayloadError when the JSON is malformed."""
        return parse_payload(self.question_type, self.payload)

    @property
    def is_manual(self):
        return is_manual(self.question_type)
