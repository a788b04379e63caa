# assessments/models.py
from django.db import models
from django.conf import settings
from django.utils import timezone

from exams.models import Exam, Question

from .states import SubmissionStatus


class ExamSubmission(models.Model):
    """One student's single attempt at an exam."""
    Status = SubmissionStatus

    exam = models.ForeignKey(Exam, related_name='submissions', on_delete=models.CASCADE)
    student = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='exam_submissions', on_delete=models.CASCADE)
    started_at = models.DateTimeField(default=timezone.now)
    submitted_at = models.DateTimeField(null=True, blank=True)  # set once, never cleared

    status = models.CharField(max_length=20, choices=SubmissionStatus.choices, default=SubmissionStatus.DRAFT)
    # Null while any essay is ungraded
    score = models.IntegerField(null=True, blank=True)

    class Meta:
        unique_together = ('exam', 'student')
        ordering = ['-started_at']

    def __str__(self):
        return f"{self.student} - {self.exam.title}"

    @property
    def is_finalized(self):
        return self.submitted_at is not None


class StudentAnswer(models.Model):
    submission = models.ForeignKey(ExamSubmission, related_name='answers', on_delete=models.CASCADE)
    question = models.ForeignKey(Question, related_name='answers', on_delete=models.CASCADE)

    # Shape depends on question type, see exams/question_types.py
    answer_payload = models.JSONField(null=True, blank=True)

    # Grading. Auto types: grade_value is the 0-100 raw score.
    # Essays: grade_value is the earned points, set by a teacher.
    is_correct = models.BooleanField(null=True, blank=True)
    grade_value = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    grader_comment = models.TextField(blank=True)  # Feedback from teacher
    graded_at = models.DateTimeField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('submission', 'question')

    def __str__(self):
        return f"{self.submission_id} / Q{self.question_id}"
