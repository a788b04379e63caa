from django.db import models


class SubmissionStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    # submitted, essay grading outstanding
    PENDING = "pending", "Pending grading"
    COMPLETED = "completed", "Completed"
