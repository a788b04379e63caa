from django.urls import path
from .views import (
    ExamAccessView, StudentExamQuestionsView, TimeRemainingView, SaveAnswerView,
    SubmitExamView, SubmissionReviewView, ExamSubmissionsListView, SubmissionDetailView,
    GradeEssayAnswerView, RecalculateExamView,
)

urlpatterns = [
    # --- Student Exam Flow ---
    path('exams/<int:exam_id>/access/', ExamAccessView.as_view(), name='exam-access'),
    path('exams/<int:exam_id>/take/', StudentExamQuestionsView.as_view(), name='exam-take'),
    path('exams/<int:exam_id>/time-remaining/', TimeRemainingView.as_view(), name='exam-time-remaining'),
    path('exams/<int:exam_id>/answers/', SaveAnswerView.as_view(), name='exam-save-answer'),
    path('exams/<int:exam_id>/submit/', SubmitExamView.as_view(), name='exam-submit'),
    path('exams/<int:exam_id>/result/', SubmissionReviewView.as_view(), name='exam-result'),

    # --- Grading Module (Teacher) ---
    path('exams/<int:exam_id>/submissions/', ExamSubmissionsListView.as_view(), name='exam-submissions'),
    path('exams/<int:exam_id>/recalculate/', RecalculateExamView.as_view(), name='exam-recalculate'),
    path('submissions/<int:pk>/', SubmissionDetailView.as_view(), name='submission-detail'),
    path('submissions/<int:submission_id>/grade/', GradeEssayAnswerView.as_view(), name='submission-grade'),
]
