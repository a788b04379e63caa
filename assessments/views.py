from django.shortcuts import get_object_or_404
from rest_framework import generics, status, views
from rest_framework.response import Response

from exams.models import Exam

from .models import ExamSubmission
from .permissions import IsStudent, IsTeacherOrAdmin
from .serializers import (
    ExamSubmissionDetailSerializer, ExamSubmissionSerializer,
    GradeEssaySerializer, SaveAnswerSerializer, SaveAnswersBatchSerializer, SubmitExamSerializer,
    validate_request,
)
from .services import SubmissionService


def managed_exams(user):
    """Exams the user may grade: all for staff, own exams for teachers."""
    queryset = Exam.objects.all()
    if not user.is_staff:
        queryset = queryset.filter(created_by=user)
    return queryset


# --- STUDENT VIEWS ---

class ExamAccessView(views.APIView):
    """Whether the exam can be taken now, with a human-readable reason."""
    permission_classes = [IsStudent]

    def get(self, request, exam_id):
        return Response(SubmissionService().access_status(exam_id, request.user))


class StudentExamQuestionsView(views.APIView):
    """
    Questions of an open exam, answer keys removed.
    Includes the answers saved so far so a reopened tab can resume.
    """
    permission_classes = [IsStudent]

    def get(self, request, exam_id):
        return Response(SubmissionService().questions_for_student(exam_id, request.user))


class TimeRemainingView(views.APIView):
    permission_classes = [IsStudent]

    def get(self, request, exam_id):
        return Response(SubmissionService().time_remaining(exam_id, request.user))


class SaveAnswerView(views.APIView):
    """
    POST: autosave of a single answer.
    Payload: { "question_id": 12, "answer": "b" }

    PUT: several answers at once, all or nothing.
    Payload: { "answers": [{"question_id": 12, "answer": "b"}, ...] }
    """
    permission_classes = [IsStudent]

    def post(self, request, exam_id):
        data = validate_request(SaveAnswerSerializer, request.data)
        result = SubmissionService().save_answer(exam_id, request.user, data['question_id'], data['answer'])
        # grading stays hidden until the exam is submitted
        return Response({"question_id": result["question_id"], "saved_at": result["saved_at"]})

    def put(self, request, exam_id):
        data = validate_request(SaveAnswersBatchSerializer, request.data)
        return Response(SubmissionService().save_answers(exam_id, request.user, data['answers']))


class SubmitExamView(views.APIView):
    """
    Student submits the exam.
    Payload: { "answers": {"12": "b", "13": true}, "checksum": "<sha256>" }
    """
    permission_classes = [IsStudent]

    def post(self, request, exam_id):
        data = validate_request(SubmitExamSerializer, request.data)
        result = SubmissionService().submit(exam_id, request.user, data['answers'], data['checksum'] or None)
        return Response(result, status=status.HTTP_201_CREATED)


class SubmissionReviewView(views.APIView):
    """Result page after submission: questions with keys, answers and grading."""
    permission_classes = [IsStudent]

    def get(self, request, exam_id):
        return Response(SubmissionService().review(exam_id, request.user))


# --- TEACHER VIEWS ---

class ExamSubmissionsListView(generics.ListAPIView):
    """Submissions of one exam. ?status=pending gives the grading queue."""
    permission_classes = [IsTeacherOrAdmin]
    serializer_class = ExamSubmissionSerializer

    def get_queryset(self):
        exam = get_object_or_404(managed_exams(self.request.user), pk=self.kwargs['exam_id'])
        queryset = ExamSubmission.objects.filter(exam=exam).select_related('exam', 'student').order_by('-submitted_at', '-started_at')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset


class SubmissionDetailView(generics.RetrieveAPIView):
    permission_classes = [IsTeacherOrAdmin]
    serializer_class = ExamSubmissionDetailSerializer

    def get_queryset(self):
        return ExamSubmission.objects.filter(exam__in=managed_exams(self.request.user)).select_related('exam', 'student')


class GradeEssayAnswerView(views.APIView):
    """
    Teacher grades one essay answer.
    Payload: { "question_id": 14, "points": 30, "feedback": "Good structure" }
    """
    permission_classes = [IsTeacherOrAdmin]

    def post(self, request, submission_id):
        submission = get_object_or_404(
            ExamSubmission.objects.filter(exam__in=managed_exams(request.user)), pk=submission_id
        )
        data = validate_request(GradeEssaySerializer, request.data)
        result = SubmissionService().grade_essay_answer(
            submission.id, data['question_id'], data['points'], data['feedback'], grader=request.user,
        )
        return Response(result)


class RecalculateExamView(views.APIView):
    """Re-score every submitted attempt of the exam from the stored answers."""
    permission_classes = [IsTeacherOrAdmin]

    def post(self, request, exam_id):
        exam = get_object_or_404(managed_exams(request.user), pk=exam_id)
        updated = SubmissionService().recalculate_exam(exam.id, actor=request.user)
        return Response({"exam_id": exam.id, "updated_count": updated})
