from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from assessments.permissions import IsTeacherOrAdmin

from .models import Exam, Question
from .serializers import (
    ExamSerializer, ExamDetailSerializer, QuestionSerializer, QuestionReorderSerializer,
)
from . import services


class ExamViewSet(viewsets.ModelViewSet):
    """Exam authoring for teachers. Students reach exams through the assessment endpoints."""
    permission_classes = [IsTeacherOrAdmin]

    # Enable search on title
    filter_backends = [filters.SearchFilter]
    search_fields = ['title']

    def get_queryset(self):
        queryset = Exam.objects.all().order_by('-created_at')
        if not self.request.user.is_staff:
            queryset = queryset.filter(created_by=self.request.user)
        return queryset

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ExamDetailSerializer
        return ExamSerializer

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @action(detail=True, methods=['post'], url_path='publish')
    def publish(self, request, pk=None):
        """
        Validates and publishes the exam.
        Needs at least one question, each with prompt text and a valid payload.
        """
        exam = services.publish_exam(self.get_object(), actor=request.user)
        return Response(ExamDetailSerializer(exam).data)

    @action(detail=True, methods=['post'], url_path='reorder-questions')
    def reorder_questions(self, request, pk=None):
        """
        Payload: { "question_ids": [3, 1, 2] } listing every question of the exam.
        """
        serializer = QuestionReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        questions = services.reorder_questions(self.get_object(), serializer.validated_data['question_ids'])
        return Response(QuestionSerializer(questions, many=True).data)


class QuestionViewSet(viewsets.ModelViewSet):
    serializer_class = QuestionSerializer
    permission_classes = [IsTeacherOrAdmin]

    filter_backends = [filters.SearchFilter]
    search_fields = ['text']

    def get_queryset(self):
        queryset = Question.objects.select_related('exam').order_by('exam_id', 'order_index', 'id')
        if not self.request.user.is_staff:
            queryset = queryset.filter(exam__created_by=self.request.user)
        # Filter by Exam if provided ?exam_id=1
        exam_id = self.request.query_params.get('exam_id')
        if exam_id:
            queryset = queryset.filter(exam_id=exam_id)
        return queryset

    def perform_create(self, serializer):
        exam = serializer.validated_data['exam']
        serializer.save(order_index=services.next_order_index(exam))

    def perform_destroy(self, instance):
        exam = instance.exam
        instance.delete()
        services.renumber_questions(exam)
