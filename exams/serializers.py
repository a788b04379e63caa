# exam_platform/exams/serializers.py
from django.utils.html import strip_tags
from rest_framework import serializers

from .models import Exam, Question
from .question_types import PayloadError, parse_payload

# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    """Teacher-side question, answer key included."""
    # Map frontend 'question_text' to backend 'text'
    question_text = serializers.CharField(source='text', allow_blank=True, required=False)

    # Read-only field to show exam title
    exam_title = serializers.CharField(source='exam.title', read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'exam', 'exam_title', 'question_type', 'order_index',
            'question_text', 'points', 'payload',
        ]
        read_only_fields = ['order_index']

    def validate_points(self, value):
        if value < 1:
            raise serializers.ValidationError("points must be a positive integer")
        return value

    def validate_exam(self, exam):
        request = self.context.get('request')
        if request and not request.user.is_staff and exam.created_by_id != request.user.id:
            raise serializers.ValidationError("You can only add questions to your own exams")
        if self.instance is not None and exam.id != self.instance.exam_id:
            raise serializers.ValidationError("A question cannot be moved to another exam")
        return exam

    def validate(self, attrs):
        question_type = attrs.get('question_type', getattr(self.instance, 'question_type', None))
        payload = attrs.get('payload', getattr(self.instance, 'payload', None))
        try:
            payload_spec = parse_payload(question_type, payload)
        except PayloadError as exc:
            raise serializers.ValidationError({'payload': str(exc)})
        # store the normalised form
        attrs['payload'] = payload_spec.to_dict()

        exam = attrs.get('exam', getattr(self.instance, 'exam', None))
        text = attrs.get('text', getattr(self.instance, 'text', ''))
        # Published exams are re-validated on every edit
        if exam is not None and exam.is_published and not strip_tags(text or '').strip():
            raise serializers.ValidationError({'question_text': "Questions of a published exam need prompt text"})
        return attrs

# --- Exam Serializers ---

class ExamSerializer(serializers.ModelSerializer):
    # Read-only counts
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)
    total_points = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'description', 'starts_at', 'ends_at',
            'is_published', 'total_questions', 'total_points', 'created_at',
        ]
        read_only_fields = ['is_published', 'created_at']

    def get_total_points(self, obj):
        return sum(q.points for q in obj.questions.all())

    def validate(self, attrs):
        starts_at = attrs.get('starts_at', getattr(self.instance, 'starts_at', None))
        ends_at = attrs.get('ends_at', getattr(self.instance, 'ends_at', None))
        if starts_at and ends_at and ends_at <= starts_at:
            raise serializers.ValidationError({'ends_at': "must be after starts_at"})
        return attrs

class ExamDetailSerializer(ExamSerializer):
    """Teacher view with the full questions"""
    questions = QuestionSerializer(many=True, read_only=True)

    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ['questions']

class QuestionReorderSerializer(serializers.Serializer):
    question_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
