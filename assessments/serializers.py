from rest_framework import serializers

from .exceptions import MalformedPayload
from .models import ExamSubmission, StudentAnswer


def validate_request(serializer_class, data):
    """Run a request serializer; shape errors become ``malformed-payload``."""
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise MalformedPayload(
            "Request body is malformed",
            fields={name: [str(e) for e in errors] for name, errors in serializer.errors.items()},
        )
    return serializer.validated_data


# --- Student requests ---

class SaveAnswerSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    # Shape depends on the question type; checked by the service
    answer = serializers.JSONField(allow_null=True, required=False, default=None)


class SaveAnswersBatchSerializer(serializers.Serializer):
    answers = SaveAnswerSerializer(many=True, allow_empty=False)


class SubmitExamSerializer(serializers.Serializer):
    answers = serializers.DictField(child=serializers.JSONField(allow_null=True), required=False, default=dict)
    checksum = serializers.CharField(required=False, allow_blank=True, default="")


# --- Teacher requests ---

class GradeEssaySerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    points = serializers.DecimalField(max_digits=6, decimal_places=2)
    feedback = serializers.CharField(required=False, allow_blank=True, default="")


# --- Responses ---

class StudentAnswerSerializer(serializers.ModelSerializer):
    question_type = serializers.CharField(source='question.question_type', read_only=True)
    order_index = serializers.IntegerField(source='question.order_index', read_only=True)
    max_points = serializers.IntegerField(source='question.points', read_only=True)

    class Meta:
        model = StudentAnswer
        fields = [
            'id', 'question', 'question_type', 'order_index', 'max_points',
            'answer_payload', 'is_correct', 'grade_value', 'grader_comment', 'graded_at', 'updated_at',
        ]
        read_only_fields = fields


class ExamSubmissionSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the teacher's submission list."""
    exam_title = serializers.CharField(source='exam.title', read_only=True)
    student_email = serializers.CharField(source='student.email', read_only=True)

    class Meta:
        model = ExamSubmission
        fields = ['id', 'exam', 'exam_title', 'student', 'student_email', 'started_at', 'submitted_at', 'status', 'score']
        read_only_fields = fields


class ExamSubmissionDetailSerializer(ExamSubmissionSerializer):
    """Heavy serializer for grading. Includes ANSWERS."""
    answers = serializers.SerializerMethodField()

    class Meta(ExamSubmissionSerializer.Meta):
        fields = ExamSubmissionSerializer.Meta.fields + ['answers']
        read_only_fields = fields

    def get_answers(self, obj):
        answers = obj.answers.select_related('question').order_by('question__order_index', 'question_id')
        return StudentAnswerSerializer(answers, many=True).data
