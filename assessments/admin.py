from django.contrib import admin

from .models import ExamSubmission, StudentAnswer


class StudentAnswerInline(admin.TabularInline):
    model = StudentAnswer
    extra = 0
    fields = ('question', 'answer_payload', 'is_correct', 'grade_value', 'grader_comment')
    readonly_fields = ('question', 'answer_payload', 'is_correct')


@admin.register(ExamSubmission)
class ExamSubmissionAdmin(admin.ModelAdmin):
    list_display = ('exam', 'student', 'status', 'score', 'started_at', 'submitted_at')
    list_filter = ('status', 'exam')
    inlines = [StudentAnswerInline]
