from django.contrib import admin

# Register your models here.
from .models import Exam, Question


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0
    fields = ('order_index', 'question_type', 'text', 'points')


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'starts_at', 'ends_at', 'is_published', 'created_by')
    list_filter = ('is_published',)
    inlines = [QuestionInline]


admin.site.register(Question)
