from rest_framework import permissions


class IsTeacherOrAdmin(permissions.BasePermission):
    """
    Allows access to Admins and Teachers.
    Strictly blocks Students.
    """
    def has_permission(self, request, view):
        # 1. User must be logged in
        if not request.user or not request.user.is_authenticated:
            return False

        # 2. Staff or a teacher/admin role
        return getattr(request.user, 'is_teacher', False)


class IsStudent(permissions.BasePermission):
    """Exam-taking endpoints are for students only."""
    message = "Only students can take exams."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return getattr(request.user, 'is_student', False)
