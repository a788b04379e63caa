from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication & Profile ---
    path('api/', include('users.urls')),

    # --- Student Exam Flow & Grading ---
    path('api/', include('assessments.urls')),

    # --- Audit Logs ---
    path('api/', include('cores.urls')),

    # --- Standard API Routes (exam & question authoring) ---
    path('api/', include('exams.urls')),
]
