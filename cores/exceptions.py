# cores/exceptions.py
from rest_framework.views import exception_handler

from assessments.exceptions import ExamEngineError


def engine_exception_handler(exc, context):
    """
    Engine errors render as ``{"error": code, "message": text, "context": {...}}``.
    Everything else keeps DRF's default body.
    """
    response = exception_handler(exc, context)
    if response is not None and isinstance(exc, ExamEngineError):
        response.data = {
            "error": exc.error_code,
            "message": exc.message,
            "context": exc.context,
        }
    return response
