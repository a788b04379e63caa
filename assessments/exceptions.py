# assessments/exceptions.py
"""
Engine errors.

Every failure of the submission engine is an ``ExamEngineError`` carrying a
stable ``error_code`` and a context dict. They are DRF ``APIException``
subclasses, so views let them propagate and
``cores.exceptions.engine_exception_handler`` renders them.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class ExamEngineError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "engine-error"
    default_detail = "The exam engine rejected the request."

    def __init__(self, message=None, **context):
        super().__init__(detail=message or self.default_detail, code=self.error_code)
        self.message = str(self.detail)
        self.context = context

    def __str__(self):
        return f"{self.error_code}: {self.message}"


# --- Window ---

class NotStarted(ExamEngineError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "not-started"
    default_detail = "The exam has not started yet."


class WindowClosed(ExamEngineError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "window-closed"
    default_detail = "The exam time is over."


# --- Finality ---

class AlreadyFinalized(ExamEngineError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "already-finalized"
    default_detail = "The exam has already been submitted."


class SubmissionNotFinalized(ExamEngineError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "not-finalized"
    default_detail = "The exam has not been submitted yet."


# --- Validation ---

class InvalidGradeValue(ExamEngineError):
    error_code = "invalid-grade-value"
    default_detail = "Grade is outside the points range of the question."


class MalformedPayload(ExamEngineError):
    error_code = "malformed-payload"
    default_detail = "The answer does not fit the question type."


class ChecksumMismatch(ExamEngineError):
    error_code = "checksum-mismatch"
    default_detail = "The answers checksum does not match the submitted answers."


class NotManuallyGradable(ExamEngineError):
    error_code = "not-gradable"
    default_detail = "Only essay answers are graded by hand."


# --- Lookup ---

class NotFound(ExamEngineError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not-found"
    default_detail = "Not found."


class ExamNotFound(NotFound):
    default_detail = "Exam not found."


class SubmissionNotFound(NotFound):
    default_detail = "Submission not found."


class AnswerNotFound(NotFound):
    default_detail = "Answer not found."


class UnknownQuestion(ExamEngineError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "unknown-question"
    default_detail = "The question does not belong to this exam."


# --- Throttle ---

class RateLimited(ExamEngineError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "rate-limited"
    default_detail = "Answer saved too often, try again shortly."
