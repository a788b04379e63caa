# autosave/errors.py


class AutosaveError(Exception):
    """Base class for client-side exam session errors."""


class TransientSaveError(AutosaveError):
    """Network failure, 5xx or 429: worth retrying."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class SaveRejected(AutosaveError):
    """
    The server refused the request for good (window closed, already
    submitted, malformed answer). Retrying cannot help.
    """

    def __init__(self, message, status_code=None, error_code=None, context=None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.context = context or {}


class QueueNotDrained(AutosaveError):
    """Answers were still unsaved when the drain timeout ran out."""

    def __init__(self, pending_question_ids):
        super().__init__(f"answers still unsaved for questions {sorted(pending_question_ids)}")
        self.pending_question_ids = list(pending_question_ids)
