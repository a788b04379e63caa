"""Client-side autosave for exam sessions."""
from .errors import AutosaveError, QueueNotDrained, SaveRejected, TransientSaveError
from .queue import AutosaveQueue, QueuedAnswer, SaveStatus
from .session import ExamSessionClient
from .store import FallbackStore
from .transport import HttpAnswerTransport
