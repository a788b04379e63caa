# autosave/session.py
from __future__ import annotations

import logging
from typing import Any, Dict

from assessments.checksum import answers_checksum

from .errors import QueueNotDrained
from .queue import AutosaveQueue
from .store import FallbackStore
from .transport import HttpAnswerTransport

logger = logging.getLogger(__name__)


class ExamSessionClient:
    """
    One student working on one exam.

    Owns the autosave queue for the exam, so two sessions never share
    queued answers. ``submit`` drains the queue first, then posts every
    answer together with its checksum.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        exam_id: int,
        *,
        fallback_dir=None,
        transport=None,
        min_interval: float = 2.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        timeout_seconds: float = 10.0,
        background: bool = False,
        **queue_options,
    ):
        self.exam_id = exam_id
        self._transport = transport or HttpAnswerTransport(
            base_url, access_token, timeout_seconds=timeout_seconds,
        )
        store = FallbackStore(fallback_dir) if fallback_dir else None
        self.queue = AutosaveQueue(
            exam_id,
            self._transport,
            store,
            min_interval=min_interval,
            max_retries=max_retries,
            base_delay=base_delay,
            **queue_options,
        )
        if background:
            self.queue.start()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def answer(self, question_id: int, value: Any) -> None:
        self.queue.enqueue(question_id, value)

    def recover(self) -> int:
        return self.queue.recover()

    def time_remaining(self) -> Dict[str, Any]:
        return self._transport.time_remaining(self.exam_id)

    def submit(self, timeout: float = 120.0) -> Dict[str, Any]:
        if not self.queue.drain(timeout):
            raise QueueNotDrained([i.question_id for i in self.queue.pending_items()])

        failed = self.queue.failed_items()
        if failed:
            # their latest values still travel in the submit body
            logger.warning(
                "SUBMIT_WITH_FAILED_SAVES exam_id=%s question_ids=%s",
                self.exam_id, [i.question_id for i in failed],
            )

        answers = self.queue.all_answers()
        result = self._transport.submit(self.exam_id, answers, answers_checksum(answers))
        logger.info("SUBMITTED exam_id=%s score=%s status=%s", self.exam_id, result.get("score"), result.get("status"))
        self.queue.clear()
        return result

    def close(self) -> None:
        self.queue.stop()
        self._transport.close()
