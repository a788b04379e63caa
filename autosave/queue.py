# autosave/queue.py
"""
Client-side answer queue for one exam-taking session.

Every answer change is enqueued under its question id; the queue sends the
latest value to the server, at most once per ``min_interval`` per question.
A change made while the previous value is still in flight is held back and
sent right after (last value wins). Transient failures are retried with
exponential backoff (``base_delay * 2 ** (attempt - 1)``); after
``max_retries`` attempts, or on a terminal rejection, the answer goes to the
fallback store and its status becomes ``FAILED``.

``process()`` is one non-blocking pass, so the queue can be pumped by the
background worker (``start``/``stop``), by ``drain`` before submit, or by a
test with a fake clock.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import SaveRejected, TransientSaveError

logger = logging.getLogger(__name__)

LOG_SAVED = "AUTOSAVE_SAVED exam_id=%s question_id=%s attempt=%s"
LOG_RETRY = "AUTOSAVE_RETRY exam_id=%s question_id=%s attempt=%s/%s delay=%.1fs err=%s"
LOG_FAILED = "AUTOSAVE_FAILED exam_id=%s question_id=%s attempts=%s err=%s"
LOG_DRAIN_TIMEOUT = "AUTOSAVE_DRAIN_TIMEOUT exam_id=%s pending=%s"
LOG_RECOVERED = "AUTOSAVE_RECOVERED exam_id=%s count=%s"

UNSET = object()


class SaveStatus(enum.Enum):
    QUEUED = "queued"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"


@dataclass
class QueuedAnswer:
    question_id: int
    answer: Any
    status: SaveStatus = SaveStatus.QUEUED
    attempts: int = 0
    next_attempt_at: float = 0.0
    error: Optional[str] = None
    # newer value entered while this one was being sent
    pending_answer: Any = UNSET


class AutosaveQueue:
    def __init__(
        self,
        exam_id: int,
        transport,
        fallback_store=None,
        *,
        min_interval: float = 2.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        poll_interval: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.exam_id = exam_id
        self._transport = transport
        self._store = fallback_store
        self._min_interval = max(0.0, float(min_interval))
        self._max_retries = max(1, int(max_retries))
        self._base_delay = max(0.0, float(base_delay))
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

        self._lock = threading.Lock()
        self._items: Dict[int, QueuedAnswer] = {}
        self._answers: Dict[int, Any] = {}
        self._last_sent: Dict[int, float] = {}

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --------------------------------------------------
    # Producer side
    # --------------------------------------------------

    def enqueue(self, question_id: int, answer: Any) -> None:
        question_id = int(question_id)
        with self._lock:
            self._answers[question_id] = answer
            item = self._items.get(question_id)
            if item is not None and item.status == SaveStatus.SAVING:
                item.pending_answer = answer
                return
            if item is not None and item.status == SaveStatus.QUEUED:
                # keep the backoff of a retrying item, just swap the value
                item.answer = answer
                return
            self._items[question_id] = QueuedAnswer(
                question_id=question_id,
                answer=answer,
                next_attempt_at=self._earliest_send(question_id),
            )

    def _earliest_send(self, question_id: int) -> float:
        last = self._last_sent.get(question_id)
        if last is None:
            return self._clock()
        return max(self._clock(), last + self._min_interval)

    # --------------------------------------------------
    # Consumer side
    # --------------------------------------------------

    def process(self) -> int:
        """Send every item that is due. Returns the number of send attempts."""
        with self._lock:
            now = self._clock()
            due = [
                item for item in self._items.values()
                if item.status == SaveStatus.QUEUED and item.next_attempt_at <= now
            ]
            for item in due:
                item.status = SaveStatus.SAVING
                item.attempts += 1

        for item in due:
            self._send(item)
        return len(due)

    def _send(self, item: QueuedAnswer) -> None:
        try:
            self._transport.save_answer(self.exam_id, item.question_id, item.answer)
        except TransientSaveError as e:
            self._on_transient(item, e)
        except SaveRejected as e:
            self._on_failed(item, e)
        else:
            self._on_saved(item)

    def _on_saved(self, item: QueuedAnswer) -> None:
        logger.debug(LOG_SAVED, self.exam_id, item.question_id, item.attempts)
        with self._lock:
            now = self._clock()
            self._last_sent[item.question_id] = now
            item.error = None
            if item.pending_answer is not UNSET:
                item.answer, item.pending_answer = item.pending_answer, UNSET
                item.status = SaveStatus.QUEUED
                item.attempts = 0
                item.next_attempt_at = now + self._min_interval
            else:
                item.status = SaveStatus.SAVED
        if self._store is not None:
            self._store.discard(self.exam_id, item.question_id)

    def _on_transient(self, item: QueuedAnswer, error: Exception) -> None:
        with self._lock:
            item.error = str(error)
            if item.pending_answer is not UNSET:
                # a newer value gets its own fresh attempts
                item.answer, item.pending_answer = item.pending_answer, UNSET
                item.status = SaveStatus.QUEUED
                item.attempts = 0
                item.next_attempt_at = self._clock()
                return
            if item.attempts >= self._max_retries:
                exhausted = True
            else:
                exhausted = False
                delay = self._base_delay * (2 ** (item.attempts - 1))
                item.status = SaveStatus.QUEUED
                item.next_attempt_at = self._clock() + delay
        if exhausted:
            self._on_failed(item, error)
        else:
            logger.warning(
                LOG_RETRY, self.exam_id, item.question_id, item.attempts, self._max_retries, delay, error,
            )

    def _on_failed(self, item: QueuedAnswer, error: Exception) -> None:
        logger.error(LOG_FAILED, self.exam_id, item.question_id, item.attempts, error)
        with self._lock:
            item.error = str(error)
            if item.pending_answer is not UNSET:
                # a newer value gets its own fresh attempts
                item.answer, item.pending_answer = item.pending_answer, UNSET
                item.status = SaveStatus.QUEUED
                item.attempts = 0
                item.next_attempt_at = self._clock()
                return
            item.status = SaveStatus.FAILED
            answer = item.answer
        if self._store is not None:
            self._store.put(self.exam_id, item.question_id, answer, error=str(error))

    # --------------------------------------------------
    # Waiting
    # --------------------------------------------------

    def has_pending(self) -> bool:
        with self._lock:
            return any(i.status in (SaveStatus.QUEUED, SaveStatus.SAVING) for i in self._items.values())

    def drain(self, timeout: float = 120.0) -> bool:
        """
        Pump the queue until nothing is queued or in flight. Returns False on
        timeout. Failed items do not block: they are reported by ``failed_items``.
        """
        deadline = self._clock() + timeout
        while True:
            self.process()
            if not self.has_pending():
                return True
            now = self._clock()
            if now >= deadline:
                logger.error(LOG_DRAIN_TIMEOUT, self.exam_id, [i.question_id for i in self.pending_items()])
                return False
            self._sleep(min(self._wait_hint(now), deadline - now))

    def _wait_hint(self, now: float) -> float:
        with self._lock:
            due = [
                i.next_attempt_at for i in self._items.values() if i.status == SaveStatus.QUEUED
            ]
        if not due:
            return self._poll_interval
        return max(min(due) - now, 0.01)

    # --------------------------------------------------
    # Background worker
    # --------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"autosave-exam-{self.exam_id}",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self._poll_interval):
            self.process()

    # --------------------------------------------------
    # Inspection and recovery
    # --------------------------------------------------

    def status(self, question_id: int) -> Optional[SaveStatus]:
        with self._lock:
            item = self._items.get(int(question_id))
            return item.status if item else None

    def pending_items(self) -> List[QueuedAnswer]:
        with self._lock:
            return [i for i in self._items.values() if i.status in (SaveStatus.QUEUED, SaveStatus.SAVING)]

    def failed_items(self) -> List[QueuedAnswer]:
        with self._lock:
            return [i for i in self._items.values() if i.status == SaveStatus.FAILED]

    def counts(self) -> Dict[str, int]:
        with self._lock:
            counts = {s.value: 0 for s in SaveStatus}
            for item in self._items.values():
                counts[item.status.value] += 1
            counts["total"] = len(self._items)
            return counts

    def all_answers(self) -> Dict[str, Any]:
        """Latest value of every answered question, keyed by str id for the submit body."""
        with self._lock:
            return {str(qid): answer for qid, answer in self._answers.items()}

    def retry_failed(self) -> int:
        with self._lock:
            failed = [i for i in self._items.values() if i.status == SaveStatus.FAILED]
            now = self._clock()
            for item in failed:
                item.status = SaveStatus.QUEUED
                item.attempts = 0
                item.next_attempt_at = now
        return len(failed)

    def recover(self) -> int:
        """Re-enqueue answers a previous session left in the fallback store."""
        if self._store is None:
            return 0
        recovered = 0
        for raw_qid, entry in self._store.load(self.exam_id).items():
            question_id = int(raw_qid)
            with self._lock:
                # a value entered in this session is newer
                known = question_id in self._answers
            if known:
                continue
            self.enqueue(question_id, entry.get("answer"))
            recovered += 1
        logger.info(LOG_RECOVERED, self.exam_id, recovered)
        return recovered

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._answers.clear()
            self._last_sent.clear()
        if self._store is not None:
            self._store.clear(self.exam_id)
