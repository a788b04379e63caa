# autosave/store.py
"""
Local durable store for answers that could not be delivered.

One JSON file per exam, ``{question_id: {"answer": ..., "error": ..., "failed_at": ...}}``,
rewritten atomically (temp file + ``os.replace``) so a crash never leaves a
half-written file behind.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class FallbackStore:
    def __init__(self, directory):
        self._dir = Path(directory)
        self._lock = threading.Lock()

    def _path(self, exam_id) -> Path:
        return self._dir / f"failed-answers-exam-{exam_id}.json"

    def _read(self, exam_id) -> Dict[str, Dict[str, Any]]:
        path = self._path(exam_id)
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError:
            logger.error("FALLBACK_CORRUPT path=%s", path)
            raise
        return data if isinstance(data, dict) else {}

    def _write(self, exam_id, data: Dict[str, Dict[str, Any]]) -> None:
        path = self._path(exam_id)
        if not data:
            if path.exists():
                path.unlink()
            return
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self._dir), prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, sort_keys=True)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def load(self, exam_id) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return self._read(exam_id)

    def put(self, exam_id, question_id, answer, error: Optional[str] = None) -> None:
        with self._lock:
            data = self._read(exam_id)
            data[str(question_id)] = {"answer": answer, "error": error, "failed_at": time.time()}
            self._write(exam_id, data)
        logger.info("FALLBACK_STORED exam_id=%s question_id=%s", exam_id, question_id)

    def discard(self, exam_id, question_id) -> None:
        with self._lock:
            data = self._read(exam_id)
            if data.pop(str(question_id), None) is not None:
                self._write(exam_id, data)

    def clear(self, exam_id) -> None:
        with self._lock:
            self._write(exam_id, {})
