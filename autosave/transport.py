# autosave/transport.py
#
# HTTP client for the student exam endpoints.
#
# ENDPOINTS:
# - POST /api/exams/{id}/answers/
# - POST /api/exams/{id}/submit/
# - GET  /api/exams/{id}/time-remaining/
#
# Errors are classified, not retried here: the queue owns retries.
#   network / timeout / 5xx / 429 -> TransientSaveError
#   other 4xx                     -> SaveRejected

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .errors import SaveRejected, TransientSaveError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class HttpAnswerTransport:
    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        timeout_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        if not access_token:
            raise ValueError("access_token is required")

        self._base_url = str(base_url).rstrip("/")
        self._timeout = float(timeout_seconds or DEFAULT_TIMEOUT_SECONDS)
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.request(
                method,
                url,
                json=payload,
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout as e:
            raise TransientSaveError(f"{method} {path} timed out after {self._timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientSaveError(f"{method} {path} network error: {e}") from e
        except requests.RequestException as e:
            raise TransientSaveError(f"{method} {path} failed: {e}") from e

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientSaveError(
                f"{method} {path} returned HTTP {resp.status_code}", status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            body = data if isinstance(data, dict) else {}
            raise SaveRejected(
                body.get("message") or body.get("detail") or f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                error_code=body.get("error"),
                context=body.get("context"),
            )
        return data

    # --------------------------------------------------
    # Exam endpoints
    # --------------------------------------------------

    def save_answer(self, exam_id: int, question_id: int, answer: Any) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/exams/{int(exam_id)}/answers/",
            {"question_id": int(question_id), "answer": answer},
        )

    def submit(self, exam_id: int, answers: Dict[str, Any], checksum: Optional[str] = None) -> Dict[str, Any]:
        payload = {"answers": answers}
        if checksum:
            payload["checksum"] = checksum
        return self._request("POST", f"/exams/{int(exam_id)}/submit/", payload)

    def time_remaining(self, exam_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/exams/{int(exam_id)}/time-remaining/")
