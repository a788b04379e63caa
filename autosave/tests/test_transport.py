import json
import unittest

import requests

from autosave.errors import SaveRejected, TransientSaveError
from autosave.transport import HttpAnswerTransport


class FakeResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self.content = json.dumps(body).encode() if body is not None else b""
        self._body = body

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


class HttpAnswerTransportTestCase(unittest.TestCase):
    def make(self, **session_kwargs):
        self.session = FakeSession(**session_kwargs)
        return HttpAnswerTransport(
            "https://exams.example/api/", "token-123", timeout_seconds=5, session=self.session
        )

    def test_save_answer_posts_json_with_bearer_token(self):
        transport = self.make(response=FakeResponse(200, {"question_id": 3, "saved_at": "now"}))
        data = transport.save_answer(9, 3, "b")
        self.assertEqual(data["question_id"], 3)
        method, url, kwargs = self.session.calls[0]
        self.assertEqual(method, "POST")
        self.assertEqual(url, "https://exams.example/api/exams/9/answers/")
        self.assertEqual(kwargs["json"], {"question_id": 3, "answer": "b"})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer token-123")
        self.assertEqual(kwargs["timeout"], 5.0)

    def test_engine_errors_are_rejections(self):
        body = {"error": "window-closed", "message": "The exam time is over.", "context": {"exam_id": 9}}
        transport = self.make(response=FakeResponse(403, body))
        with self.assertRaises(SaveRejected) as ctx:
            transport.save_answer(9, 3, "b")
        self.assertEqual(ctx.exception.error_code, "window-closed")
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.context, {"exam_id": 9})

    def test_rate_limit_and_server_errors_are_transient(self):
        for code in (429, 500, 503):
            transport = self.make(response=FakeResponse(code, {"error": "rate-limited"}))
            with self.assertRaises(TransientSaveError) as ctx:
                transport.save_answer(9, 3, "b")
            self.assertEqual(ctx.exception.status_code, code)

    def test_network_errors_are_transient(self):
        for error in (requests.exceptions.Timeout(), requests.exceptions.ConnectionError("refused")):
            transport = self.make(error=error)
            with self.assertRaises(TransientSaveError):
                transport.save_answer(9, 3, "b")

    def test_submit_sends_checksum(self):
        transport = self.make(response=FakeResponse(201, {"score": 10}))
        transport.submit(9, {"3": "b"}, "abc")
        _, url, kwargs = self.session.calls[0]
        self.assertEqual(url, "https://exams.example/api/exams/9/submit/")
        self.assertEqual(kwargs["json"], {"answers": {"3": "b"}, "checksum": "abc"})

    def test_requires_base_url_and_token(self):
        with self.assertRaises(ValueError):
            HttpAnswerTransport("", "token")
        with self.assertRaises(ValueError):
            HttpAnswerTransport("https://exams.example/api", "")
