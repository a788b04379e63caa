import tempfile
import unittest

from assessments.checksum import answers_checksum
from autosave.errors import QueueNotDrained
from autosave.session import ExamSessionClient

from .fakes import FakeClock, FakeTransport


class ExamSessionClientTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def make(self, transport):
        return ExamSessionClient(
            "https://exams.example/api", "token", 7,
            fallback_dir=self.tmp.name,
            transport=transport,
            clock=self.clock,
            sleep=self.clock.sleep,
        )

    def test_submit_drains_then_posts_all_answers_with_checksum(self):
        transport = FakeTransport(self.clock)
        session = self.make(transport)
        session.answer(1, "b")
        session.answer(2, True)
        result = session.submit(timeout=10)

        self.assertEqual(result["status"], "completed")
        self.assertEqual(len(transport.saves), 2)
        exam_id, answers, checksum = transport.submits[0]
        self.assertEqual(exam_id, 7)
        self.assertEqual(answers, {"1": "b", "2": True})
        self.assertEqual(checksum, answers_checksum({1: "b", 2: True}))
        self.assertEqual(session.queue.counts()["total"], 0)

    def test_failed_saves_still_travel_in_the_submit_body(self):
        transport = FakeTransport(self.clock, always_fail=True)
        session = self.make(transport)
        session.answer(1, "b")
        session.submit(timeout=30)
        self.assertEqual(transport.submits[0][1], {"1": "b"})

    def test_submit_refuses_when_answers_are_still_unsaved(self):
        transport = FakeTransport(self.clock, always_fail=True)
        session = ExamSessionClient(
            "https://exams.example/api", "token", 7,
            transport=transport, max_retries=50, clock=self.clock, sleep=self.clock.sleep,
        )
        session.answer(1, "b")
        with self.assertRaises(QueueNotDrained) as ctx:
            session.submit(timeout=3)
        self.assertEqual(ctx.exception.pending_question_ids, [1])
        self.assertEqual(transport.submits, [])

    def test_close_releases_the_transport(self):
        transport = FakeTransport(self.clock)
        with self.make(transport) as session:
            self.assertEqual(session.time_remaining()["time_remaining_seconds"], 600)
        self.assertTrue(transport.closed)
