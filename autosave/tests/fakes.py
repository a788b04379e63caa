"""Test doubles for the autosave client."""
from autosave.errors import TransientSaveError


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += max(seconds, 0)

    def advance(self, seconds):
        self.now += seconds


class FakeTransport:
    """
    Records every call. ``outcomes`` is consumed one entry per save: an
    exception instance is raised, anything else means success. When empty,
    saves succeed.
    """

    def __init__(self, clock=None, outcomes=None, always_fail=False):
        self.clock = clock
        self.outcomes = list(outcomes or [])
        self.always_fail = always_fail
        self.saves = []
        self.submits = []
        self.during_save = None
        self.closed = False

    def save_answer(self, exam_id, question_id, answer):
        self.saves.append((self.clock() if self.clock else None, question_id, answer))
        if self.during_save is not None:
            hook, self.during_save = self.during_save, None
            hook()
        if self.always_fail:
            raise TransientSaveError("server unavailable", status_code=503)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
        return {"question_id": question_id}

    def submit(self, exam_id, answers, checksum=None):
        self.submits.append((exam_id, answers, checksum))
        return {"score": 10, "status": "completed"}

    def time_remaining(self, exam_id):
        return {"time_remaining_seconds": 600, "is_expired": False}

    def close(self):
        self.closed = True
