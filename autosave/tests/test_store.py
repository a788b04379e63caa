import os
import tempfile
import unittest

from autosave.store import FallbackStore


class FallbackStoreTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.store = FallbackStore(os.path.join(self.tmp.name, "autosave"))

    def test_missing_file_loads_empty(self):
        self.assertEqual(self.store.load(1), {})

    def test_put_and_load(self):
        self.store.put(1, 10, {"l1": "r2"}, error="timeout")
        entry = self.store.load(1)["10"]
        self.assertEqual(entry["answer"], {"l1": "r2"})
        self.assertEqual(entry["error"], "timeout")

    def test_exams_are_kept_apart(self):
        self.store.put(1, 10, "a")
        self.store.put(2, 10, "b")
        self.assertEqual(self.store.load(1)["10"]["answer"], "a")
        self.assertEqual(self.store.load(2)["10"]["answer"], "b")

    def test_latest_value_wins(self):
        self.store.put(1, 10, "a")
        self.store.put(1, 10, "b")
        self.assertEqual(self.store.load(1)["10"]["answer"], "b")

    def test_discard_last_entry_removes_the_file(self):
        self.store.put(1, 10, "a")
        self.store.discard(1, 10)
        self.assertEqual(self.store.load(1), {})
        self.assertEqual(os.listdir(os.path.join(self.tmp.name, "autosave")), [])

    def test_clear(self):
        self.store.put(1, 10, "a")
        self.store.put(1, 11, "b")
        self.store.clear(1)
        self.assertEqual(self.store.load(1), {})
