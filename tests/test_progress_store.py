"""
Unit tests for ProgressStore.
"""
import json
import logging
import shutil
import tempfile
import unittest
from pathlib import Path

from letter_quiz.models import ProgressSnapshot
from letter_quiz.progress_store import PROGRESS_KEY, ProgressStore
from tests.test_fixtures import FakeClock


class TestProgressStore(unittest.TestCase):
    """Test cases for saving and offering back progress snapshots."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = Path(self.temp_dir) / "progress.json"
        self.clock = FakeClock(10_000.0)
        self.store = ProgressStore(str(self.path), clock=self.clock)
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def _snapshot(self, saved_at=None) -> ProgressSnapshot:
        return ProgressSnapshot(
            current_index=3,
            answers=[{'ordinal': 1, 'is_correct': True}],
            started_at="2024-01-01T12:00:00",
            saved_at=self.clock() if saved_at is None else saved_at
        )

    def test_save_writes_fixed_key(self):
        result = self.store.save_snapshot(self._snapshot())

        self.assertTrue(result['success'])
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        self.assertIn(PROGRESS_KEY, data)
        self.assertEqual(data[PROGRESS_KEY]['current_index'], 3)

    def test_save_keeps_other_entries(self):
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({'other': 1}, f)

        self.store.save_snapshot(self._snapshot())

        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        self.assertEqual(data['other'], 1)

    def test_recent_snapshot_is_offered_once(self):
        self.store.save_snapshot(self._snapshot())
        self.clock.advance(60)

        snapshot = self.store.load_snapshot()
        self.assertIsNotNone(snapshot)
        self.assertEqual(snapshot.current_index, 3)
        self.assertEqual(snapshot.answers, [{'ordinal': 1, 'is_correct': True}])

        self.assertIsNone(self.store.load_snapshot())
        self.assertFalse(self.store.has_snapshot())

    def test_stale_snapshot_is_discarded(self):
        self.store.save_snapshot(self._snapshot())
        self.clock.advance(3600)

        self.assertIsNone(self.store.load_snapshot())
        self.assertFalse(self.store.has_snapshot())

    def test_custom_max_age(self):
        self.store.save_snapshot(self._snapshot())
        self.clock.advance(30)
        self.assertIsNone(self.store.load_snapshot(max_age=10))

    def test_snapshot_from_the_future_is_discarded(self):
        self.store.save_snapshot(self._snapshot(saved_at=self.clock() + 500))
        self.assertIsNone(self.store.load_snapshot())

    def test_missing_file(self):
        self.assertIsNone(self.store.load_snapshot())
        self.assertTrue(self.store.clear()['success'])

    def test_corrupt_file_is_reported_not_raised(self):
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write("{ not json")

        self.assertIsNone(self.store.load_snapshot())
        result = self.store.clear()
        self.assertFalse(result['success'])
        self.assertIn("Invalid JSON", result['error'])

    def test_malformed_snapshot_is_discarded(self):
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({PROGRESS_KEY: {'answers': []}}, f)

        self.assertIsNone(self.store.load_snapshot())
        self.assertFalse(self.store.has_snapshot())

    def test_clear(self):
        self.store.save_snapshot(self._snapshot())
        self.assertTrue(self.store.has_snapshot())

        self.assertTrue(self.store.clear()['success'])
        self.assertFalse(self.store.has_snapshot())

    def test_unwritable_location_is_reported(self):
        blocker = Path(self.temp_dir) / "blocker"
        blocker.write_text("not a directory")
        store = ProgressStore(str(blocker / "progress.json"), clock=self.clock)

        result = store.save_snapshot(self._snapshot())
        self.assertFalse(result['success'])
        self.assertIn('error', result)


if __name__ == '__main__':
    unittest.main()
