"""Unit tests for processing/change_detector.py"""

import unittest
from datetime import datetime, timezone

from models.bulletin import BulletinState
from processing.change_detector import detect_change
from processing.fingerprint import sha256_hex

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
EARLIER = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)


class TestDetectChange(unittest.TestCase):
    """Tests for detect_change() function."""

    def test_first_run_is_baseline(self):
        """No prior state: baseline, reported unchanged."""
        result = detect_change("text A\n", None, NOW)

        self.assertTrue(result.baseline)
        self.assertFalse(result.changed)
        self.assertIsNone(result.previous_fingerprint)
        self.assertEqual(result.current_fingerprint, sha256_hex("text A\n"))

    def test_same_text_unchanged(self):
        """Matching fingerprint: not changed, not baseline."""
        state = BulletinState(fingerprint=sha256_hex("text A\n"), seen_at=EARLIER)

        result = detect_change("text A\n", state, NOW)

        self.assertFalse(result.changed)
        self.assertFalse(result.baseline)
        self.assertEqual(result.previous_fingerprint, result.current_fingerprint)

    def test_different_text_changed(self):
        """Different fingerprint: changed."""
        state = BulletinState(fingerprint=sha256_hex("text A\n"), seen_at=EARLIER)

        result = detect_change("text B\n", state, NOW)

        self.assertTrue(result.changed)
        self.assertEqual(result.previous_fingerprint, sha256_hex("text A\n"))
        self.assertEqual(result.current_fingerprint, sha256_hex("text B\n"))

    def test_new_state_always_records_observation_time(self):
        """State to persist carries the current fingerprint and now, changed or not."""
        state = BulletinState(fingerprint=sha256_hex("text A\n"), seen_at=EARLIER)

        unchanged = detect_change("text A\n", state, NOW)
        changed = detect_change("text B\n", state, NOW)

        self.assertEqual(unchanged.state.seen_at, NOW)
        self.assertEqual(unchanged.state.fingerprint, sha256_hex("text A\n"))
        self.assertEqual(changed.state.seen_at, NOW)
        self.assertEqual(changed.state.fingerprint, sha256_hex("text B\n"))


if __name__ == "__main__":
    unittest.main()
