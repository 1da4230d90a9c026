"""
Unit tests for shared/utils.py

Tests address checks, time helper and summary printing.
"""

import unittest
from datetime import timezone
from unittest.mock import patch

from models.check import CheckResult
from shared.utils import is_plausible_email, print_check_summary, utc_now


class TestIsPlausibleEmail(unittest.TestCase):
    """Tests for is_plausible_email() function."""

    def test_valid(self):
        self.assertTrue(is_plausible_email("reader@example.com"))
        self.assertTrue(is_plausible_email("  reader@example.com  "))

    def test_missing_at(self):
        self.assertFalse(is_plausible_email("reader.example.com"))

    def test_empty_or_none(self):
        self.assertFalse(is_plausible_email(""))
        self.assertFalse(is_plausible_email("   "))
        self.assertFalse(is_plausible_email(None))

    def test_length_limit(self):
        local = "a" * (254 - len("@example.com"))
        self.assertTrue(is_plausible_email(local + "@example.com"))
        self.assertFalse(is_plausible_email("a" + local + "@example.com"))


class TestUtcNow(unittest.TestCase):

    def test_timezone_aware(self):
        self.assertEqual(utc_now().tzinfo, timezone.utc)


class TestPrintCheckSummary(unittest.TestCase):
    """Tests for print_check_summary() function."""

    @patch("builtins.print")
    def test_prints_counts(self, mock_print):
        result = CheckResult(
            changed=True,
            fingerprint="abc",
            source_url="https://feed.example.com",
            notified_count=3,
            attempted_count=4,
            send_error="Mailbox unavailable",
        )

        print_check_summary(result)

        output = " ".join(str(call) for call in mock_print.call_args_list)
        self.assertIn("Bulletin Check Complete", output)
        self.assertIn("Notified:  3", output)
        self.assertIn("Attempted: 4", output)
        self.assertIn("Mailbox unavailable", output)

    @patch("builtins.print")
    def test_prints_error(self, mock_print):
        result = CheckResult(
            error="Upstream responded 503",
            source_url="https://feed.example.com",
            upstream_status=503,
        )

        print_check_summary(result)

        output = " ".join(str(call) for call in mock_print.call_args_list)
        self.assertIn("Upstream responded 503", output)
        self.assertIn("503", output)
        self.assertNotIn("Notified", output)


if __name__ == "__main__":
    unittest.main()
