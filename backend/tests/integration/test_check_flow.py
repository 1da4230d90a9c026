"""
Integration tests for the complete check-and-dispatch flow.

Runs perform_check() end to end against an in-memory store, a fake fetcher
and a fake mail transport.
"""

import unittest
from unittest.mock import patch

from ingest.bulletin_fetcher import EmptyResponseError, TransportError, UpstreamError
from notifications.subscriber_store import BULLETIN_STATE_KEY, SubscriberStore
from notifications.subscriptions import subscribe
from processing.bulletin_check import perform_check
from processing.fingerprint import sha256_hex
from processing.normalizer import normalize_bulletin_text
from tests.fixtures.mock_helpers import FakeFetcher, FakeTransport, InMemoryKVStore
from tests.fixtures.subscriber_factory import (
    CHANGED_BULLETIN,
    SAMPLE_BULLETIN,
    create_fetched_bulletin,
    create_test_settings,
    create_test_subscriber,
)

H1 = sha256_hex(normalize_bulletin_text(SAMPLE_BULLETIN.strip()))
H2 = sha256_hex(normalize_bulletin_text(CHANGED_BULLETIN.strip()))


class TestCheckFlow(unittest.TestCase):
    """Scenario tests for perform_check()."""

    def setUp(self):
        for target in ("builtins.print", "notifications.dispatcher.log_notification_error"):
            patcher = patch(target)
            patcher.start()
            self.addCleanup(patcher.stop)

        self.kv = InMemoryKVStore(page_size=3)
        self.store = SubscriberStore(self.kv)
        self.settings = create_test_settings(default_recipient="operator@example.com")
        self.transport = FakeTransport()

    def check(self, *outcomes, **kwargs):
        return perform_check(
            self.settings,
            self.store,
            fetcher=FakeFetcher(*outcomes),
            transport=kwargs.pop("transport", self.transport),
            **kwargs,
        )

    def test_first_run_records_baseline_without_sending(self):
        result = self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        self.assertIsNone(result.error)
        self.assertFalse(result.changed)
        self.assertEqual(result.fingerprint, H1)
        self.assertEqual(result.upstream_status, 200)
        self.assertFalse(result.notified)
        self.assertEqual(self.store.get_bulletin_state().fingerprint, H1)
        self.assertEqual(self.transport.sent, [])

    def test_first_run_provisions_default_recipient_as_current(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        operator = self.store.get_subscriber_by_email("operator@example.com")
        self.assertIsNotNone(operator)
        self.assertFalse(operator.disabled)
        self.assertEqual(operator.last_sent_hash, H1)
        self.assertEqual(self.transport.sent, [])

    def test_new_subscriber_receives_current_bulletin_on_next_pass(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))
        subscribe(self.store, "reader@example.com")

        result = self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        self.assertFalse(result.changed)
        self.assertEqual(result.attempted_count, 1)
        self.assertEqual(result.notified_count, 1)
        self.assertEqual(self.transport.recipients, ["reader@example.com"])
        self.assertEqual(
            self.store.get_subscriber_by_email("reader@example.com").last_sent_hash, H1
        )

    def test_unchanged_second_pass_notifies_nobody(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        result = self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        self.assertFalse(result.changed)
        self.assertEqual(result.notified_count, 0)
        self.assertEqual(result.attempted_count, 0)
        self.assertEqual(self.transport.sent, [])
        # Default recipient provisioned, already caught up
        self.assertEqual(
            self.store.get_subscriber_by_email("operator@example.com").last_sent_hash, H1
        )

    def test_unchanged_pass_still_refreshes_seen_at(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))
        first_seen = self.store.get_bulletin_state().seen_at

        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        self.assertGreaterEqual(self.store.get_bulletin_state().seen_at, first_seen)
        self.assertGreaterEqual(self.kv.puts.count(BULLETIN_STATE_KEY), 2)

    def test_changed_bulletin_notifies_everyone_behind(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))
        subscribe(self.store, "reader@example.com")
        subscribe(self.store, "fan@example.com")
        self.assertIsNone(self.store.get_subscriber_by_email("fan@example.com").last_sent_hash)
        self.store.put_subscriber(
            create_test_subscriber(email="off@example.com", last_sent_hash=H1, disabled=True)
        )

        result = self.check(create_fetched_bulletin(CHANGED_BULLETIN), include_canonical_text=True)

        self.assertTrue(result.changed)
        self.assertEqual(result.fingerprint, H2)
        self.assertEqual(result.attempted_count, 3)
        self.assertEqual(result.notified_count, 3)
        self.assertTrue(result.notified)
        self.assertIsNone(result.send_error)
        self.assertEqual(result.canonical_text, normalize_bulletin_text(CHANGED_BULLETIN.strip()))
        self.assertCountEqual(
            self.transport.recipients,
            ["operator@example.com", "reader@example.com", "fan@example.com"],
        )
        for email in ["operator@example.com", "reader@example.com", "fan@example.com"]:
            self.assertEqual(self.store.get_subscriber_by_email(email).last_sent_hash, H2)
        self.assertEqual(self.store.get_subscriber_by_email("off@example.com").last_sent_hash, H1)

    def test_rerun_after_change_sends_nothing_more(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))
        subscribe(self.store, "reader@example.com")
        self.check(create_fetched_bulletin(CHANGED_BULLETIN))
        sent_before = len(self.transport.sent)

        result = self.check(create_fetched_bulletin(CHANGED_BULLETIN))

        self.assertFalse(result.changed)
        self.assertEqual(result.attempted_count, 0)
        self.assertEqual(len(self.transport.sent), sent_before)

    def test_unchanged_pass_catches_up_failed_deliveries(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))
        subscribe(self.store, "flaky@example.com")
        self.transport.fail_for = {"flaky@example.com"}
        failed = self.check(create_fetched_bulletin(CHANGED_BULLETIN))

        self.transport.fail_for = set()
        retry = self.check(create_fetched_bulletin(CHANGED_BULLETIN))

        self.assertEqual(failed.send_error, "Mailbox unavailable: flaky@example.com")
        self.assertFalse(retry.changed)
        self.assertEqual(retry.attempted_count, 1)
        self.assertEqual(retry.notified_count, 1)
        self.assertEqual(self.transport.recipients.count("flaky@example.com"), 1)

    def test_text_excluded_by_default(self):
        result = self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        self.assertIsNone(result.canonical_text)
        self.assertNotIn("canonicalText", result.to_dict())

    def test_no_transport_reports_configuration_error(self):
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))
        subscribe(self.store, "reader@example.com")

        result = self.check(create_fetched_bulletin(CHANGED_BULLETIN), transport=None)

        self.assertIsNone(result.error)
        self.assertTrue(result.changed)
        self.assertEqual(result.attempted_count, 2)
        self.assertEqual(result.notified_count, 0)
        self.assertFalse(result.notified)
        self.assertIn("No mail transport", result.send_error)


    def test_store_failure_mid_dispatch_keeps_partial_progress(self):
        kv = InMemoryKVStore(page_size=1)
        self.store = SubscriberStore(kv)
        self.check(create_fetched_bulletin(SAMPLE_BULLETIN))
        subscribe(self.store, "reader@example.com")

        def list_first_page_only(prefix, cursor=None):
            if cursor is not None:
                raise ConnectionError("store offline")
            return InMemoryKVStore.list(kv, prefix, cursor)

        with patch.object(kv, "list", side_effect=list_first_page_only):
            result = self.check(create_fetched_bulletin(CHANGED_BULLETIN))

        self.assertEqual(result.error, "store offline")
        self.assertTrue(result.changed)
        self.assertEqual(result.fingerprint, H2)
        self.assertEqual(result.attempted_count, 1)
        self.assertEqual(result.notified_count, 1)
        self.assertTrue(result.notified)
        self.assertEqual(len(self.transport.sent), 1)
        self.assertEqual(self.store.get_bulletin_state().fingerprint, H2)

class TestCheckFailures(unittest.TestCase):
    """Upstream failures become results and never mutate state."""

    def setUp(self):
        patcher = patch("builtins.print")
        patcher.start()
        self.addCleanup(patcher.stop)

        self.kv = InMemoryKVStore()
        self.store = SubscriberStore(self.kv)
        self.settings = create_test_settings(source_url="https://feed.example.com/afos")

    def check(self, outcome):
        return perform_check(
            self.settings, self.store, fetcher=FakeFetcher(outcome), transport=FakeTransport()
        )

    def test_upstream_503(self):
        result = self.check(UpstreamError(503))

        self.assertEqual(result.error, "Upstream responded 503")
        self.assertEqual(result.upstream_status, 503)
        self.assertFalse(result.changed)
        self.assertEqual(result.source_url, "https://feed.example.com/afos")
        self.assertEqual(self.kv.data, {})

    def test_empty_body_distinct_from_upstream_error(self):
        result = self.check(EmptyResponseError(200))

        self.assertEqual(result.error, "Empty response from upstream")
        self.assertEqual(result.upstream_status, 200)
        self.assertFalse(result.changed)
        self.assertEqual(self.kv.data, {})

    def test_transport_error(self):
        result = self.check(TransportError("Name or service not known"))

        self.assertEqual(result.error, "Name or service not known")
        self.assertIsNone(result.upstream_status)
        self.assertEqual(result.to_dict()["sourceUrl"], "https://feed.example.com/afos")
        self.assertEqual(self.kv.data, {})

    def test_store_failure_becomes_error(self):
        with patch.object(self.kv, "get", side_effect=ConnectionError("store offline")):
            result = self.check(create_fetched_bulletin(SAMPLE_BULLETIN))

        self.assertEqual(result.error, "store offline")
        self.assertFalse(result.changed)
        self.assertEqual(result.upstream_status, 200)


if __name__ == "__main__":
    unittest.main()
