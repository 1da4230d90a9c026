"""
Notification dispatch for a new (or not yet fully delivered) bulletin.

One pass walks every subscriber record and sends the current bulletin to
each active subscriber whose last delivered fingerprint differs from the
current one. Delivery state is persisted right after each successful send,
so a pass that dies half-way is resumed by the next pass without re-sending
to anyone already marked current.

Passes are not mutually excluded: two overlapping passes can both see a
subscriber as behind and both deliver (at-least-once).
"""

from models.check import DispatchSummary
from models.subscriber import Subscriber
from notifications.email_sender import (
    MailSendError,
    MailSession,
    MailTransport,
    compose_bulletin_email,
    mail_configuration_error,
)
from notifications.error_logger import log_notification_error
from notifications.subscriber_store import MalformedRecordError, SubscriberStore
from notifications.unsubscribe_tokens import build_unsubscribe_url
from processing.fingerprint import subscriber_key_for
from shared.config import Settings
from shared.utils import is_plausible_email, utc_now


class FirstError:
    """Set-once holder for the first error message of a pass."""

    def __init__(self) -> None:
        self.message: str | None = None

    def record(self, message: str) -> None:
        if self.message is None:
            self.message = message


def ensure_default_recipient(
    store: SubscriberStore, settings: Settings, previous_fingerprint: str | None
) -> Subscriber | None:
    """
    Make sure the operator's default recipient exists and is enabled.

    A newly provisioned record is seeded with the previous fingerprint so it
    only receives bulletins that changed after the service started watching.

    Returns:
        The default recipient's record, or None if none is configured
    """
    address = settings.default_recipient
    if not address or not is_plausible_email(address):
        return None

    key = subscriber_key_for(address)
    try:
        existing = store.get_subscriber(key)
    except MalformedRecordError as e:
        print(f"  ⚠️  Re-provisioning default recipient: {e}")
        existing = None

    if existing is None:
        subscriber = Subscriber(
            email=address,
            created_at=utc_now(),
            last_sent_hash=previous_fingerprint,
        )
        store.put_subscriber(subscriber)
        print(f"✓ Provisioned default recipient {subscriber.email}")
        return subscriber

    if existing.disabled:
        existing = existing.model_copy(update={"disabled": False})
        store.put_subscriber(existing)
        print(f"✓ Re-enabled default recipient {existing.email}")

    return existing


def dispatch_bulletin(
    store: SubscriberStore,
    settings: Settings,
    transport: MailTransport | None,
    canonical_text: str,
    fingerprint: str,
    previous_fingerprint: str | None = None,
    summary: DispatchSummary | None = None,
) -> DispatchSummary:
    """
    Deliver the current bulletin to every subscriber who is behind.

    Args:
        store: Subscriber store
        settings: Configuration (sender, subject, default recipient, base URL)
        transport: Mail transport, or None if none is configured
        canonical_text: Normalized bulletin text
        fingerprint: Fingerprint of canonical_text
        previous_fingerprint: Fingerprint before this pass (seeds a newly
            provisioned default recipient)
        summary: Counters to fill in place, so a caller keeps the partial
            counts if the pass dies half-way

    Returns:
        DispatchSummary with attempted/notified counts and the first send error
    """
    if summary is None:
        summary = DispatchSummary()
    first_error = FirstError()
    config_error = mail_configuration_error(settings, transport)
    session: MailSession | None = None

    ensure_default_recipient(store, settings, previous_fingerprint)

    try:
        for key in store.iter_subscriber_keys():
            try:
                subscriber = store.get_subscriber(key)
            except MalformedRecordError as e:
                print(f"  ⊘ Skipping {e}")
                summary.skipped_malformed_count += 1
                continue

            # Deleted between the key scan and the read
            if subscriber is None:
                continue
            if subscriber.disabled:
                continue
            if not is_plausible_email(subscriber.email):
                continue
            if subscriber.is_caught_up(fingerprint):
                continue

            summary.attempted_count += 1
            # Link must be valid even if the send below fails
            subscriber = store.ensure_unsubscribe_token(subscriber)

            if config_error:
                first_error.record(config_error)
                continue

            if session is None:
                try:
                    session = transport.connect()
                except MailSendError as e:
                    config_error = str(e)
                    first_error.record(config_error)
                    print(f"  ✗ Could not connect to {transport.name}: {e}")
                    log_notification_error(
                        error_type="connect",
                        error_message=config_error,
                        context={"transport": transport.name, "fingerprint": fingerprint},
                    )
                    continue

            message = compose_bulletin_email(
                settings,
                subscriber.email,
                canonical_text,
                build_unsubscribe_url(settings.public_base_url, subscriber.unsub_token),
            )
            result = session.send(message)

            if result["success"]:
                store.put_subscriber(
                    subscriber.model_copy(
                        update={"last_sent_hash": fingerprint, "last_sent_at": utc_now()}
                    )
                )
                summary.notified_count += 1
                print(f"  ✓ Sent bulletin to {subscriber.email}")
            else:
                error_msg = result.get("error") or "Unknown error"
                first_error.record(error_msg)
                print(f"  ✗ Failed to send to {subscriber.email}: {error_msg}")
                error_file = log_notification_error(
                    error_type="sending",
                    error_message=error_msg,
                    context={
                        "subscriber_key": key,
                        "fingerprint": fingerprint,
                        "last_sent_hash": subscriber.last_sent_hash,
                        "transport": transport.name,
                    },
                )
                print(f"    Error details logged to: {error_file}")
    finally:
        summary.send_error = first_error.message
        if session is not None:
            session.close()

    return summary
