"""
Self-service subscription management.

subscribe() creates or reactivates a subscriber; unsubscribe() resolves a
token through the reverse index and disables the subscriber. Records are
soft-deleted (disabled) so tokens and delivery progress survive a later
re-subscribe.
"""

from typing import Any

from models.subscriber import Subscriber
from notifications.subscriber_store import MalformedRecordError, SubscriberStore
from processing.fingerprint import normalize_email, subscriber_key_for
from shared.config import Settings
from shared.utils import is_plausible_email, utc_now

# Result statuses
SUBSCRIBED = "subscribed"
REACTIVATED = "reactivated"
ALREADY_SUBSCRIBED = "already_subscribed"
UNSUBSCRIBED = "unsubscribed"
ALREADY_UNSUBSCRIBED = "already_unsubscribed"
PROTECTED = "protected"
INVALID = "invalid"


def is_default_recipient(settings: Settings, email: str) -> bool:
    """Case-insensitive comparison against the configured default recipient."""
    if not settings.default_recipient:
        return False
    return normalize_email(settings.default_recipient) == normalize_email(email)


def subscribe(store: SubscriberStore, email: str) -> dict[str, Any]:
    """
    Subscribe an address to bulletin notifications.

    A new subscriber has never been sent anything, so the next pass delivers
    the current bulletin. A disabled subscriber is reactivated with its
    existing token and delivery progress.

    Args:
        store: Subscriber store
        email: Address as entered by the user

    Returns:
        Dictionary with 'ok' (bool), 'status' (str) and 'message' (str)
    """
    if not is_plausible_email(email):
        return {"ok": False, "status": INVALID, "message": "Invalid email"}

    address = normalize_email(email)
    key = subscriber_key_for(address)

    try:
        existing = store.get_subscriber(key)
    except MalformedRecordError as e:
        print(f"  ⚠️  Replacing unreadable subscriber record: {e}")
        existing = None

    if existing and not existing.disabled:
        store.ensure_unsubscribe_token(existing)
        return {
            "ok": True,
            "status": ALREADY_SUBSCRIBED,
            "message": f"{address} is already subscribed.",
        }

    if existing:
        subscriber = existing.model_copy(update={"disabled": False})
        status = REACTIVATED
        message = f"Welcome back, {address} has been resubscribed."
    else:
        subscriber = Subscriber(email=address, created_at=utc_now())
        status = SUBSCRIBED
        message = f"{address} is now subscribed."

    store.put_subscriber(subscriber)
    store.ensure_unsubscribe_token(subscriber)
    print(f"✓ {status}: {address}")
    return {"ok": True, "status": status, "message": message}


def unsubscribe(
    store: SubscriberStore, settings: Settings, token: str | None
) -> dict[str, Any]:
    """
    Disable the subscriber that owns an unsubscribe token.

    Never raises for bad input - unknown, empty and stale tokens all produce
    an "invalid or expired link" result without touching any state.

    Args:
        store: Subscriber store
        settings: Configuration (for the protected default recipient)
        token: Token from the unsubscribe link

    Returns:
        Dictionary with 'ok' (bool), 'status' (str) and 'message' (str)
    """
    invalid = {
        "ok": False,
        "status": INVALID,
        "message": "This unsubscribe link is invalid or has expired.",
    }

    key = store.resolve_unsubscribe_token(token)
    if not key:
        return invalid

    try:
        subscriber = store.get_subscriber(key)
    except MalformedRecordError as e:
        # Legacy records that no longer parse are removed outright
        print(f"  ⚠️  Deleting unreadable subscriber record: {e}")
        store.delete_subscriber(key, token=(token or "").strip())
        return {
            "ok": True,
            "status": UNSUBSCRIBED,
            "message": "You have been unsubscribed.",
        }

    if subscriber is None:
        return invalid

    if is_default_recipient(settings, subscriber.email):
        return {
            "ok": False,
            "status": PROTECTED,
            "message": "This address is the operator's default recipient and cannot be unsubscribed.",
        }

    if subscriber.disabled:
        return {
            "ok": True,
            "status": ALREADY_UNSUBSCRIBED,
            "message": f"{subscriber.email} is already unsubscribed.",
        }

    store.put_subscriber(subscriber.model_copy(update={"disabled": True}))
    print(f"✓ unsubscribed: {subscriber.email}")
    return {
        "ok": True,
        "status": UNSUBSCRIBED,
        "message": f"{subscriber.email} has been unsubscribed.",
    }
