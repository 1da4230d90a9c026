"""
Subscriber and bulletin state persistence on top of a KVStore.

Key layout:
    BULLETIN_STATE           -> BulletinState JSON
    SUBSCRIBER:<sha256>      -> Subscriber JSON
    UNSUB_INDEX:<token>      -> subscriber key
"""

from collections.abc import Iterator

from pydantic import ValidationError

from models.bulletin import BulletinState
from models.subscriber import Subscriber
from models.types import SubscriberKey
from notifications.unsubscribe_tokens import (
    generate_unsubscribe_token,
    unsubscribe_index_key,
)
from processing.fingerprint import SUBSCRIBER_PREFIX, subscriber_key_for
from shared.kv_store import KVStore

BULLETIN_STATE_KEY = "BULLETIN_STATE"


class MalformedRecordError(ValueError):
    """A stored record could not be parsed."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Malformed record at {key}: {reason}")
        self.key = key


class SubscriberStore:
    """Typed access to bulletin state, subscribers and the unsubscribe index."""

    def __init__(self, kv: KVStore):
        self.kv = kv

    # Bulletin state

    def get_bulletin_state(self) -> BulletinState | None:
        """Return the last observed state; unreadable state counts as absent."""
        raw = self.kv.get(BULLETIN_STATE_KEY)
        if not raw:
            return None
        try:
            return BulletinState.model_validate_json(raw)
        except ValidationError as e:
            print(f"  ⚠️  Ignoring unreadable bulletin state: {e.error_count()} error(s)")
            return None

    def put_bulletin_state(self, state: BulletinState) -> None:
        self.kv.put(BULLETIN_STATE_KEY, state.model_dump_json(by_alias=True))

    # Subscribers

    def get_subscriber(self, key: str) -> Subscriber | None:
        """
        Load a subscriber record.

        Returns:
            Subscriber, or None if no record exists

        Raises:
            MalformedRecordError: If the stored value is not a valid record
        """
        raw = self.kv.get(key)
        if raw is None:
            return None
        return parse_subscriber(key, raw)

    def get_subscriber_by_email(self, email: str) -> Subscriber | None:
        return self.get_subscriber(subscriber_key_for(email))

    def put_subscriber(self, subscriber: Subscriber) -> SubscriberKey:
        key = subscriber_key_for(subscriber.email)
        self.kv.put(key, subscriber.to_json())
        return key

    def delete_subscriber(self, key: str, token: str | None = None) -> None:
        self.kv.delete(key)
        if token:
            self.kv.delete(unsubscribe_index_key(token))

    def iter_subscriber_keys(self) -> Iterator[str]:
        """Yield every subscriber key, following cursors until exhausted."""
        cursor: str | None = None
        while True:
            page = self.kv.list(SUBSCRIBER_PREFIX, cursor)
            yield from page.keys
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    # Unsubscribe index

    def ensure_unsubscribe_token(self, subscriber: Subscriber) -> Subscriber:
        """
        Make sure the subscriber has a token and a reverse-index entry.

        Idempotent: an existing token is kept and its index entry rewritten.
        Both the record (when a token is issued) and the index entry are
        persisted before returning.

        Returns:
            The subscriber, with unsub_token set
        """
        key = subscriber_key_for(subscriber.email)
        if not subscriber.unsub_token:
            subscriber = subscriber.model_copy(
                update={"unsub_token": generate_unsubscribe_token()}
            )
            self.kv.put(key, subscriber.to_json())

        index_key = unsubscribe_index_key(subscriber.unsub_token)
        if self.kv.get(index_key) != key:
            self.kv.put(index_key, key)
        return subscriber

    def resolve_unsubscribe_token(self, token: str | None) -> str | None:
        """Subscriber key for a token, or None for unknown or empty tokens."""
        if not token or not token.strip():
            return None
        return self.kv.get(unsubscribe_index_key(token.strip()))


def parse_subscriber(key: str, raw: str) -> Subscriber:
    try:
        return Subscriber.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedRecordError(key, f"{e.error_count()} validation error(s)") from e