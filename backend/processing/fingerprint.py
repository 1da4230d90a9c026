import hashlib

from models.types import Fingerprint, SubscriberKey

SUBSCRIBER_PREFIX = "SUBSCRIBER:"


def sha256_hex(text: str) -> Fingerprint:
    """Lowercase hex SHA-256 digest of the UTF-8 encoded text."""
    return Fingerprint(hashlib.sha256(text.encode("utf-8")).hexdigest())


def normalize_email(email: str) -> str:
    return email.strip().lower()


def subscriber_key_for(email: str) -> SubscriberKey:
    """Store key for an address; case and surrounding whitespace are ignored."""
    return SubscriberKey(SUBSCRIBER_PREFIX + sha256_hex(normalize_email(email)))
