"""
Token generation and unsubscribe links for one-click unsubscribe.

Tokens are opaque random strings issued once per subscriber and stored in a
reverse index (UNSUB_INDEX:<token> -> subscriber key), so a link stays valid
for the subscriber's lifetime and can be revoked by deleting the index entry.
"""

import secrets
from urllib.parse import urlencode

from models.types import UnsubscribeToken

UNSUB_INDEX_PREFIX = "UNSUB_INDEX:"

# 32 bytes of entropy, 43 URL-safe characters
TOKEN_BYTES = 32


def generate_unsubscribe_token() -> UnsubscribeToken:
    """
    Generate a new unsubscribe token.

    Returns:
        URL-safe token string (base64url alphabet, no padding)
    """
    return UnsubscribeToken(secrets.token_urlsafe(TOKEN_BYTES))


def unsubscribe_index_key(token: str) -> str:
    return UNSUB_INDEX_PREFIX + token


def build_unsubscribe_url(base_url: str, token: str) -> str:
    """
    Build the personalized unsubscribe link.

    Args:
        base_url: Public base URL of the service (trailing slash optional)
        token: Subscriber's unsubscribe token

    Returns:
        URL of the form <base_url>/unsubscribe?token=<token>

    Examples:
        >>> build_unsubscribe_url("https://wx.example.com/", "abc")
        'https://wx.example.com/unsubscribe?token=abc'
    """
    return f"{base_url.rstrip('/')}/unsubscribe?{urlencode({'token': token})}"
