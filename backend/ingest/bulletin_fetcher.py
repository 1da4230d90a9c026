"""
Upstream fetcher for the AFOS text feed.

Fetches the latest bulletin once per call (no retries; retry policy belongs
to the scheduler) and classifies failures so callers can tell "unreachable"
from "reachable but nothing published".
"""

import requests

from models.bulletin import FetchedBulletin
from shared.config import Settings


class BulletinFetchError(Exception):
    """Base class for classified fetch failures."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class UpstreamError(BulletinFetchError):
    """Upstream answered with a non-success HTTP status."""

    def __init__(self, status: int):
        super().__init__(f"Upstream responded {status}", status=status)


class EmptyResponseError(BulletinFetchError):
    """Upstream answered successfully but the trimmed body is empty."""

    def __init__(self, status: int):
        super().__init__("Empty response from upstream", status=status)


class TransportError(BulletinFetchError):
    """Network, DNS or timeout failure before any response arrived."""


class BulletinFetcher:
    """Fetches the latest bulletin text from a fixed URL"""

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.url = settings.source_url
        self.timeout = settings.request_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": settings.user_agent})

    def fetch(self) -> FetchedBulletin:
        """
        Fetch the latest bulletin.

        Returns:
            FetchedBulletin with the HTTP status and raw body

        Raises:
            UpstreamError: Non-2xx status
            EmptyResponseError: 2xx status with a blank body
            TransportError: The request failed before a response
        """
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            body = response.text or ""
        except requests.RequestException as e:
            raise TransportError(str(e) or e.__class__.__name__) from e

        if not 200 <= response.status_code < 300:
            raise UpstreamError(response.status_code)

        if not body.strip():
            raise EmptyResponseError(response.status_code)

        return FetchedBulletin(status=response.status_code, raw_text=body)
