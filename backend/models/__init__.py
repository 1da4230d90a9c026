"""Pydantic models for data validation and type checking."""

from models.bulletin import BulletinState, ChangeDetection, FetchedBulletin
from models.check import CheckResult, DispatchSummary
from models.subscriber import Subscriber

__all__ = [
    "BulletinState",
    "ChangeDetection",
    "FetchedBulletin",
    "CheckResult",
    "DispatchSummary",
    "Subscriber",
]
