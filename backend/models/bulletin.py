"""Pydantic models for bulletin state and change detection."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models.types import Fingerprint


class BulletinState(BaseModel):
    """Last observed bulletin version (singleton record)."""

    model_config = ConfigDict(populate_by_name=True)

    fingerprint: Fingerprint = Field(..., min_length=1)
    seen_at: datetime = Field(..., alias="seenAt")


class FetchedBulletin(BaseModel):
    """Successful upstream response."""

    status: int
    raw_text: str


class ChangeDetection(BaseModel):
    """Outcome of comparing a fresh fingerprint with the stored state."""

    changed: bool
    baseline: bool = False
    previous_fingerprint: Fingerprint | None = None
    current_fingerprint: Fingerprint
    state: BulletinState
