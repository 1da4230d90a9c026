"""Pydantic model for subscriber records."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.types import Fingerprint, UnsubscribeToken


class Subscriber(BaseModel):
    """One notification recipient and their delivery progress."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    email: str = Field(..., min_length=1)
    created_at: datetime = Field(..., alias="createdAt")
    last_sent_hash: Fingerprint | None = Field(None, alias="lastSentHash")
    last_sent_at: datetime | None = Field(None, alias="lastSentAt")
    disabled: bool = False
    unsub_token: UnsubscribeToken | None = Field(None, alias="unsubToken")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    def is_caught_up(self, fingerprint: str) -> bool:
        return self.last_sent_hash == fingerprint

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
