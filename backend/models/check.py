"""Pydantic models for check and dispatch results."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DispatchSummary(BaseModel):
    """Counters from one dispatch pass over all subscribers."""

    attempted_count: int = 0
    notified_count: int = 0
    skipped_malformed_count: int = 0
    send_error: str | None = None


class CheckResult(BaseModel):
    """Structured result of one check-and-dispatch operation."""

    model_config = ConfigDict(populate_by_name=True)

    changed: bool = False
    fingerprint: str | None = None
    error: str | None = None
    canonical_text: str | None = Field(None, alias="canonicalText")
    source_url: str = Field(..., alias="sourceUrl")
    notified: bool = False
    notified_count: int | None = Field(None, alias="notifiedCount")
    attempted_count: int | None = Field(None, alias="attemptedCount")
    upstream_status: int | None = Field(None, alias="upstreamStatus")
    send_error: str | None = Field(None, alias="sendError")
    skipped_malformed_count: int | None = Field(None, alias="skippedMalformedCount")

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)
