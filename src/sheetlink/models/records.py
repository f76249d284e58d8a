from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class URLRecord(BaseModel):
    """Single short-link row from the published sheet."""

    model_config = ConfigDict(frozen=True)

    id: str
    to: str  # Destination URL
    description: str = ""
    title: str | None = None  # Presentational only; never used for resolution


class CacheEntry(BaseModel):
    """Last successfully validated record set.

    Replaced as a whole on every successful fetch; never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    records: tuple[URLRecord, ...]
    fetched_at: datetime


class CacheStatus(BaseModel):
    has_data: bool
    is_fresh: bool
    is_stale: bool
    is_expired: bool
    age_seconds: float | None = None
    record_count: int = 0


class UrlValidation(BaseModel):
    """Verdict on a user-entered destination URL."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    normalised_url: str
    error_message: str | None = None  # English reason; None when valid
