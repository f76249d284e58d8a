"""Sheets data service: the single entry point for record access.

Orchestrates fetcher → parser → validator → cache. Freshness policy:

  fresh    → cached records, no network call
  stale    → fetch; on a network/service failure serve the stale records
  expired  → fetch; failures propagate (unless serve_expired_on_error)
  empty    → fetch; failures propagate

Auth and data failures always propagate, even when cached data exists:
stale data cannot reliably mask a credential or schema problem.

Concurrent callers that need a fetch share one in-flight task, so a burst
of lookups against a cold cache produces a single request.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

import structlog

from sheetlink.errors import TRANSIENT_KINDS, SheetsServiceError
from sheetlink.validator import parse_records

if TYPE_CHECKING:
    from sheetlink.cache import RecordCache
    from sheetlink.models.records import URLRecord
    from sheetlink.protocols import FetcherProtocol

log = structlog.get_logger()


@dataclass
class ServiceStats:
    """Running counters for cache effectiveness."""

    requests: int = 0
    cache_hits: int = 0
    fetches: int = 0
    coalesced: int = 0  # Callers that joined an already in-flight fetch
    fetch_failures: int = 0
    stale_fallbacks: int = 0

    @property
    def cache_hit_rate(self) -> float:
        return self.cache_hits / self.requests if self.requests else 0.0

    def to_dict(self) -> dict:
        return {**asdict(self), "cache_hit_rate": round(self.cache_hit_rate, 3)}


class SheetsDataService:
    def __init__(
        self,
        fetcher: FetcherProtocol,
        cache: RecordCache,
        csv_url: str,
        *,
        serve_expired_on_error: bool = False,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._csv_url = csv_url
        self._serve_expired_on_error = serve_expired_on_error
        self._inflight: asyncio.Task[tuple[URLRecord, ...]] | None = None
        self.stats = ServiceStats()

    @property
    def cache(self) -> RecordCache:
        return self._cache

    async def get_all_records(self) -> list[URLRecord]:
        """Return the current record set, applying the freshness policy."""
        self.stats.requests += 1
        freshness = self._cache.freshness()
        entry = self._cache.get()

        if freshness == "fresh" and entry is not None:
            self.stats.cache_hits += 1
            return list(entry.records)

        try:
            return list(await self._fetch_shared())
        except SheetsServiceError as exc:
            self.stats.fetch_failures += 1
            fallback_allowed = freshness == "stale" or (
                freshness == "expired" and self._serve_expired_on_error
            )
            if entry is not None and fallback_allowed and exc.kind in TRANSIENT_KINDS:
                self.stats.stale_fallbacks += 1
                log.warning(
                    "cache_stale_fallback",
                    kind=str(exc.kind),
                    error=exc.message,
                    freshness=freshness,
                    records=len(entry.records),
                )
                return list(entry.records)
            raise

    async def find_by_id(self, record_id: str) -> URLRecord | None:
        """Return the first record whose id equals ``record_id``, or None.

        Absence is not an error. Pipeline failures propagate unchanged.
        """
        records = await self.get_all_records()
        for record in records:
            if record.id == record_id:
                return record
        return None

    async def refresh(self) -> list[URLRecord]:
        """Fetch unconditionally and update the cache. Failures propagate."""
        return list(await self._fetch_shared())

    async def invalidate(self) -> None:
        """Drop the cached entry so the next call fetches."""
        await self._cache.clear()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch_shared(self) -> tuple[URLRecord, ...]:
        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._fetch_and_store())
            task.add_done_callback(self._release_inflight)
            self._inflight = task
        else:
            self.stats.coalesced += 1
        # Shield so one cancelled caller does not abort the fetch for the others
        return await asyncio.shield(task)

    def _release_inflight(self, task: asyncio.Task[tuple[URLRecord, ...]]) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the failure retrieved even when every waiting caller was cancelled
        if not task.cancelled() and task.exception() is not None:
            log.debug("fetch_task_failed", error=str(task.exception()))

    async def _fetch_and_store(self) -> tuple[URLRecord, ...]:
        self.stats.fetches += 1
        text = await self._fetcher.fetch_csv(self._csv_url)
        records = parse_records(text)
        entry = await self._cache.put(records)
        log.info("records_refreshed", records=len(entry.records))
        return entry.records
