"""Protocol interfaces for swappable components.

The data service, cache and resolver reference these protocols, not the
concrete implementations. This allows:
- Tests to use lightweight in-memory fakes
- Other persistence backends to be swapped in without touching the cache
- Headless callers to resolve paths without any presentation layer
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from sheetlink.models.qr import QRStyleOptions
    from sheetlink.models.records import CacheEntry, URLRecord
    from sheetlink.models.resolver import ResolveOutcome


class FetcherProtocol(Protocol):
    """Interface for the CSV export fetcher."""

    async def fetch_csv(self, url: str) -> str: ...


class RecordStoreProtocol(Protocol):
    """Durable backing store for the record cache. Purely an optimisation."""

    async def load_entry(self) -> CacheEntry | None: ...

    async def save_entry(self, entry: CacheEntry) -> None: ...

    async def delete_entry(self) -> None: ...


class RecordSourceProtocol(Protocol):
    """What the resolver needs from the data service."""

    async def find_by_id(self, record_id: str) -> URLRecord | None: ...


class PresentationSink(Protocol):
    """Receives the resolver's terminal outcome and renders it."""

    def emit(self, outcome: ResolveOutcome) -> None: ...


class QRRendererProtocol(Protocol):
    """External QR rendering engine: returns an image data URL."""

    def render(self, data: str, options: QRStyleOptions) -> str: ...
