"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and read by every request handler through ``request.app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import aiosqlite
    import httpx

    from sheetlink.cache import RecordCache
    from sheetlink.config import Settings
    from sheetlink.service import SheetsDataService


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    cache: RecordCache
    service: SheetsDataService
    http_client: httpx.AsyncClient | None = None
    db: aiosqlite.Connection | None = None  # Only when cache persistence is on
