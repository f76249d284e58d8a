"""Integration test fixtures.

Wires a real SheetsDataService and RecordCache behind the Starlette app,
with the sheet endpoint mocked by respx and the app driven in-process
through httpx.ASGITransport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
from fakes import CSV_URL

from sheetlink.cache import RecordCache
from sheetlink.config import Settings
from sheetlink.fetcher import SheetsFetcher
from sheetlink.server import create_app
from sheetlink.service import SheetsDataService
from sheetlink.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from fakes import FakeClock


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        sheet={"csv_url": CSV_URL},
        refresh={"enabled": False},
        server={"base_url": "https://go.example.com"},
    )


@pytest.fixture()
async def app_state(settings: Settings, clock: FakeClock) -> AsyncGenerator[AppState, None]:
    async with httpx.AsyncClient() as http_client:
        cache = RecordCache(
            fresh_seconds=settings.cache.fresh_seconds,
            stale_seconds=settings.cache.stale_seconds,
            clock=clock,
        )
        service = SheetsDataService(SheetsFetcher(http_client), cache, CSV_URL)
        yield AppState(settings=settings, cache=cache, service=service, http_client=http_client)


@pytest.fixture()
async def client(app_state: AppState) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(state=app_state)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
