"""Unit tests for sheetlink.fetcher."""

from __future__ import annotations

import httpx
import pytest
import respx

from sheetlink.config import FetcherSettings, SheetSettings
from sheetlink.errors import (
    ErrorKind,
    SheetsAuthError,
    SheetsDataError,
    SheetsNetworkError,
    SheetsServiceError,
)
from sheetlink.fetcher import (
    SheetsFetcher,
    build_export_url,
    build_http_client,
    resolve_csv_url,
)

URL = "https://docs.google.com/spreadsheets/d/sheet-id/export?format=csv"

# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


class TestExportUrl:
    def test_without_gid(self) -> None:
        assert build_export_url("sheet-id") == URL

    def test_with_gid(self) -> None:
        assert build_export_url("sheet-id", "123") == URL + "&gid=123"

    def test_explicit_csv_url_wins(self) -> None:
        settings = SheetSettings(id="sheet-id", csv_url="https://example.com/data.csv")
        assert resolve_csv_url(settings) == "https://example.com/data.csv"

    def test_built_from_id(self) -> None:
        assert resolve_csv_url(SheetSettings(id="sheet-id")) == URL

    def test_missing_sheet_identity(self) -> None:
        with pytest.raises(ValueError):
            resolve_csv_url(SheetSettings())


class TestBuildHttpClient:
    async def test_client_configuration(self) -> None:
        client = build_http_client(FetcherSettings(timeout_seconds=3.0, user_agent="test/1"))
        try:
            assert isinstance(client, httpx.AsyncClient)
            assert client.follow_redirects is True
            assert client.timeout.read == 3.0
            assert client.headers["User-Agent"] == "test/1"
        finally:
            await client.aclose()


# ---------------------------------------------------------------------------
# SheetsFetcher
# ---------------------------------------------------------------------------


class TestSheetsFetcher:
    async def test_successful_fetch(self) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(200, text="id,to,description\n"))
            async with httpx.AsyncClient() as client:
                result = await SheetsFetcher(client).fetch_csv(URL)
        assert result == "id,to,description\n"

    async def test_redirect_followed(self) -> None:
        with respx.mock:
            respx.get(URL).mock(
                return_value=httpx.Response(
                    307, headers={"location": "https://content.example.com/export.csv"}
                )
            )
            respx.get("https://content.example.com/export.csv").mock(
                return_value=httpx.Response(200, text="id,to,description\n")
            )
            async with httpx.AsyncClient(follow_redirects=True) as client:
                result = await SheetsFetcher(client).fetch_csv(URL)
        assert result == "id,to,description\n"

    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_statuses(self, status: int) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(status))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsAuthError) as exc_info:
                    await SheetsFetcher(client).fetch_csv(URL)
        assert exc_info.value.kind is ErrorKind.AUTH
        assert exc_info.value.recoverable is False

    async def test_404_is_data_error(self) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(404))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsDataError) as exc_info:
                    await SheetsFetcher(client).fetch_csv(URL)
        assert exc_info.value.kind is ErrorKind.DATA

    @pytest.mark.parametrize("body", ["", "   \n  "])
    async def test_empty_body_is_data_error(self, body: str) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(200, text=body))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsDataError, match="empty response"):
                    await SheetsFetcher(client).fetch_csv(URL)

    @pytest.mark.parametrize("status", [500, 502, 503])
    async def test_5xx_is_service_error(self, status: int) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(status))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsServiceError) as exc_info:
                    await SheetsFetcher(client).fetch_csv(URL)
        assert exc_info.value.kind is ErrorKind.SERVICE
        assert type(exc_info.value) is SheetsServiceError
        assert exc_info.value.recoverable is True

    @pytest.mark.parametrize("status", [400, 418, 429])
    async def test_other_status_is_network_error(self, status: int) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(status))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsNetworkError) as exc_info:
                    await SheetsFetcher(client).fetch_csv(URL)
        assert exc_info.value.kind is ErrorKind.NETWORK

    async def test_connect_error_is_network_error(self) -> None:
        with respx.mock:
            respx.get(URL).mock(side_effect=httpx.ConnectError("Connection refused"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsNetworkError) as exc_info:
                    await SheetsFetcher(client).fetch_csv(URL)
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert exc_info.value.__cause__ is exc_info.value.cause

    async def test_timeout_is_network_error(self) -> None:
        with respx.mock:
            respx.get(URL).mock(side_effect=httpx.ReadTimeout("too slow"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsNetworkError, match="Timed out"):
                    await SheetsFetcher(client).fetch_csv(URL)

    async def test_all_failures_share_supertype(self) -> None:
        with respx.mock:
            respx.get(URL).mock(return_value=httpx.Response(403))
            async with httpx.AsyncClient() as client:
                with pytest.raises(SheetsServiceError):
                    await SheetsFetcher(client).fetch_csv(URL)
