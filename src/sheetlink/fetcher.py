"""HTTP fetcher for the published sheet's CSV export.

All network I/O goes through a single SheetsFetcher instance. The fetcher
receives an httpx.AsyncClient via constructor injection; the lifespan owns
the client lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
import structlog

from sheetlink.errors import (
    SheetsAuthError,
    SheetsDataError,
    SheetsNetworkError,
    SheetsServiceError,
)

if TYPE_CHECKING:
    from sheetlink.config import FetcherSettings, SheetSettings

log = structlog.get_logger()

_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"

_AUTH_STATUSES = frozenset({401, 403})
_MISSING_STATUSES = frozenset({404, 410})


def build_export_url(sheet_id: str, gid: str | None = None) -> str:
    """Return the public CSV export URL for a spreadsheet (and optional tab)."""
    url = _EXPORT_URL.format(sheet_id=quote(sheet_id, safe=""))
    if gid:
        url += f"&gid={quote(gid, safe='')}"
    return url


def resolve_csv_url(settings: SheetSettings) -> str:
    """Pick the explicit ``csv_url`` if configured, else build it from the sheet id."""
    if settings.csv_url:
        return settings.csv_url
    if not settings.id:
        raise ValueError("Either sheet.csv_url or sheet.id must be configured")
    return build_export_url(settings.id, settings.gid)


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    timeout = settings.timeout_seconds if settings is not None else 10.0
    user_agent = settings.user_agent if settings is not None else "sheetlink/1.0"
    return httpx.AsyncClient(
        # The export endpoint answers with a redirect to a content host
        follow_redirects=True,
        max_redirects=5,
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": user_agent, "Accept": "text/csv"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


class SheetsFetcher:
    """Retrieves CSV text and classifies every failure into the error taxonomy."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_csv(self, url: str) -> str:
        """Fetch the CSV export at ``url``.

        Returns the non-empty response body. Raises a ``SheetsServiceError``
        subclass on any failure:

        - 401/403 → SheetsAuthError
        - 404/410 or an empty body → SheetsDataError
        - 5xx → SheetsServiceError
        - any other non-2xx, transport error or timeout → SheetsNetworkError
        """
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as exc:
            log.warning("fetch_failed", url=url, reason="timeout")
            raise SheetsNetworkError(f"Timed out fetching sheet data from {url}", cause=exc) from exc
        except httpx.HTTPError as exc:
            log.warning("fetch_failed", url=url, reason="transport", error=str(exc))
            raise SheetsNetworkError(
                f"Network error fetching sheet data from {url}: {exc}", cause=exc
            ) from exc

        if not response.is_success:
            raise _classify_status(url, response)

        text = response.text
        if not text.strip():
            log.warning("fetch_failed", url=url, reason="empty_body")
            raise SheetsDataError(
                "Received empty response from the sheet export. "
                "The sheet may be empty or inaccessible."
            )

        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            content_length=len(text),
        )
        return text


def _classify_status(url: str, response: httpx.Response) -> SheetsServiceError:
    status = response.status_code
    log.warning("fetch_failed", url=url, reason="http_status", status_code=status)

    if status in _AUTH_STATUSES:
        return SheetsAuthError(
            f"Sheet access denied: HTTP {status}. The sheet may not be publicly accessible."
        )
    if status in _MISSING_STATUSES:
        return SheetsDataError(f"Sheet not found: HTTP {status}. Check the sheet id.")
    if status >= 500:
        return SheetsServiceError(f"Sheet service error: HTTP {status}. Try again later.")
    return SheetsNetworkError(f"Failed to fetch sheet data: HTTP {status}")
