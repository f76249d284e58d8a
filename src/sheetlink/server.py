"""HTTP entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState inside the Starlette lifespan
- Map resolver outcomes to HTTP responses
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse
from starlette.routing import Route

from sheetlink import __version__
from sheetlink.cache import RecordCache, SqliteRecordStore
from sheetlink.config import Settings
from sheetlink.fetcher import SheetsFetcher, build_http_client, resolve_csv_url
from sheetlink.models.resolver import ResolverState
from sheetlink.pages import render_error, render_not_found
from sheetlink.resolver import LoggingSink, Resolver
from sheetlink.schedulers import run_refresh_scheduler
from sheetlink.service import SheetsDataService
from sheetlink.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request
    from starlette.responses import Response

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def build_state(settings: Settings) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    csv_url = resolve_csv_url(settings.sheet)
    http_client = build_http_client(settings.fetcher)

    db: aiosqlite.Connection | None = None
    store: SqliteRecordStore | None = None
    if settings.cache.persist:
        db_path = Path(settings.cache.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(db_path))
        store = SqliteRecordStore(db)
        await store.init_db()

    cache = RecordCache(
        fresh_seconds=settings.cache.fresh_seconds,
        stale_seconds=settings.cache.stale_seconds,
        store=store,
    )
    await cache.load()

    service = SheetsDataService(
        SheetsFetcher(http_client),
        cache,
        csv_url,
        serve_expired_on_error=settings.cache.serve_expired_on_error,
    )
    state = AppState(
        settings=settings,
        cache=cache,
        service=service,
        http_client=http_client,
        db=db,
    )

    refresh_task = asyncio.create_task(run_refresh_scheduler(state))

    log.info(
        "server_started",
        version=__version__,
        csv_url=csv_url,
        persist=settings.cache.persist,
        cached_records=cache.status().record_count,
    )

    try:
        yield state
    finally:
        refresh_task.cancel()
        with suppress(asyncio.CancelledError):
            await refresh_task
        await http_client.aclose()
        if db is not None:
            await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _state(request: Request) -> AppState:
    return request.app.state.sheetlink


async def health(request: Request) -> Response:
    state = _state(request)
    return JSONResponse(
        {
            "status": "ok",
            "version": __version__,
            "cache": state.cache.status().model_dump(),
            "stats": state.service.stats.to_dict(),
        }
    )


async def resolve_path(request: Request) -> Response:
    state = _state(request)
    messages = state.settings.messages
    base_url = state.settings.server.base_url

    # One resolver per request: concurrent requests never supersede each other
    resolver = Resolver(state.service, messages=messages, sink=LoggingSink())
    outcome = await resolver.resolve(request.url.path)

    if outcome.state is ResolverState.REDIRECTING and outcome.target is not None:
        return RedirectResponse(outcome.target, status_code=302)
    if outcome.state is ResolverState.NOT_FOUND:
        return HTMLResponse(render_not_found(messages, base_url), status_code=404)
    if outcome.state is ResolverState.ERRORING:
        return HTMLResponse(
            render_error(outcome.message or messages.generic, messages, base_url),
            status_code=503,
            headers={"Cache-Control": "no-store"},
        )
    return PlainTextResponse(messages.site_name)


def create_app(settings: Settings | None = None, *, state: AppState | None = None) -> Starlette:
    """Build the ASGI app. A prebuilt ``state`` skips resource creation (tests)."""

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        if state is not None:
            yield
            return
        async with build_state(settings if settings is not None else Settings()) as built:
            app.state.sheetlink = built
            yield

    app = Starlette(
        routes=[
            # Underscore keeps the route outside the short-link id space
            Route("/_health", health, methods=["GET"]),
            Route("/{path:path}", resolve_path, methods=["GET", "HEAD"]),
        ],
        lifespan=lifespan,
    )
    if state is not None:
        app.state.sheetlink = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    log.info("server_starting", version=__version__, host=settings.server.host)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
