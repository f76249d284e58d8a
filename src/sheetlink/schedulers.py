"""Background refresh of the record cache.

Keeps the cache warm so request handlers rarely pay for a fetch. Transient
failures (network, 5xx) back off exponentially with jitter; after
``max_transient_attempts`` consecutive transient failures, or after any
auth/data failure, the loop waits a full interval before trying again.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import structlog

from sheetlink.errors import TRANSIENT_KINDS, SheetsServiceError

if TYPE_CHECKING:
    from sheetlink.config import RefreshSettings
    from sheetlink.state import AppState

log = structlog.get_logger()

RefreshOutcome = Literal["success", "transient_failure", "semantic_failure"]


def _jittered_delay(base_seconds: float) -> float:
    return base_seconds * random.uniform(0.8, 1.2)


async def refresh_records(state: AppState) -> RefreshOutcome:
    """Fetch the sheet once and classify the result."""
    try:
        records = await state.service.refresh()
    except SheetsServiceError as exc:
        if exc.kind in TRANSIENT_KINDS:
            log.warning("refresh_transient_failure", kind=str(exc.kind), error=exc.message)
            return "transient_failure"
        log.warning("refresh_semantic_failure", kind=str(exc.kind), error=exc.message)
        return "semantic_failure"

    log.debug("refresh_success", records=len(records))
    return "success"


@dataclass
class RefreshBackoff:
    """Delay bookkeeping for the refresh loop.

    Transient failures double the delay up to ``max_backoff_seconds``. Once
    ``max_transient_attempts`` have failed in a row the loop is suspended for
    one full interval and the ladder starts again from the bottom.
    """

    settings: RefreshSettings
    delay_seconds: float = field(init=False)
    consecutive_failures: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.delay_seconds = self.settings.initial_backoff_seconds

    def reset(self) -> None:
        self.delay_seconds = self.settings.initial_backoff_seconds
        self.consecutive_failures = 0

    def next_delay(self, outcome: RefreshOutcome) -> float:
        """Return how long to wait after ``outcome`` and advance the state."""
        if outcome != "transient_failure":
            self.reset()
            return self.settings.interval_seconds

        self.consecutive_failures += 1
        if self.consecutive_failures >= self.settings.max_transient_attempts:
            log.warning(
                "refresh_transient_retry_suspended",
                consecutive_failures=self.consecutive_failures,
                cooldown_seconds=self.settings.interval_seconds,
            )
            self.reset()
            return self.settings.interval_seconds

        delay = _jittered_delay(self.delay_seconds)
        self.delay_seconds = min(self.delay_seconds * 2, self.settings.max_backoff_seconds)
        return delay


async def run_refresh_scheduler(state: AppState) -> None:
    """Refresh at startup and then keep the cache warm until cancelled."""
    settings = state.settings.refresh
    if not settings.enabled:
        return

    backoff = RefreshBackoff(settings)
    while True:
        try:
            outcome = await refresh_records(state)
        except Exception:
            log.warning("refresh_scheduler_error", exc_info=True)
            outcome = "semantic_failure"

        delay = backoff.next_delay(outcome)
        log.debug("refresh_next", outcome=outcome, delay_seconds=round(delay, 1))
        await asyncio.sleep(delay)
