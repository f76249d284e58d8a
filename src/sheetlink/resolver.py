"""Short-link resolution state machine.

Pure decision logic: receives a requested path and a record source, returns
a ``ResolveOutcome``. No knowledge of HTTP, HTML or Starlette; rendering is
delegated to an injected ``PresentationSink``.

    idle → extracting → no_op | not_found | looking_up
    looking_up → redirecting | not_found | erroring

A malformed identifier and a well-formed but unknown one both end in
``not_found``; callers cannot tell them apart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from sheetlink.config import MessageSettings
from sheetlink.errors import ErrorKind, SheetsServiceError
from sheetlink.models.resolver import ResolveOutcome, ResolverState
from sheetlink.validator import is_parseable_url, is_valid_id

if TYPE_CHECKING:
    from sheetlink.protocols import PresentationSink, RecordSourceProtocol

log = structlog.get_logger()


def extract_candidate(path: str) -> str | None:
    """Return the id candidate from a request path, or None for the root.

    Query string and fragment are ignored, as are the leading slash and a
    single trailing slash.
    """
    candidate = path.split("?", 1)[0].split("#", 1)[0].removeprefix("/")
    if not candidate:
        return None
    # "//" keeps its second slash and fails the id check
    return candidate.removesuffix("/") or candidate


def message_for(kind: ErrorKind | None, messages: MessageSettings) -> str:
    """Pick the user-facing message for a failure kind."""
    if kind is ErrorKind.AUTH:
        return messages.auth
    if kind is ErrorKind.NETWORK:
        return messages.network
    if kind is ErrorKind.DATA:
        return messages.data
    if kind is ErrorKind.SERVICE:
        return messages.service
    return messages.generic


class NullSink:
    """Discards outcomes. Satisfies headless and test contexts."""

    def emit(self, outcome: ResolveOutcome) -> None:
        return None


class LoggingSink:
    """Logs every terminal outcome at info level."""

    def emit(self, outcome: ResolveOutcome) -> None:
        log.info(
            "resolve_complete",
            path=outcome.requested_path,
            state=str(outcome.state),
            id=outcome.extracted_id,
            target=outcome.target,
            error_kind=str(outcome.error_kind) if outcome.error_kind else None,
        )


class Resolver:
    """Turns a requested path into a terminal ``ResolveOutcome``."""

    def __init__(
        self,
        source: RecordSourceProtocol,
        *,
        messages: MessageSettings | None = None,
        sink: PresentationSink | None = None,
    ) -> None:
        self._source = source
        self._messages = messages if messages is not None else MessageSettings()
        self._sink = sink if sink is not None else NullSink()
        self._sequence = 0

    async def resolve(self, path: str) -> ResolveOutcome:
        self._sequence += 1
        sequence = self._sequence
        trail = [ResolverState.IDLE]

        candidate = extract_candidate(path)
        if candidate is None:
            return self._finish(ResolverState.NO_OP, path, trail, sequence)

        trail.append(ResolverState.EXTRACTING)
        if not is_valid_id(candidate):
            return self._finish(ResolverState.NOT_FOUND, path, trail, sequence)

        trail.append(ResolverState.LOOKING_UP)
        try:
            record = await self._source.find_by_id(candidate)
        except SheetsServiceError as exc:
            log.warning("resolve_lookup_failed", id=candidate, kind=str(exc.kind), error=exc.message)
            return self._finish(
                ResolverState.ERRORING,
                path,
                trail,
                sequence,
                extracted_id=candidate,
                error_kind=exc.kind,
                message=message_for(exc.kind, self._messages),
            )
        except Exception:
            # Unrecognised failures still end in a user-facing message
            log.error("resolve_unexpected_error", id=candidate, exc_info=True)
            return self._finish(
                ResolverState.ERRORING,
                path,
                trail,
                sequence,
                extracted_id=candidate,
                message=self._messages.generic,
            )

        if record is None:
            return self._finish(
                ResolverState.NOT_FOUND, path, trail, sequence, extracted_id=candidate
            )

        if not is_parseable_url(record.to):
            log.warning("resolve_invalid_destination", id=candidate, to=record.to)
            return self._finish(
                ResolverState.ERRORING,
                path,
                trail,
                sequence,
                extracted_id=candidate,
                message=self._messages.invalid_destination,
            )

        return self._finish(
            ResolverState.REDIRECTING,
            path,
            trail,
            sequence,
            extracted_id=candidate,
            target=record.to.strip(),
        )

    def _finish(
        self,
        state: ResolverState,
        path: str,
        trail: list[ResolverState],
        sequence: int,
        *,
        extracted_id: str | None = None,
        target: str | None = None,
        error_kind: ErrorKind | None = None,
        message: str | None = None,
    ) -> ResolveOutcome:
        outcome = ResolveOutcome(
            state=state,
            requested_path=path,
            extracted_id=extracted_id,
            target=target,
            error_kind=error_kind,
            message=message,
            trail=[*trail, state],
            sequence=sequence,
        )
        # A newer navigation owns the sink; older results are returned but not rendered
        if sequence == self._sequence:
            self._sink.emit(outcome)
        else:
            log.debug("resolve_superseded", path=path, sequence=sequence, latest=self._sequence)
        return outcome
