"""Failure taxonomy for the spreadsheet data pipeline.

Every failure raised by the fetcher, parser or validator is a
``SheetsServiceError`` carrying an ``ErrorKind``. Callers that need to pick a
behaviour per failure (stale fallback, user-facing message) switch on
``exc.kind`` rather than on the exception class.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    AUTH = "auth"
    NETWORK = "network"
    DATA = "data"
    SERVICE = "service"


# Kinds that describe a temporary infrastructure problem. Stale cached data
# may be served in their place; auth/data failures always propagate.
TRANSIENT_KINDS: frozenset[ErrorKind] = frozenset({ErrorKind.NETWORK, ErrorKind.SERVICE})


class SheetsServiceError(Exception):
    """Umbrella failure for the sheet data pipeline.

    Raised directly for generic service failures (HTTP 5xx, unclassified
    errors). The subclasses below narrow ``kind`` for auth, network and data
    failures so callers may catch broadly or narrowly.
    """

    default_kind: ErrorKind = ErrorKind.SERVICE

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind if kind is not None else self.default_kind
        self.cause = cause

    @property
    def recoverable(self) -> bool:
        return self.kind in TRANSIENT_KINDS

    def to_dict(self) -> dict:
        return {
            "error": {
                "kind": str(self.kind),
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }


class SheetsAuthError(SheetsServiceError):
    """Access to the published sheet was denied."""

    default_kind = ErrorKind.AUTH


class SheetsNetworkError(SheetsServiceError):
    """Transport failure or an unexpected non-OK HTTP status."""

    default_kind = ErrorKind.NETWORK


class SheetsDataError(SheetsServiceError):
    """The sheet is missing, empty, or its contents cannot be used."""

    default_kind = ErrorKind.DATA
