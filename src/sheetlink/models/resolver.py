from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from sheetlink.errors import ErrorKind


class ResolverState(StrEnum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    NO_OP = "no_op"
    LOOKING_UP = "looking_up"
    NOT_FOUND = "not_found"
    REDIRECTING = "redirecting"
    ERRORING = "erroring"


TERMINAL_STATES: frozenset[ResolverState] = frozenset(
    {
        ResolverState.NO_OP,
        ResolverState.NOT_FOUND,
        ResolverState.REDIRECTING,
        ResolverState.ERRORING,
    }
)


class ResolveOutcome(BaseModel):
    """Terminal result of resolving one requested path."""

    state: ResolverState
    requested_path: str
    extracted_id: str | None = None
    target: str | None = None  # Set only when state is REDIRECTING
    error_kind: ErrorKind | None = None  # None for non-pipeline failures
    message: str | None = None  # User-facing, localized; set only when ERRORING
    trail: list[ResolverState] = []  # States visited, in order
    sequence: int = 0
