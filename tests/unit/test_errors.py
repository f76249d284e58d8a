"""Unit tests for the failure taxonomy."""

from __future__ import annotations

import pytest

from sheetlink.errors import (
    ErrorKind,
    SheetsAuthError,
    SheetsDataError,
    SheetsNetworkError,
    SheetsServiceError,
)


class TestErrorKinds:
    @pytest.mark.parametrize(
        ("cls", "kind", "recoverable"),
        [
            (SheetsAuthError, ErrorKind.AUTH, False),
            (SheetsNetworkError, ErrorKind.NETWORK, True),
            (SheetsDataError, ErrorKind.DATA, False),
            (SheetsServiceError, ErrorKind.SERVICE, True),
        ],
    )
    def test_default_kind(
        self, cls: type[SheetsServiceError], kind: ErrorKind, recoverable: bool
    ) -> None:
        error = cls("failure")
        assert isinstance(error, SheetsServiceError)
        assert error.kind is kind
        assert error.recoverable is recoverable

    def test_explicit_kind_overrides_default(self) -> None:
        assert SheetsDataError("x", kind=ErrorKind.NETWORK).kind is ErrorKind.NETWORK

    def test_cause_kept(self) -> None:
        cause = OSError("reset")
        assert SheetsNetworkError("x", cause=cause).cause is cause


class TestToDict:
    def test_envelope(self) -> None:
        error = SheetsAuthError("HTTP 403 Forbidden")
        assert error.to_dict() == {
            "error": {
                "kind": "auth",
                "message": "HTTP 403 Forbidden",
                "recoverable": False,
            }
        }
