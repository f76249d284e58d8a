"""CSV parser for spreadsheet exports.

Single-pass state machine over the character stream. Handles quoted fields
containing separators, newlines and ``""`` escapes, and accepts ``\\n``,
``\\r\\n`` or a bare ``\\r`` as the row separator. Field whitespace is kept
as-is; trimming belongs to the validator.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sheetlink.errors import SheetsDataError

_QUOTE = '"'
_SEPARATOR = ","
_NEEDS_QUOTING = frozenset({_QUOTE, _SEPARATOR, "\r", "\n"})


def parse_csv_rows(text: str) -> list[list[str]]:
    """Split CSV text into rows of fields, header row first.

    Rows whose fields are all empty or whitespace are not emitted. Raises
    ``SheetsDataError`` for empty input or when fewer than two rows remain.
    """
    if not isinstance(text, str) or not text.strip():
        raise SheetsDataError("Invalid CSV data: empty or non-string input")

    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    in_quotes = False
    at_field_start = True
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if in_quotes:
            if char == _QUOTE:
                if i + 1 < length and text[i + 1] == _QUOTE:
                    field.append(_QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                field.append(char)
            i += 1
            continue

        if char == _QUOTE and at_field_start:
            in_quotes = True
            at_field_start = False
            i += 1
            continue

        if char == _SEPARATOR:
            row.append("".join(field))
            field = []
            at_field_start = True
            i += 1
            continue

        if char == "\n" or char == "\r":
            row.append("".join(field))
            _emit(rows, row)
            row = []
            field = []
            at_field_start = True
            # \r\n counts as one separator
            i += 2 if char == "\r" and i + 1 < length and text[i + 1] == "\n" else 1
            continue

        field.append(char)
        at_field_start = False
        i += 1

    # Final row has no trailing separator. An unterminated quote keeps
    # whatever was collected.
    row.append("".join(field))
    _emit(rows, row)

    if len(rows) < 2:
        raise SheetsDataError(
            "Invalid CSV data: must contain at least header and one data row"
        )
    return rows


def _emit(rows: list[list[str]], row: list[str]) -> None:
    if any(value.strip() for value in row):
        rows.append(row)


def format_csv(rows: Iterable[Sequence[str]]) -> str:
    """Serialise rows back to CSV text, quoting fields only where required."""
    return "\n".join(_SEPARATOR.join(_quote_field(value) for value in row) for row in rows)


def _quote_field(value: str) -> str:
    if not value or not (_NEEDS_QUOTING & set(value)):
        return value
    return _QUOTE + value.replace(_QUOTE, _QUOTE * 2) + _QUOTE
