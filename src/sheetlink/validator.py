"""Row validation and URL checks.

``validate_rows`` turns parsed CSV rows into ``URLRecord`` objects. A single
bad row is logged and skipped; a sheet with no usable rows at all is a hard
``SheetsDataError``.

Two levels of URL checking live here:

* ``is_parseable_url``: record-level: any absolute URL with a scheme.
* ``is_valid_destination``: user-input level: http/https with a real host.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from urllib.parse import urlsplit

import structlog

from sheetlink.errors import SheetsDataError
from sheetlink.models.records import URLRecord, UrlValidation
from sheetlink.parser import parse_csv_rows

log = structlog.get_logger()

REQUIRED_COLUMNS: tuple[str, ...] = ("id", "to", "description")

_ID_RE = re.compile(r"[a-zA-Z0-9]{6,8}")
_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")
# Schemes whose URLs are meaningless without a host
_HOST_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})
_VALID_PROTOCOLS = frozenset({"http", "https"})
_DESTINATION_RE = re.compile(
    r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_+.~#?&/=]*)"
)


def is_valid_id(value: str) -> bool:
    """Return True for exactly 6 to 8 ASCII letters or digits."""
    return isinstance(value, str) and _ID_RE.fullmatch(value) is not None


def is_parseable_url(value: str) -> bool:
    """Return True if ``value`` parses as an absolute URL of any scheme."""
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if not candidate:
        return False
    try:
        parts = urlsplit(candidate)
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError:
        return False

    if not _SCHEME_RE.fullmatch(parts.scheme):
        return False
    if parts.scheme.lower() in _HOST_SCHEMES:
        return bool(parts.hostname) and not any(c.isspace() for c in parts.netloc)
    return True


# ---------------------------------------------------------------------------
# Row validation
# ---------------------------------------------------------------------------


def validate_rows(rows: Sequence[Sequence[str]]) -> list[URLRecord]:
    """Build URL records from parsed rows (header row first).

    Columns are located by header name, so their order does not matter.
    """
    if not rows:
        raise SheetsDataError("Invalid CSV data: must contain at least header and one data row")

    headers = list(rows[0])
    normalised = [header.strip().lower() for header in headers]

    for column in REQUIRED_COLUMNS:
        if column not in normalised:
            raise SheetsDataError(
                f"Missing required column: {column}. Found columns: {', '.join(headers)}"
            )

    id_index = normalised.index("id")
    to_index = normalised.index("to")
    description_index = normalised.index("description")
    title_index = normalised.index("title") if "title" in normalised else None
    min_length = max(id_index, to_index, description_index) + 1

    records: list[URLRecord] = []

    # Row numbers in log events are 1-based sheet rows (header is row 1)
    for row_number, values in enumerate(rows[1:], start=2):
        if all(not value.strip() for value in values):
            continue

        if len(values) < min_length:
            log.warning("csv_row_skipped", row=row_number, reason="insufficient_columns")
            continue

        record_id = values[id_index].strip()
        to = values[to_index].strip()
        description = values[description_index].strip()

        if not record_id or not to:
            log.warning(
                "csv_row_skipped",
                row=row_number,
                reason="missing_required_fields",
                id=record_id,
                to=to,
            )
            continue

        if not is_valid_id(record_id):
            log.warning("csv_row_skipped", row=row_number, reason="invalid_id", id=record_id)
            continue

        if not is_parseable_url(to):
            log.warning("csv_row_skipped", row=row_number, reason="invalid_url", to=to)
            continue

        title: str | None = None
        if title_index is not None and title_index < len(values):
            title = values[title_index].strip() or None

        records.append(URLRecord(id=record_id, to=to, description=description, title=title))

    if not records:
        raise SheetsDataError("No valid records found in CSV data")

    return records


def parse_records(text: str) -> list[URLRecord]:
    """Parse and validate a raw CSV export in one step."""
    return validate_rows(parse_csv_rows(text))


# ---------------------------------------------------------------------------
# Destination URLs (user input)
# ---------------------------------------------------------------------------


def normalise_url(value: str) -> str:
    """Trim ``value`` and prefix ``https://`` when it has no http(s) scheme."""
    candidate = value.strip()
    if not candidate:
        return candidate
    if not candidate.startswith(("http://", "https://")):
        return f"https://{candidate}"
    return candidate


def is_valid_destination(value: str) -> bool:
    """Return True for an http(s) URL with a plausible host name."""
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if not is_parseable_url(candidate):
        return False
    if urlsplit(candidate).scheme.lower() not in _VALID_PROTOCOLS:
        return False
    return _DESTINATION_RE.fullmatch(candidate) is not None


def validation_message(value: str) -> str:
    """Explain why ``value`` is not an acceptable destination URL."""
    candidate = value.strip() if isinstance(value, str) else ""
    if not candidate:
        return "Please enter a URL"
    if not candidate.startswith(("http://", "https://")):
        return "URL must start with http:// or https://"
    if not is_parseable_url(candidate):
        return "Please enter a valid URL format"
    if not urlsplit(candidate).hostname:
        return "Please enter a valid domain name"
    return "Please enter a valid URL format"


def validate_and_normalise(value: str) -> UrlValidation:
    normalised = normalise_url(value)
    if is_valid_destination(normalised):
        return UrlValidation(is_valid=True, normalised_url=normalised)
    return UrlValidation(
        is_valid=False,
        normalised_url=normalised,
        error_message=validation_message(value),
    )
