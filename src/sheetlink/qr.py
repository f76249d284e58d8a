"""QR style configuration and the seam to the external renderer.

The renderer itself is a third-party visual transform reached through
``QRRendererProtocol``. This module owns only what is handed to it: the
payload string and a fully populated ``QRStyleOptions``.

Merge semantics for ``merge_style_options``:
  - nested option groups merge field by field (a partial ``dots`` override
    keeps the base ``dots.type`` when only ``dots.color`` is given)
  - scalar and list values in the override replace the base value
  - ``None`` in a mapping override means "not given" and keeps the base
  - a ``QRStyleOptions`` override contributes only explicitly set fields
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sheetlink.models.qr import QRStyleOptions
from sheetlink.validator import is_valid_id

if TYPE_CHECKING:
    from sheetlink.protocols import QRRendererProtocol

DEFAULT_STYLE = QRStyleOptions()


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_style_options(
    base: QRStyleOptions | None = None,
    override: QRStyleOptions | Mapping[str, Any] | None = None,
) -> QRStyleOptions:
    """Return ``base`` with ``override`` applied field by field."""
    base = base if base is not None else DEFAULT_STYLE
    if override is None:
        return base.model_copy(deep=True)
    if isinstance(override, QRStyleOptions):
        patch: Mapping[str, Any] = override.model_dump(exclude_unset=True)
    else:
        patch = override
    return QRStyleOptions.model_validate(_deep_merge(base.model_dump(), patch))


def short_url(base_url: str, record_id: str) -> str:
    """Build the public short URL encoded into a QR code for ``record_id``."""
    if not is_valid_id(record_id):
        raise ValueError(f"Invalid short-link id: {record_id!r}")
    return f"{base_url.rstrip('/')}/{record_id}"


def render_qr(
    renderer: QRRendererProtocol,
    data: str,
    *,
    base: QRStyleOptions | None = None,
    override: QRStyleOptions | Mapping[str, Any] | None = None,
) -> str:
    """Render ``data`` with merged options. Returns the renderer's image data URL."""
    if not data.strip():
        raise ValueError("QR payload must not be empty")
    return renderer.render(data.strip(), merge_style_options(base, override))
