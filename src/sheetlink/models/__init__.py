from __future__ import annotations

from sheetlink.models.qr import (
    BackgroundOptions,
    ColorStop,
    CornersDotOptions,
    CornersSquareOptions,
    DotsOptions,
    EncodingOptions,
    Gradient,
    ImageOptions,
    QRStyleOptions,
)
from sheetlink.models.records import CacheEntry, CacheStatus, URLRecord, UrlValidation
from sheetlink.models.resolver import TERMINAL_STATES, ResolveOutcome, ResolverState

__all__ = [
    # records
    "URLRecord",
    "CacheEntry",
    "CacheStatus",
    "UrlValidation",
    # resolver
    "ResolverState",
    "ResolveOutcome",
    "TERMINAL_STATES",
    # qr
    "QRStyleOptions",
    "DotsOptions",
    "CornersSquareOptions",
    "CornersDotOptions",
    "BackgroundOptions",
    "ImageOptions",
    "EncodingOptions",
    "Gradient",
    "ColorStop",
]
