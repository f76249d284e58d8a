"""Localized HTML for the not-found and error outcomes.

Pages are Jinja2 templates shipped in ``sheetlink/templates`` and rendered
with autoescaping on. All user-visible text comes from ``MessageSettings``;
no exception text, status code or class name is ever passed in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

if TYPE_CHECKING:
    from sheetlink.config import MessageSettings

_ENV = Environment(
    loader=PackageLoader("sheetlink", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=StrictUndefined,
)


def render_not_found(messages: MessageSettings, base_url: str = "") -> str:
    template = _ENV.get_template("not_found.html")
    return template.render(messages=messages, home_url=base_url or "/")


def render_error(message: str, messages: MessageSettings, base_url: str = "") -> str:
    template = _ENV.get_template("error.html")
    return template.render(message=message, messages=messages, home_url=base_url or "/")
