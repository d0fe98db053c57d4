"""Render notification emails from Jinja2 templates.

Each message kind has an HTML and a plain-text template in the ``templates``
directory next to this module: ``<kind>.html`` and ``<kind>.txt``.
"""
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from event_planner.core.timeutil import ensure_utc

TEMPLATE_DIR = Path(__file__).parent / "templates"


def format_when(value: datetime | None) -> str:
    """Format a timestamp for email bodies: 'Monday, October 19, 2026 at 06:30 PM UTC'."""
    if value is None:
        return "Date TBD"
    return ensure_utc(value).strftime("%A, %B %d, %Y at %I:%M %p UTC")


environment = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)
environment.filters["when"] = format_when


def render(kind: str, **context) -> tuple[str, str]:
    """Return the (html, text) bodies for message ``kind``."""
    html = environment.get_template(f"{kind}.html").render(**context)
    text = environment.get_template(f"{kind}.txt").render(**context)
    return html, text.strip()


def sender_name(title: str | None) -> str:
    """Display name for the From header."""
    if title:
        return f"{title} - Confirmation"
    return "Event Confirmation"
