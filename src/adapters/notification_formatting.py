"""Shared rescue alert formatting helpers.

Keeping formatting here prevents drift between adapters and keeps alerts
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from datetime import datetime
from typing import Optional

ALERT_HEADLINE = "Rescued notification"
ALERT_EXPLANATION = "The shield blocked this, but it looks urgent."


def format_source_label(source: str, source_aliases: dict[str, str]) -> str:
    """Return a human-friendly source label, using configured aliases."""

    alias = source_aliases.get(source)
    if not alias:
        return source
    return f"{alias} ({source})"


def _timestamp(when: Optional[datetime]) -> str:
    moment = when or datetime.now().astimezone()
    return moment.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()


def _format_markdown(source_label: str, title: str, when: Optional[datetime]) -> str:
    """Create the Markdown alert body used by Saved Messages."""

    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = [
        f"[{_timestamp(when)}]",
        f"**{ALERT_HEADLINE}:** {escape_md(title)}",
        f"**Source:** {escape_md(source_label)}",
        "",
        ALERT_EXPLANATION,
    ]
    return "\n".join(lines)


def _format_html(source_label: str, title: str, when: Optional[datetime]) -> str:
    """Create the HTML alert body used by the Bot API adapter."""

    parts = [
        f"[{html.escape(_timestamp(when))}]",
        f"<b>{ALERT_HEADLINE}:</b> {html.escape(title)}",
        f"<b>Source:</b> {html.escape(source_label)}",
        "",
        html.escape(ALERT_EXPLANATION),
    ]
    return "\n".join(parts)


def format_urgent_alert(
    source: str,
    title: str,
    source_aliases: dict[str, str],
    mode: str,
    when: Optional[datetime] = None,
) -> str:
    """Return the rescue alert formatted for the requested mode."""

    label = format_source_label(source, source_aliases)
    if mode == "markdown":
        return _format_markdown(label, title, when)
    if mode == "html":
        return _format_html(label, title, when)
    if mode == "plain":
        return f"{ALERT_HEADLINE}: {title} from {label}"
    raise ValueError(f"Unsupported notification format: {mode}")
