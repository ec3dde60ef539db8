"""Telegram rescue adapter for Saved Messages.

Formats a Markdown alert and sends it to the user's Saved Messages.
"""

from __future__ import annotations

from adapters.notification_formatting import format_urgent_alert


class TelegramSavedMessagesNotifier:
    """Rescue adapter that sends urgent alerts to the user's Saved Messages."""

    def __init__(self, client, source_aliases: dict[str, str]) -> None:
        self._client = client
        self._source_aliases = source_aliases

    async def emit_urgent_alert(self, source: str, title: str) -> None:
        message = format_urgent_alert(source, title, self._source_aliases, mode="markdown")
        await self._client.send_message("me", message, parse_mode="Markdown")
