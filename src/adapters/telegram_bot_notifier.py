"""Telegram Bot API rescue adapter.

Uses the Bot API for delivery so urgent alerts can be routed via a bot chat.
"""

from __future__ import annotations

from typing import Optional

import httpx

from adapters.notification_formatting import format_urgent_alert


class TelegramBotNotifier:
    """Rescue adapter that sends urgent alerts via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        source_aliases: dict[str, str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._source_aliases = source_aliases
        self._transport = transport

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def emit_urgent_alert(self, source: str, title: str) -> None:
        """Send the formatted alert via the Bot API."""

        message = format_urgent_alert(source, title, self._source_aliases, mode="html")
        payload = {
            "chat_id": self._chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            response = await client.post(self._endpoint(), json=payload)
        if response.status_code != 200:
            raise RuntimeError(f"Bot API error {response.status_code}: {response.text}")
