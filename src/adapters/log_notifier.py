"""Rescue adapter that only writes urgent alerts to the log."""

from __future__ import annotations

import logging

from adapters.notification_formatting import format_urgent_alert

LOGGER = logging.getLogger(__name__)


class LoggingRescueNotifier:
    def __init__(self, source_aliases: dict[str, str]) -> None:
        self._source_aliases = source_aliases
        self.sent = 0

    async def emit_urgent_alert(self, source: str, title: str) -> None:
        self.sent += 1
        LOGGER.warning(format_urgent_alert(source, title, self._source_aliases, mode="plain"))
