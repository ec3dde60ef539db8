"""Telegram client factory for the Saved Messages rescue channel.

The client is only built when rescue.method is "saved_messages"; the shield
itself never needs Telegram to make decisions.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

from core.errors import ConfigurationError


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    API_ID/API_HASH are read via python-dotenv to keep secrets out of the
    repo. The session name defaults to "notishield".
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "notishield")

    if not api_id or not api_hash:
        raise ConfigurationError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client for rescue alerts")

    return TelegramClient(session_name, int(api_id), api_hash)
