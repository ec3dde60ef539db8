"""Static configuration for notishield.

All user-editable settings (profile, shield, classifier, rescue channel,
logging) live in a single JSON file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The config path can be overridden to run several profiles side by side.
CONFIG_PATH = os.getenv("NOTISHIELD_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite database with rules and blocked notifications.
_database = _CONFIG.get("database", {})
DB_PATH = _resolve_path(_database.get("path", "notishield.db"))

# Rules are looked up in one profile at a time.
PROFILE_ID = str(_CONFIG.get("profile", "FOCUS"))

# Shield behaviour:
# - CACHE_CAPACITY: decision cache entries before LRU eviction
# - SELF_SOURCE: our own source id, never filtered
# - DEFAULT_SHIELD_LEVEL: used for new rules and for unknown stored levels
_shield = _CONFIG.get("shield", {})
CACHE_CAPACITY = int(_shield.get("cache_capacity", 1000))
SELF_SOURCE = _shield.get("self_source", "")
DEFAULT_SHIELD_LEVEL = _shield.get("default_shield_level", "Smart")

# Remote classifier settings; the API key itself comes from the environment.
_classifier = _CONFIG.get("classifier", {})
CLASSIFIER_ENABLED = bool(_classifier.get("enabled", True))
CLASSIFIER_BASE_URL = _classifier.get("base_url", "https://api.openai.com")
CLASSIFIER_MODEL = _classifier.get("model", "gpt-4o-mini")
CLASSIFIER_TIMEOUT_SECONDS = float(_classifier.get("timeout_seconds", 3.5))
SUMMARY_TIMEOUT_SECONDS = float(_classifier.get("summary_timeout_seconds", 5.0))
CLASSIFIER_MAX_TOKENS = int(_classifier.get("max_tokens", 10))
SUMMARY_MAX_TOKENS = int(_classifier.get("summary_max_tokens", 200))
SUMMARY_MAX_ITEMS = int(_classifier.get("summary_max_items", 30))
DEFAULT_CATEGORY = _classifier.get("default_category", "Promotions")

# Rescue channel switches adapters without changing core logic.
_rescue = _CONFIG.get("rescue", {})
RESCUE_METHOD = _rescue.get("method", "log")
# Bot chat id is only required when method=bot.
BOT_CHAT_ID = _rescue.get("bot_chat_id")

# Human-friendly labels for sources in rescue alerts.
SOURCE_ALIASES = dict(_CONFIG.get("source_aliases", {}))

# Display names that always pass, like starred contacts.
SIGNIFICANT_SENDERS = list(_CONFIG.get("significant_senders", []))

# Blocked notifications older than this are removed by `prune`.
_retention = _CONFIG.get("retention", {})
BLOCKED_RETENTION_DAYS = int(_retention.get("blocked_days", 7))

# Event stream concurrency.
_runner = _CONFIG.get("runner", {})
MAX_IN_FLIGHT = int(_runner.get("max_in_flight", 32))
SERIALIZE_PER_SOURCE = bool(_runner.get("serialize_per_source", False))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
