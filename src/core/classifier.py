"""Remote classifier adapter (core domain).

Wraps a chat-completion backend with a hard timeout and maps its free-text
answer onto the category vocabulary. Both operations are total: timeouts,
transport errors and unexpected labels all degrade to deterministic local
results instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from core.categories import CRITICAL, TAG_PRIORITY, CategoryTag
from core.config import ClassifierConfig
from core.errors import ClassifierError, ConfigurationError
from core.ports import ChatBackendPort

LOGGER = logging.getLogger(__name__)

CRITICAL_LABEL = "critical"
URGENT_PREFIX = "URGENT:"
SUMMARY_SENDER_LIMIT = 3

CLASSIFY_SYSTEM_PROMPT = (
    "You are a notification classification assistant. Respond with only one label."
)
SUMMARY_SYSTEM_PROMPT = "You are a helpful assistant. Be concise."

CATEGORY_HINTS: Mapping[CategoryTag, str] = {
    CategoryTag.SECURITY: "OTPs, login codes, 2FA, password resets, security alerts",
    CategoryTag.FINANCE: "bank alerts, debits, credits, payments, bills, salary",
    CategoryTag.EMERGENCY: "accidents, hospitals, police, disaster warnings",
    CategoryTag.DIRECT_CHATS: "one-to-one personal messages",
    CategoryTag.GROUP_THREADS: "group chats, channels, community threads",
    CategoryTag.MENTIONS: "@mentions, replies, tags, comments on your posts",
    CategoryTag.CALLS: "incoming, missed or video calls, voicemail",
    CategoryTag.WORK: "tasks, projects, reviews, approvals, deadlines",
    CategoryTag.MEETINGS: "meeting invites, calendar reminders, zoom, teams",
    CategoryTag.DOCUMENTS: "shared docs, sheets, slides, PDFs, edits",
    CategoryTag.STORAGE: "backups, sync, uploads, storage almost full",
    CategoryTag.SMART_HOME: "doorbell, cameras, thermostat, smart locks",
    CategoryTag.HEALTH: "workouts, steps, medication, sleep, appointments",
    CategoryTag.TRANSPORT: "rides, drivers, flights, trains, traffic",
    CategoryTag.SHOPPING: "orders, deliveries, shipping, tracking, carts",
    CategoryTag.ENTERTAINMENT: "streams, new episodes, games, streaks, music",
    CategoryTag.NEWS: "breaking news, headlines, stories",
    CategoryTag.UPDATES: "app updates, system messages, downloads, battery",
    CategoryTag.PROMOTIONS: "sales, discounts, offers, coupons, marketing",
}


def label_for(tag: CategoryTag) -> str:
    """Return the snake_case label the prompt advertises for a tag."""

    return tag.name.lower()


def _build_label_table() -> dict[str, str]:
    table: dict[str, str] = {CRITICAL_LABEL: CRITICAL, "urgent": CRITICAL}
    for tag in CategoryTag:
        table[label_for(tag)] = tag.value
        table[tag.value.lower()] = tag.value
        table[label_for(tag).replace("_", " ")] = tag.value
    # Labels from older prompt vocabularies still seen in model output.
    table.update(
        {
            "otp": CategoryTag.SECURITY.value,
            "money": CategoryTag.FINANCE.value,
            "finances": CategoryTag.FINANCE.value,
            "social": CategoryTag.DIRECT_CHATS.value,
            "messages": CategoryTag.DIRECT_CHATS.value,
            "productivity": CategoryTag.WORK.value,
            "events": CategoryTag.MEETINGS.value,
            "logistics": CategoryTag.SHOPPING.value,
            "gamification": CategoryTag.ENTERTAINMENT.value,
            "update": CategoryTag.UPDATES.value,
            "promos": CategoryTag.PROMOTIONS.value,
            "promotional": CategoryTag.PROMOTIONS.value,
            "noise": CategoryTag.PROMOTIONS.value,
        }
    )
    return table


LABEL_TABLE: Mapping[str, str] = _build_label_table()


def map_label(raw: str) -> Optional[str]:
    """Map a raw model answer to a category, or None when it is unknown."""

    label = raw.strip().lower().strip(" .\"'`")
    return LABEL_TABLE.get(label)


def build_classification_request(
    title: str, body: str, source: str, max_tokens: int
) -> dict[str, Any]:
    labels = ", ".join([CRITICAL_LABEL] + [label_for(tag) for tag in TAG_PRIORITY])
    rules = "\n".join(
        [f'- "{CRITICAL_LABEL}": emergencies, fraud, OTPs, anything that must never be missed.']
        + [f'- "{label_for(tag)}": {CATEGORY_HINTS[tag]}.' for tag in TAG_PRIORITY]
    )
    prompt = (
        f"Classify this notification into ONE category: {labels}.\n\n"
        f"App: {source}\n"
        f"Title: {title}\n"
        f"Content: {body}\n\n"
        f"Rules:\n{rules}\n\n"
        "Response format: Just the category name in lowercase."
    )
    return {
        "messages": [
            {"role": "system", "content": CLASSIFY_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": max_tokens,
    }


def cap_items(items: Sequence[str], limit: int) -> List[str]:
    """Keep the newest ``limit`` items and note how many were dropped."""

    if len(items) <= limit:
        return list(items)
    dropped = len(items) - limit
    return list(items[-limit:]) + [f"(and {dropped} more...)"]


def build_summary_request(source: str, items: Sequence[str], max_tokens: int) -> dict[str, Any]:
    listing = "\n".join(f"- {item}" for item in items)
    prompt = (
        f"Summarize these notifications from {source} concisely.\n"
        "You may use multiple lines or bullet points if necessary for clarity.\n"
        "If any message seems CRITICAL (emergency, money lost, otp), "
        f'start the summary with "{URGENT_PREFIX}".\n\n'
        f"Notifications:\n{listing}"
    )
    return {
        "messages": [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        "max_tokens": max_tokens,
    }


def extract_content(response: Mapping[str, Any]) -> str:
    """Return ``choices[0].message.content`` or raise ClassifierError."""

    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ClassifierError(f"Unexpected response shape: {exc!r}") from exc
    if not isinstance(content, str):
        raise ClassifierError("Response content is not text")
    return content.strip()


def fallback_summary(items: Sequence[str]) -> str:
    """Local summary built from the distinct "who" prefixes of the items."""

    senders: List[str] = []
    for item in items:
        who = item.split(":", 1)[0].strip()
        if who and who not in senders:
            senders.append(who)
    if not senders:
        return "Multiple notifications received."
    summary = f"Updates from {', '.join(senders[:SUMMARY_SENDER_LIMIT])}"
    if len(senders) > SUMMARY_SENDER_LIMIT:
        summary += "..."
    return summary


def is_urgent_summary(summary: str) -> bool:
    return summary.upper().startswith(URGENT_PREFIX)


@dataclass(frozen=True)
class ClassifierOutcome:
    """Category plus whether it came from the fallback path."""

    category: str
    fallback: bool


class RemoteClassifier:
    """Bounded-timeout classification and summarization over a chat backend."""

    def __init__(self, backend: Optional[ChatBackendPort], config: ClassifierConfig) -> None:
        default = map_label(config.default_category)
        if default is None or default == CRITICAL:
            raise ConfigurationError(
                f"default_category must be a category tag, got {config.default_category!r}"
            )
        self._backend = backend
        self._config = config
        self._default = default

    @property
    def default_category(self) -> str:
        return self._default

    def _fallback(self) -> ClassifierOutcome:
        return ClassifierOutcome(category=self._default, fallback=True)

    @staticmethod
    async def _call(backend: ChatBackendPort, request: dict[str, Any], timeout: float) -> str:
        # wait_for cancels the outbound call when the deadline passes.
        response = await asyncio.wait_for(backend.complete(request), timeout=timeout)
        return extract_content(response)

    async def classify_outcome(self, title: str, body: str, source: str) -> ClassifierOutcome:
        backend = self._backend
        if backend is None:
            LOGGER.debug("No classifier backend configured, using %s", self._default)
            return self._fallback()

        request = build_classification_request(title, body, source, self._config.max_tokens)
        try:
            raw = await self._call(backend, request, self._config.timeout_seconds)
        except asyncio.TimeoutError:
            LOGGER.warning(
                "Classifier timed out after %.1fs for %s, using %s",
                self._config.timeout_seconds,
                source,
                self._default,
            )
            return self._fallback()
        except ClassifierError as exc:
            LOGGER.warning("Classifier failed for %s, using %s: %s", source, self._default, exc)
            return self._fallback()
        except Exception:
            LOGGER.exception("Unexpected classifier failure for %s", source)
            return self._fallback()

        category = map_label(raw)
        if category is None:
            LOGGER.warning("Unexpected classifier label %r for %s, using %s", raw, source, self._default)
            return self._fallback()
        LOGGER.debug("Classifier verdict %s for %s", category, source)
        return ClassifierOutcome(category=category, fallback=False)

    async def classify(self, title: str, body: str, source: str) -> str:
        """Return a category for the notification; never raises."""

        outcome = await self.classify_outcome(title, body, source)
        return outcome.category

    async def summarize(self, source: str, items: Sequence[str]) -> str:
        """Summarize notifications, falling back to a local sender list."""

        if not items:
            return "No notifications."
        backend = self._backend
        if backend is None:
            return fallback_summary(items)

        limited = cap_items(items, self._config.summary_max_items)
        request = build_summary_request(source, limited, self._config.summary_max_tokens)
        try:
            summary = await self._call(backend, request, self._config.summary_timeout_seconds)
        except asyncio.TimeoutError:
            LOGGER.warning("Summary timed out for %s", source)
            return fallback_summary(items)
        except ClassifierError as exc:
            LOGGER.warning("Summary failed for %s: %s", source, exc)
            return fallback_summary(items)
        except Exception:
            LOGGER.exception("Unexpected summary failure for %s", source)
            return fallback_summary(items)

        if not summary:
            return fallback_summary(items)
        if is_urgent_summary(summary):
            LOGGER.warning("Urgent content detected in blocked notifications from %s", source)
        return summary
