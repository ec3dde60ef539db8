"""Category vocabulary and shield levels (core domain)."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Optional

LOGGER = logging.getLogger(__name__)

# Pseudo-category outside the user-selectable vocabulary. It always breaks
# through the shield and is never trusted from the decision cache.
CRITICAL = "Critical"


class CategoryTag(str, Enum):
    """User-selectable notification categories."""

    SECURITY = "Security"
    FINANCE = "Finance"
    EMERGENCY = "Emergency"
    DIRECT_CHATS = "DirectChats"
    GROUP_THREADS = "GroupThreads"
    MENTIONS = "Mentions"
    CALLS = "Calls"
    WORK = "Work"
    MEETINGS = "Meetings"
    DOCUMENTS = "Documents"
    STORAGE = "Storage"
    SMART_HOME = "SmartHome"
    HEALTH = "Health"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    NEWS = "News"
    UPDATES = "Updates"
    PROMOTIONS = "Promotions"

    @property
    def reason(self) -> str:
        return TAG_REASONS[self]

    @classmethod
    def parse(cls, value: str) -> Optional["CategoryTag"]:
        """Resolve a stored tag name, tolerating case and enum-style names."""

        cleaned = value.strip()
        if not cleaned:
            return None
        lowered = cleaned.lower().replace("_", "").replace(" ", "")
        for tag in cls:
            if lowered in (tag.value.lower(), tag.name.lower().replace("_", "")):
                return tag
        return None


class ShieldLevel(str, Enum):
    """Per-source blanket behaviour."""

    OPEN = "Open"
    SMART = "Smart"
    FORTRESS = "Fortress"
    NONE = "None"

    @classmethod
    def parse(cls, value: object, default: "ShieldLevel") -> "ShieldLevel":
        """Return the matching level, or ``default`` for unknown stored values."""

        if isinstance(value, ShieldLevel):
            return value
        text = str(value or "").strip().lower()
        for level in cls:
            if text in (level.value.lower(), level.name.lower()):
                return level
        LOGGER.warning("Unknown shield level %r, falling back to %s", value, default.value)
        return default


# Families are evaluated in this order; earlier families win ties.
TAG_FAMILIES: tuple[tuple[str, tuple[CategoryTag, ...]], ...] = (
    (
        "Safety & Finance",
        (CategoryTag.SECURITY, CategoryTag.FINANCE, CategoryTag.EMERGENCY),
    ),
    (
        "Personal Inbox",
        (
            CategoryTag.DIRECT_CHATS,
            CategoryTag.GROUP_THREADS,
            CategoryTag.MENTIONS,
            CategoryTag.CALLS,
        ),
    ),
    (
        "Work & Planning",
        (
            CategoryTag.WORK,
            CategoryTag.MEETINGS,
            CategoryTag.DOCUMENTS,
            CategoryTag.STORAGE,
        ),
    ),
    (
        "Activity & Home",
        (
            CategoryTag.SMART_HOME,
            CategoryTag.HEALTH,
            CategoryTag.TRANSPORT,
            CategoryTag.SHOPPING,
        ),
    ),
    (
        "Content & Awareness",
        (
            CategoryTag.ENTERTAINMENT,
            CategoryTag.NEWS,
            CategoryTag.UPDATES,
            CategoryTag.PROMOTIONS,
        ),
    ),
)

TAG_PRIORITY: tuple[CategoryTag, ...] = tuple(
    tag for _, tags in TAG_FAMILIES for tag in tags
)

TAG_REASONS: dict[CategoryTag, str] = {
    CategoryTag.SECURITY: "Security",
    CategoryTag.FINANCE: "Finance",
    CategoryTag.EMERGENCY: "Emergency",
    CategoryTag.DIRECT_CHATS: "Direct Message",
    CategoryTag.GROUP_THREADS: "Group Thread",
    CategoryTag.MENTIONS: "Mention",
    CategoryTag.CALLS: "Call",
    CategoryTag.WORK: "Work",
    CategoryTag.MEETINGS: "Meeting",
    CategoryTag.DOCUMENTS: "Document",
    CategoryTag.STORAGE: "Storage",
    CategoryTag.SMART_HOME: "Smart Home",
    CategoryTag.HEALTH: "Health",
    CategoryTag.TRANSPORT: "Transport",
    CategoryTag.SHOPPING: "Shopping",
    CategoryTag.ENTERTAINMENT: "Entertainment",
    CategoryTag.NEWS: "News",
    CategoryTag.UPDATES: "Update",
    CategoryTag.PROMOTIONS: "Promotion",
}

# Categories that may be rescued when the user also opted into them.
URGENT_TAGS: frozenset[CategoryTag] = frozenset(
    {CategoryTag.SECURITY, CategoryTag.FINANCE, CategoryTag.EMERGENCY}
)


def parse_tags(values: Iterable[str]) -> frozenset[CategoryTag]:
    """Parse stored tag names, skipping (and logging) unknown entries."""

    tags: set[CategoryTag] = set()
    for value in values:
        tag = CategoryTag.parse(value)
        if tag is None:
            if value.strip():
                LOGGER.warning("Ignoring unknown category tag %r", value)
            continue
        tags.add(tag)
    return frozenset(tags)
