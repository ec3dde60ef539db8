"""Rescue decision for blocked events (core domain)."""

from __future__ import annotations

from typing import AbstractSet, Optional

from core.categories import CRITICAL, URGENT_TAGS, CategoryTag


def should_rescue(final_category: Optional[str], active_tags: AbstractSet[CategoryTag]) -> bool:
    """Return True when a blocked event must still reach the user.

    Critical always rescues. An urgent category (security, finance,
    emergency) rescues only when the user also opted into that tag, so the
    classifier alone never overrides an explicit block configuration.
    """

    if not final_category:
        return False
    if final_category == CRITICAL:
        return True
    tag = CategoryTag.parse(final_category)
    if tag is None:
        return False
    return tag in URGENT_TAGS and tag in active_tags
