"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from core.categories import CategoryTag, ShieldLevel

KEYWORD_DELIMITER = ","


@dataclass(frozen=True)
class Event:
    """One incoming notification as seen by the shield."""

    source: str
    title: str
    body: str
    is_group_digest: bool = False
    is_conversation: bool = False
    timestamp: int = 0
    is_group_conversation: bool = False

    @property
    def combined_text(self) -> str:
        return f"{self.title} {self.body}"


@dataclass(frozen=True)
class Rule:
    """Per-source shield configuration for one profile."""

    source: str
    profile_id: str
    shield_level: ShieldLevel = ShieldLevel.SMART
    active_tags: frozenset[CategoryTag] = field(default_factory=frozenset)
    custom_keywords: tuple[str, ...] = ()
    last_updated: int = 0

    @property
    def keywords_text(self) -> str:
        """Keywords joined the way the matcher and the store expect them."""

        return KEYWORD_DELIMITER.join(self.custom_keywords)


@dataclass(frozen=True)
class Record:
    """Persisted representation of a blocked notification."""

    source: str
    title: str
    body: str
    timestamp: int
    category: str
    is_blocked: bool = True
    id: Optional[int] = None


@dataclass(frozen=True)
class Verdict:
    """Final decision for one event."""

    allowed: bool
    reason: str
    stage: str
    category: Optional[str] = None
    rescued: bool = False

    @property
    def blocked(self) -> bool:
        return not self.allowed
