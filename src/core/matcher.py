"""Tag and custom-keyword matching (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional, Union

from core import patterns
from core.categories import TAG_PRIORITY, CategoryTag
from core.models import KEYWORD_DELIMITER, Event

CUSTOM_RULE_REASON = "custom-rule"


@dataclass(frozen=True)
class TagMatch:
    """Allow/deny outcome of the tag matcher with a human-readable reason."""

    allowed: bool
    reason: str
    tag: Optional[CategoryTag] = None


NO_MATCH = TagMatch(allowed=False, reason="")


def split_keywords(custom_keywords: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize custom keywords into lowercase, non-empty tokens.

    Accepts either the stored delimited string or an already split sequence;
    every element is split again so ``["otp, salary"]`` behaves like
    ``"otp, salary"``.
    """

    if not custom_keywords:
        return []
    raw = [custom_keywords] if isinstance(custom_keywords, str) else list(custom_keywords)
    tokens: List[str] = []
    for entry in raw:
        for token in entry.split(KEYWORD_DELIMITER):
            token = token.strip().lower()
            if token:
                tokens.append(token)
    return tokens


def _has_group_signal(event: Event) -> bool:
    # Digests carry no group flag of their own; their text decides.
    return event.is_group_conversation


def _is_direct_message(event: Event, combined: str) -> bool:
    if _has_group_signal(event):
        return False
    if patterns.is_chat_noise(combined):
        return False
    if event.is_conversation:
        return True
    return not patterns.match(CategoryTag.GROUP_THREADS, combined) and patterns.match(
        CategoryTag.DIRECT_CHATS, combined
    )


def _is_group_thread(event: Event, combined: str) -> bool:
    return _has_group_signal(event) or patterns.match(CategoryTag.GROUP_THREADS, combined)


def tag_holds(tag: CategoryTag, event: Event, combined: Optional[str] = None) -> bool:
    """Return True when the tag's conditions hold for the event."""

    text = combined if combined is not None else event.combined_text
    if tag is CategoryTag.DIRECT_CHATS:
        return _is_direct_message(event, text)
    if tag is CategoryTag.GROUP_THREADS:
        return _is_group_thread(event, text)
    return patterns.match(tag, text)


def evaluate(
    event: Event,
    active_tags: AbstractSet[CategoryTag],
    custom_keywords: Union[str, Iterable[str], None] = None,
) -> TagMatch:
    """Return whether the event is allowed by custom keywords or active tags.

    Matching logic:
    - Any custom keyword found in the combined text allows immediately.
    - Otherwise active tags are checked in fixed family priority order and
      the first tag whose conditions hold is the reason.
    """

    combined = event.combined_text
    lowered = combined.lower()
    if any(keyword in lowered for keyword in split_keywords(custom_keywords)):
        return TagMatch(allowed=True, reason=CUSTOM_RULE_REASON)

    if not active_tags:
        return NO_MATCH

    for tag in TAG_PRIORITY:
        if tag not in active_tags:
            continue
        if tag_holds(tag, event, combined):
            return TagMatch(allowed=True, reason=tag.reason, tag=tag)

    return NO_MATCH
