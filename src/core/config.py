"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.categories import CategoryTag, ShieldLevel


@dataclass(frozen=True)
class ShieldConfig:
    """Pipeline settings for the shield processor."""

    profile_id: str = "FOCUS"
    cache_capacity: int = 1000
    self_source: str = ""
    default_shield_level: ShieldLevel = ShieldLevel.SMART


@dataclass(frozen=True)
class ClassifierConfig:
    """Remote classifier limits and fallback behaviour."""

    timeout_seconds: float = 3.5
    summary_timeout_seconds: float = 5.0
    max_tokens: int = 10
    summary_max_tokens: int = 200
    summary_max_items: int = 30
    default_category: str = CategoryTag.PROMOTIONS.value
