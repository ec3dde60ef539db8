"""Shield state machine for one event (core domain).

The evaluator enforces a strict order:
1) Fast-Critical: critical content always breaks through
2) Open/None levels allow without further work
3) Cache/Rule-Check: custom keywords and active tags (Smart only), then the
   decision cache for a prior non-critical category
4) Remote-Classify: only when nothing above resolved the category
5) Final: combine the category with the shield level and the rescue check

Internal faults in the matcher or cache never produce a block on their own;
they fall through to the next stage.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from core import matcher, patterns
from core.categories import CRITICAL, ShieldLevel
from core.classifier import RemoteClassifier
from core.decision_cache import DecisionCache
from core.models import Event, Rule, Verdict
from core.rescue import should_rescue

LOGGER = logging.getLogger(__name__)

CRITICAL_REASON = "critical"


class Stage(str, Enum):
    FAST_CRITICAL = "fast-critical"
    CACHE_RULE_CHECK = "cache-rule-check"
    REMOTE_CLASSIFY = "remote-classify"
    FINAL = "final"


class ShieldEvaluator:
    """Turns an event plus its rule into a verdict."""

    def __init__(self, classifier: RemoteClassifier, cache: DecisionCache) -> None:
        self._classifier = classifier
        self._cache = cache

    async def evaluate(self, event: Event, rule: Rule) -> Verdict:
        combined = event.combined_text

        if patterns.is_critical(combined):
            LOGGER.info("Critical content from %s broke through: %s", event.source, event.title)
            return Verdict(
                allowed=True,
                reason=CRITICAL_REASON,
                stage=Stage.FAST_CRITICAL.value,
                category=CRITICAL,
                rescued=True,
            )

        level = rule.shield_level
        if level in (ShieldLevel.OPEN, ShieldLevel.NONE):
            return Verdict(
                allowed=True,
                reason=f"shield:{level.value}",
                stage=Stage.FINAL.value,
            )

        if level is ShieldLevel.SMART:
            tag_match = self._match_tags(event, rule)
            if tag_match.allowed:
                LOGGER.debug("Allowed by tag/rule for %s: %s", event.source, tag_match.reason)
                return Verdict(
                    allowed=True,
                    reason=tag_match.reason,
                    stage=Stage.CACHE_RULE_CHECK.value,
                    category=tag_match.tag.value if tag_match.tag else None,
                )

        stage = Stage.CACHE_RULE_CHECK
        category = self._cached_category(event)
        if category is None:
            stage = Stage.REMOTE_CLASSIFY
            category = await self._classify(event)

        rescued = should_rescue(category, rule.active_tags)
        LOGGER.debug(
            "Blocking %s from %s | level=%s category=%s rescued=%s",
            event.title,
            event.source,
            level.value,
            category,
            rescued,
        )
        return Verdict(
            allowed=False,
            reason=f"shield:{level.value}",
            stage=stage.value,
            category=category,
            rescued=rescued,
        )

    def _match_tags(self, event: Event, rule: Rule) -> matcher.TagMatch:
        try:
            return matcher.evaluate(event, rule.active_tags, rule.custom_keywords)
        except Exception:
            LOGGER.exception("Tag evaluation failed for %s, treating as no match", event.source)
            return matcher.NO_MATCH

    def _cached_category(self, event: Event) -> Optional[str]:
        try:
            category = self._cache.get(event.source, event.title)
        except Exception:
            LOGGER.exception("Decision cache read failed for %s", event.source)
            return None
        if category is not None:
            LOGGER.debug("Cache hit %s for %s", category, event.title)
        return category

    async def _classify(self, event: Event) -> str:
        outcome = await self._classifier.classify_outcome(event.title, event.body, event.source)
        # Fallbacks are not cached so the next event retries the backend.
        if not outcome.fallback and outcome.category != CRITICAL:
            try:
                self._cache.put(event.source, event.title, outcome.category)
            except Exception:
                LOGGER.exception("Decision cache write failed for %s", event.source)
        return outcome.category
