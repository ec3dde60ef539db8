"""Core notification processing pipeline.

This module is integration-agnostic. It only relies on ports for storage,
rescue alerts and the significant-sender oracle, enabling different
frontends or adapters without changes here.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.config import ShieldConfig
from core.evaluator import ShieldEvaluator
from core.models import Event, Record, Rule, Verdict
from core.ports import EventStorePort, RescuePort, RuleStorePort, SignificantSenderPort

LOGGER = logging.getLogger(__name__)

BOUNDARY_STAGE = "boundary"


class NotificationProcessor:
    """Orchestrates rule lookup, evaluation, persistence and rescue alerts."""

    def __init__(
        self,
        evaluator: ShieldEvaluator,
        rules: RuleStorePort,
        events: EventStorePort,
        rescue: RescuePort,
        config: ShieldConfig,
        significant_senders: Optional[SignificantSenderPort] = None,
    ) -> None:
        self._evaluator = evaluator
        self._rules = rules
        self._events = events
        self._rescue = rescue
        self._config = config
        self._significant = significant_senders

    async def handle(self, event: Event) -> Verdict:
        """Process one event through the shield and return its verdict."""

        if self._config.self_source and event.source == self._config.self_source:
            return Verdict(allowed=True, reason="self", stage=BOUNDARY_STAGE)

        if self._is_significant(event.title):
            LOGGER.debug("Significant sender %s bypassed the shield", event.title)
            return Verdict(allowed=True, reason="significant-sender", stage=BOUNDARY_STAGE)

        # Only explicitly configured sources are ever filtered.
        rule = self._load_rule(event.source)
        if rule is None:
            LOGGER.debug("No rule for %s, allowing passthrough", event.source)
            return Verdict(allowed=True, reason="no-rule", stage=BOUNDARY_STAGE)

        verdict = await self._evaluator.evaluate(event, rule)
        if verdict.allowed:
            LOGGER.info("Allowed %s from %s (%s)", event.title, event.source, verdict.reason)
            return verdict

        if verdict.rescued:
            LOGGER.info("Rescued %s from %s (%s)", event.title, event.source, verdict.category)
            await self._emit_rescue(event)
            return verdict

        # Group digests are suppressed but not logged, their children already are.
        if not event.is_group_digest:
            self._record(event, verdict)
        LOGGER.info("Blocked %s from %s (%s)", event.title, event.source, verdict.category)
        return verdict

    def _is_significant(self, display_name: str) -> bool:
        if self._significant is None or not display_name:
            return False
        try:
            return self._significant.is_significant(display_name)
        except Exception:
            LOGGER.exception("Significant-sender lookup failed for %s", display_name)
            return False

    def _load_rule(self, source: str) -> Optional[Rule]:
        try:
            return self._rules.get_rule(source, self._config.profile_id)
        except Exception:
            LOGGER.exception("Rule store unavailable for %s, treating as unconfigured", source)
            return None

    def _record(self, event: Event, verdict: Verdict) -> None:
        try:
            self._events.append(
                Record(
                    source=event.source,
                    title=event.title,
                    body=event.body,
                    timestamp=event.timestamp,
                    category=verdict.category or "",
                    is_blocked=True,
                )
            )
        except Exception:
            LOGGER.exception("Failed to record blocked event from %s", event.source)

    async def _emit_rescue(self, event: Event) -> None:
        try:
            await self._rescue.emit_urgent_alert(event.source, event.title)
        except Exception:
            LOGGER.exception("Rescue alert failed for %s", event.source)
