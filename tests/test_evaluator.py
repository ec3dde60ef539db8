from __future__ import annotations

import asyncio
from typing import Any

from core import matcher
from core.categories import CRITICAL, CategoryTag, ShieldLevel
from core.classifier import RemoteClassifier
from core.config import ClassifierConfig
from core.decision_cache import DecisionCache
from core.errors import ClassifierError
from core.evaluator import ShieldEvaluator
from core.models import Event, Rule


class CountingBackend:
    def __init__(self, label: str = "promotions", error: bool = False) -> None:
        self.label = label
        self.error = error
        self.calls = 0

    async def complete(self, request: dict[str, Any]) -> dict[str, Any]:
        self.calls += 1
        if self.error:
            raise ClassifierError("unavailable")
        return {"choices": [{"message": {"content": self.label}}]}


def _evaluator(backend: CountingBackend) -> tuple[ShieldEvaluator, DecisionCache]:
    cache = DecisionCache()
    return ShieldEvaluator(RemoteClassifier(backend, ClassifierConfig()), cache), cache


def _rule(level: ShieldLevel, *tags: CategoryTag, keywords: tuple[str, ...] = ()) -> Rule:
    return Rule(
        source="com.app",
        profile_id="FOCUS",
        shield_level=level,
        active_tags=frozenset(tags),
        custom_keywords=keywords,
    )


PROMO = Event(source="com.shop", title="Flash Sale", body="Get 50% off today only")


def test_critical_breaks_through_fortress() -> None:
    backend = CountingBackend()
    evaluator, _ = _evaluator(backend)
    event = Event(source="com.bank", title="Bank Alert", body="Your account was debited by 5000")

    verdict = asyncio.run(evaluator.evaluate(event, _rule(ShieldLevel.FORTRESS)))

    assert verdict.allowed
    assert verdict.stage == "fast-critical"
    assert verdict.category == CRITICAL
    assert verdict.rescued
    assert backend.calls == 0


def test_suspicious_login_breaks_through_smart() -> None:
    evaluator, _ = _evaluator(CountingBackend())
    event = Event(source="com.mail", title="Suspicious login attempt", body="verify at once")
    verdict = asyncio.run(evaluator.evaluate(event, _rule(ShieldLevel.SMART)))
    assert verdict.allowed
    assert verdict.reason == "critical"


def test_open_and_none_allow_without_classifying() -> None:
    backend = CountingBackend()
    evaluator, _ = _evaluator(backend)
    for level in (ShieldLevel.OPEN, ShieldLevel.NONE):
        verdict = asyncio.run(evaluator.evaluate(PROMO, _rule(level)))
        assert verdict.allowed
        assert verdict.reason == f"shield:{level.value}"
    assert backend.calls == 0


def test_smart_allows_matching_tag() -> None:
    backend = CountingBackend()
    evaluator, _ = _evaluator(backend)
    event = Event(source="com.bank", title="Payment received", body="Rs 500 paid to Store")

    verdict = asyncio.run(evaluator.evaluate(event, _rule(ShieldLevel.SMART, CategoryTag.FINANCE)))

    assert verdict.allowed
    assert verdict.reason == "Finance"
    assert verdict.stage == "cache-rule-check"
    assert verdict.category == "Finance"
    assert backend.calls == 0


def test_smart_custom_keyword_allows() -> None:
    evaluator, _ = _evaluator(CountingBackend())
    rule = _rule(ShieldLevel.SMART, keywords=("flash",))
    verdict = asyncio.run(evaluator.evaluate(PROMO, rule))
    assert verdict.allowed
    assert verdict.reason == matcher.CUSTOM_RULE_REASON


def test_blocked_category_is_cached() -> None:
    backend = CountingBackend("promotions")
    evaluator, cache = _evaluator(backend)
    rule = _rule(ShieldLevel.SMART, CategoryTag.FINANCE)

    first = asyncio.run(evaluator.evaluate(PROMO, rule))
    second = asyncio.run(evaluator.evaluate(PROMO, rule))

    assert first.blocked and second.blocked
    assert first.stage == "remote-classify"
    assert second.stage == "cache-rule-check"
    assert first.category == second.category == "Promotions"
    assert not first.rescued
    assert backend.calls == 1
    assert cache.get("com.shop", "Flash Sale") == "Promotions"


def test_fortress_skips_tags_and_rescues_urgent_category() -> None:
    backend = CountingBackend("finance")
    evaluator, _ = _evaluator(backend)
    event = Event(source="com.bank", title="Payment received", body="Rs 500 paid to Store")

    verdict = asyncio.run(
        evaluator.evaluate(event, _rule(ShieldLevel.FORTRESS, CategoryTag.FINANCE))
    )

    assert verdict.blocked
    assert verdict.category == "Finance"
    assert verdict.rescued
    assert backend.calls == 1


def test_fallback_is_not_cached() -> None:
    backend = CountingBackend(error=True)
    evaluator, cache = _evaluator(backend)
    rule = _rule(ShieldLevel.SMART)

    for _ in range(2):
        verdict = asyncio.run(evaluator.evaluate(PROMO, rule))
        assert verdict.category == "Promotions"

    assert backend.calls == 2
    assert len(cache) == 0


def test_critical_label_is_rescued_and_not_cached() -> None:
    backend = CountingBackend("critical")
    evaluator, cache = _evaluator(backend)
    event = Event(source="com.app", title="Account notice", body="Please review")

    verdict = asyncio.run(evaluator.evaluate(event, _rule(ShieldLevel.SMART)))
    asyncio.run(evaluator.evaluate(event, _rule(ShieldLevel.SMART)))

    assert verdict.blocked
    assert verdict.category == CRITICAL
    assert verdict.rescued
    assert backend.calls == 2
    assert len(cache) == 0


def test_cached_title_is_still_checked_for_critical_body() -> None:
    backend = CountingBackend("updates")
    evaluator, _ = _evaluator(backend)
    rule = _rule(ShieldLevel.SMART)
    asyncio.run(evaluator.evaluate(Event("com.app", "Account notice", "Statement ready"), rule))

    verdict = asyncio.run(
        evaluator.evaluate(Event("com.app", "Account notice", "Suspicious login attempt"), rule)
    )

    assert verdict.allowed
    assert verdict.stage == "fast-critical"


def test_matcher_failure_falls_through(monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("bad pattern")

    monkeypatch.setattr(matcher, "evaluate", boom)
    backend = CountingBackend("news")
    evaluator, _ = _evaluator(backend)

    verdict = asyncio.run(evaluator.evaluate(PROMO, _rule(ShieldLevel.SMART, CategoryTag.PROMOTIONS)))

    assert verdict.blocked
    assert verdict.category == "News"
