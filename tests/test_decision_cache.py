from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from core.categories import CRITICAL
from core.decision_cache import DecisionCache, build_cache_key


def test_key_uses_title_prefix() -> None:
    assert build_cache_key("app", "x" * 60) == "app|" + "x" * 50


def test_titles_sharing_prefix_share_entry() -> None:
    cache = DecisionCache()
    cache.put("app", "a" * 50 + " first", "News")
    assert cache.get("app", "a" * 50 + " second") == "News"


def test_lru_eviction() -> None:
    cache = DecisionCache(capacity=2)
    cache.put("app", "a", "News")
    cache.put("app", "b", "Updates")
    assert cache.get("app", "a") == "News"
    cache.put("app", "c", "Promotions")

    assert cache.get("app", "b") is None
    assert cache.get("app", "a") == "News"
    assert cache.get("app", "c") == "Promotions"
    assert len(cache) == 2


def test_critical_is_never_cached() -> None:
    cache = DecisionCache()
    assert cache.put("com.bank", "Alert", CRITICAL) is False
    assert cache.get("com.bank", "Alert") is None
    assert len(cache) == 0


def test_hit_and_miss_counters() -> None:
    cache = DecisionCache()
    cache.get("app", "t")
    cache.put("app", "t", "Work")
    cache.get("app", "t")
    assert (cache.hits, cache.misses) == (1, 1)


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        DecisionCache(capacity=0)


def test_concurrent_reads_and_writes_stay_bounded() -> None:
    cache = DecisionCache(capacity=16)
    categories = ["News", "Updates", CRITICAL, "Promotions"]

    def worker(seed: int) -> list[str]:
        returned = []
        for index in range(500):
            title = f"title {(seed * 7 + index) % 40}"
            cache.put("app", title, categories[(seed + index) % len(categories)])
            category = cache.get("app", title)
            if category is not None:
                returned.append(category)
            assert len(cache) <= cache.capacity
        return returned

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = [category for chunk in pool.map(worker, range(8)) for category in chunk]

    assert len(cache) <= 16
    assert results
    assert CRITICAL not in results
    assert cache.hits + cache.misses == 8 * 500
