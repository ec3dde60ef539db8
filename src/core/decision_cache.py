"""Bounded (source, title) -> category memoization (core domain)."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Optional

from core.categories import CRITICAL

LOGGER = logging.getLogger(__name__)

TITLE_KEY_CHARS = 50
KEY_SEPARATOR = "|"


def build_cache_key(source: str, title: str) -> str:
    """Return the cache key; only the first characters of the title count."""

    return f"{source}{KEY_SEPARATOR}{title[:TITLE_KEY_CHARS]}"


class DecisionCache:
    """Thread-safe LRU cache of resolved categories.

    Critical verdicts depend on body text that is not part of the key, so
    they are refused on ``put`` and treated as absent on ``get``.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, source: str, title: str) -> Optional[str]:
        key = build_cache_key(source, title)
        with self._lock:
            category = self._entries.get(key)
            if category is None or category == CRITICAL:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return category

    def put(self, source: str, title: str, category: str) -> bool:
        """Store a category; returns False when it was refused."""

        if category == CRITICAL:
            LOGGER.debug("Refusing to cache critical verdict for %s", source)
            return False
        key = build_cache_key(source, title)
        with self._lock:
            self._entries[key] = category
            self._entries.move_to_end(key)
            while len(self._entries) > self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                LOGGER.debug("Decision cache evicted %s", evicted)
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
