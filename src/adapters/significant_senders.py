"""Significant-sender oracle backed by a static list of display names."""

from __future__ import annotations

from typing import Iterable


class StaticSignificantSenders:
    """Case-insensitive exact match on configured VIP display names."""

    def __init__(self, names: Iterable[str]) -> None:
        self._names = {name.strip().casefold() for name in names if name and name.strip()}

    def is_significant(self, display_name: str) -> bool:
        if not display_name:
            return False
        return display_name.strip().casefold() in self._names
