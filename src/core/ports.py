"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, classification and rescue
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from core.models import Record, Rule


class RuleStorePort(Protocol):
    """Per-source rule persistence."""

    def get_rule(self, source: str, profile_id: str) -> Optional[Rule]:
        ...

    def upsert_rule(self, rule: Rule) -> None:
        ...

    def delete_rule(self, source: str, profile_id: str) -> None:
        ...

    def list_rules(self, profile_id: str) -> Sequence[Rule]:
        ...


class EventStorePort(Protocol):
    """Append-only log of blocked notifications."""

    def append(self, record: Record) -> None:
        ...

    def list_blocked(self, source: Optional[str] = None) -> Sequence[Record]:
        ...

    def delete_older_than(self, timestamp: int) -> int:
        ...

    def clear(self, source: Optional[str] = None) -> int:
        ...


class RescuePort(Protocol):
    """Out-of-band urgent channel, separate from normal delivery."""

    async def emit_urgent_alert(self, source: str, title: str) -> None:
        ...


class SignificantSenderPort(Protocol):
    """Oracle answering whether a display name belongs to a VIP contact."""

    def is_significant(self, display_name: str) -> bool:
        ...


class ChatBackendPort(Protocol):
    """Remote chat-completion backend.

    ``request`` is ``{"messages": [{"role", "content"}], "max_tokens": int}``
    and the returned mapping follows ``{"choices": [{"message": {"content"}}]}``.
    Implementations raise ``ClassifierError`` on transport or HTTP failures.
    """

    async def complete(self, request: dict[str, Any]) -> dict[str, Any]:
        ...
