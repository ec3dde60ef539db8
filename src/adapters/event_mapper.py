"""JSON-lines to core Event mapping adapter.

This keeps wire-format details out of the core pipeline. Both camelCase and
snake_case keys are accepted so exports from mobile clients map directly.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Mapping, Optional, TextIO

from core.models import Event, Verdict

LOGGER = logging.getLogger(__name__)

_ALIASES: dict[str, tuple[str, ...]] = {
    "source": ("source", "packageName", "package_name", "app"),
    "title": ("title",),
    "body": ("body", "content", "text"),
    "is_group_digest": ("isGroupDigest", "is_group_digest", "isGroupSummary"),
    "is_conversation": ("isConversation", "is_conversation"),
    "is_group_conversation": ("isGroupConversation", "is_group_conversation"),
    "timestamp": ("timestamp", "postedAt"),
}


def _pick(payload: Mapping[str, Any], field: str) -> Any:
    for key in _ALIASES[field]:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


def event_from_payload(payload: Mapping[str, Any]) -> Event:
    """Build a core Event from a decoded JSON object."""

    if not isinstance(payload, Mapping):
        raise ValueError("Event payload must be a JSON object")
    source = _pick(payload, "source")
    if not source:
        raise ValueError("Event payload is missing 'source'")
    timestamp = _pick(payload, "timestamp")
    return Event(
        source=str(source),
        title=str(_pick(payload, "title") or ""),
        body=str(_pick(payload, "body") or ""),
        is_group_digest=_as_bool(_pick(payload, "is_group_digest")),
        is_conversation=_as_bool(_pick(payload, "is_conversation")),
        is_group_conversation=_as_bool(_pick(payload, "is_group_conversation")),
        timestamp=int(timestamp) if timestamp is not None else int(time.time() * 1000),
    )


def parse_event_line(line: str) -> Optional[Event]:
    """Parse one JSON line; blank lines return None."""

    stripped = line.strip()
    if not stripped:
        return None
    return event_from_payload(json.loads(stripped))


def _parse_numbered(line: str, line_number: int, skip_invalid: bool) -> Optional[Event]:
    try:
        return parse_event_line(line)
    except ValueError as exc:
        if not skip_invalid:
            raise ValueError(f"Invalid event on line {line_number}: {exc}") from exc
        LOGGER.warning("Skipping invalid event on line %s: %s", line_number, exc)
        return None


async def aiter_events(stream: TextIO, skip_invalid: bool = True) -> AsyncIterator[Event]:
    """Yield events from a JSON-lines stream, optionally skipping bad lines.

    Lines are read in the default executor so a blocking ``readline`` never
    stalls events that are already in flight.
    """

    loop = asyncio.get_running_loop()
    line_number = 0
    while True:
        line = await loop.run_in_executor(None, stream.readline)
        if not line:
            return
        line_number += 1
        event = _parse_numbered(line, line_number, skip_invalid)
        if event is not None:
            yield event


def verdict_to_payload(event: Event, verdict: Verdict) -> dict[str, Any]:
    return {
        "source": event.source,
        "title": event.title,
        "timestamp": event.timestamp,
        "allowed": verdict.allowed,
        "reason": verdict.reason,
        "stage": verdict.stage,
        "category": verdict.category,
        "rescued": verdict.rescued,
    }
