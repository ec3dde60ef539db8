"""Concurrent event dispatch (core domain).

Each event runs as its own asyncio task. Different sources never wait on each
other; callers that need per-sender ordering enable ``serialize_per_source``.
Events are pulled one at a time, so verdicts flow while the input is still
open and at most ``max_in_flight`` events are held in memory.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterable, AsyncIterator, Callable, Iterable, Optional, Union

from core.models import Event, Verdict
from core.processor import NotificationProcessor

LOGGER = logging.getLogger(__name__)

VerdictCallback = Callable[[Event, Verdict], None]
EventSource = Union[Iterable[Event], AsyncIterable[Event]]


async def _pull(events: EventSource) -> AsyncIterator[Event]:
    if isinstance(events, AsyncIterable):
        async for event in events:
            yield event
        return
    for event in events:
        yield event
        # Let started events run before the next pull.
        await asyncio.sleep(0)


class EventDispatcher:
    """Bounded fan-out of events onto the processor."""

    def __init__(
        self,
        processor: NotificationProcessor,
        max_in_flight: int = 32,
        serialize_per_source: bool = False,
    ) -> None:
        if max_in_flight <= 0:
            raise ValueError("max_in_flight must be positive")
        self._processor = processor
        self._max_in_flight = max_in_flight
        self._serialize = serialize_per_source
        self._source_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def tracked_sources(self) -> int:
        """Sources that currently hold or wait for a per-source lock."""

        return len(self._source_locks)

    @asynccontextmanager
    async def _source_turn(self, source: str) -> AsyncIterator[None]:
        lock = self._source_locks.get(source)
        if lock is None:
            lock = self._source_locks[source] = asyncio.Lock()
        self._lock_users[source] = self._lock_users.get(source, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[source] -= 1
            if not self._lock_users[source]:
                del self._lock_users[source]
                del self._source_locks[source]

    async def _process(self, event: Event) -> Optional[Verdict]:
        try:
            if self._serialize:
                async with self._source_turn(event.source):
                    return await self._processor.handle(event)
            return await self._processor.handle(event)
        except Exception:
            LOGGER.exception("Error while processing event from %s", event.source)
            return None

    async def run(self, events: EventSource, on_verdict: Optional[VerdictCallback] = None) -> int:
        """Process all events and return how many produced a verdict."""

        slots = asyncio.Semaphore(self._max_in_flight)
        pending: set[asyncio.Task] = set()
        processed = 0

        async def _one(event: Event) -> None:
            nonlocal processed
            try:
                verdict = await self._process(event)
            finally:
                slots.release()
            if verdict is None:
                return
            processed += 1
            if on_verdict is not None:
                on_verdict(event, verdict)

        async for event in _pull(events):
            # A slot is taken before the task exists, so the backlog is bounded.
            # Tasks start in arrival order, which keeps per-source locks FIFO.
            await slots.acquire()
            task = asyncio.create_task(_one(event))
            pending.add(task)
            task.add_done_callback(pending.discard)

        if pending:
            await asyncio.gather(*pending)
        return processed
