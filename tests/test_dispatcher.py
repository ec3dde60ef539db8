from __future__ import annotations

import asyncio

import pytest

from core.dispatcher import EventDispatcher
from core.models import Event, Verdict


class FakeProcessor:
    """Sleeps for the number of milliseconds given in the event body."""

    def __init__(self) -> None:
        self.completed: list[str] = []
        self.active = 0
        self.peak = 0

    async def handle(self, event: Event) -> Verdict:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if event.body == "fail":
                raise RuntimeError("processor crashed")
            await asyncio.sleep(int(event.body) / 1000)
            self.completed.append(event.title)
            return Verdict(allowed=True, reason="test", stage="final")
        finally:
            self.active -= 1


def _events(*specs: tuple[str, str, str]) -> list[Event]:
    return [Event(source=source, title=title, body=body) for source, title, body in specs]


def test_all_events_get_a_verdict() -> None:
    processor = FakeProcessor()
    seen: list[str] = []
    dispatcher = EventDispatcher(processor)

    count = asyncio.run(
        dispatcher.run(
            _events(("a", "1", "5"), ("b", "2", "0"), ("a", "3", "fail")),
            on_verdict=lambda event, verdict: seen.append(event.title),
        )
    )

    assert count == 2
    assert sorted(seen) == ["1", "2"]


def test_sources_do_not_wait_on_each_other() -> None:
    processor = FakeProcessor()
    dispatcher = EventDispatcher(processor)
    asyncio.run(dispatcher.run(_events(("slow", "slow", "50"), ("fast", "fast", "0"))))
    assert processor.completed == ["fast", "slow"]


def test_serialize_per_source_keeps_arrival_order() -> None:
    processor = FakeProcessor()
    dispatcher = EventDispatcher(processor, serialize_per_source=True)
    asyncio.run(
        dispatcher.run(_events(("a", "first", "30"), ("a", "second", "0"), ("b", "other", "0")))
    )
    assert processor.completed.index("first") < processor.completed.index("second")
    assert processor.completed[0] == "other"


def test_max_in_flight_bounds_concurrency() -> None:
    processor = FakeProcessor()
    dispatcher = EventDispatcher(processor, max_in_flight=2)
    events = _events(*[(f"s{index}", str(index), "5") for index in range(6)])
    assert asyncio.run(dispatcher.run(events)) == 6
    assert processor.peak == 2


def test_max_in_flight_must_be_positive() -> None:
    with pytest.raises(ValueError):
        EventDispatcher(FakeProcessor(), max_in_flight=0)


def test_verdicts_flow_before_input_is_exhausted() -> None:
    processor = FakeProcessor()
    emitted: list[str] = []
    seen_when_pulled: list[int] = []

    def stream():
        for index in range(5):
            seen_when_pulled.append(len(emitted))
            yield Event(source=f"s{index}", title=str(index), body="0")

    dispatcher = EventDispatcher(processor)
    asyncio.run(dispatcher.run(stream(), on_verdict=lambda event, verdict: emitted.append(event.title)))

    assert seen_when_pulled[0] == 0
    assert seen_when_pulled[-1] > 0
    assert len(emitted) == 5


def test_async_stream_is_processed_while_open() -> None:
    processor = FakeProcessor()
    emitted: list[str] = []
    seen_when_pulled: list[int] = []

    async def stream():
        for index in range(3):
            seen_when_pulled.append(len(emitted))
            yield Event(source="chat.app", title=str(index), body="0")
            await asyncio.sleep(0.01)

    dispatcher = EventDispatcher(processor)
    asyncio.run(dispatcher.run(stream(), on_verdict=lambda event, verdict: emitted.append(event.title)))

    assert seen_when_pulled == [0, 1, 2]


def test_backlog_is_bounded_by_max_in_flight() -> None:
    processor = FakeProcessor()
    completed_when_pulled: list[int] = []

    def stream():
        for index in range(4):
            completed_when_pulled.append(len(processor.completed))
            yield Event(source="a", title=str(index), body="5")

    asyncio.run(EventDispatcher(processor, max_in_flight=1).run(stream()))

    for index, completed in enumerate(completed_when_pulled):
        assert completed >= index - 1


def test_idle_source_locks_are_released() -> None:
    processor = FakeProcessor()
    dispatcher = EventDispatcher(processor, serialize_per_source=True)
    events = _events(*[(f"s{index % 3}", str(index), "1") for index in range(9)])

    assert asyncio.run(dispatcher.run(events)) == 9
    assert dispatcher.tracked_sources == 0
