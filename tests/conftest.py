"""Shared fakes: a settable clock, a manual timer scheduler and a recording publisher."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from live_locations.domain.models import OutboundMessage, ParticipantAttributes


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeTimerHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Collects scheduled callbacks; tests fire them explicitly."""

    def __init__(self) -> None:
        self.handles: list[FakeTimerHandle] = []

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> FakeTimerHandle:
        handle = FakeTimerHandle(delay_seconds, callback)
        self.handles.append(handle)
        return handle

    def pending(self) -> list[FakeTimerHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self, handle: FakeTimerHandle) -> None:
        handle.fired = True
        handle.callback()

    def fire_all(self) -> None:
        for handle in self.pending():
            self.fire(handle)


class RecordingPublisher:
    """Keeps every published message in order."""

    def __init__(self) -> None:
        self.messages: list[OutboundMessage] = []

    async def publish(self, messages: list[OutboundMessage]) -> None:
        self.messages.extend(messages)

    def events(self) -> list[str]:
        return [m.event for m in self.messages]

    def of(self, event: str) -> list[OutboundMessage]:
        return [m for m in self.messages if m.event == event]

    def clear(self) -> None:
        self.messages.clear()


def make_attributes(name: str = "Swift Otter 1", user_id: str = "user_1") -> ParticipantAttributes:
    return ParticipantAttributes(
        stable_user_id=user_id,
        display_name=name,
        color="#e6194b",
        device_class="desktop",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def attributes() -> Callable[..., ParticipantAttributes]:
    return make_attributes
