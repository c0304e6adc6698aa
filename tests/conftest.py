"""Shared fixtures: a fake clock and a hand-driven tick scheduler."""

from typing import Callable, List

import pytest

from mindlock.notify import NotificationCenter, RecordingNavigator
from mindlock.store.memory import InMemoryStore


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _Handle:
    def __init__(self, scheduler: "ManualScheduler", callback: Callable[[], None]) -> None:
        self.scheduler = scheduler
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Ticks only when the test calls fire()."""

    def __init__(self) -> None:
        self.handles: List[_Handle] = []

    def schedule(self, interval: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle(self, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> List[_Handle]:
        return [h for h in self.handles if not h.cancelled]

    def fire(self) -> None:
        for handle in self.active:
            handle.callback()

    def advance(self, clock: FakeClock, seconds: int) -> None:
        """Move time forward one second at a time, ticking after each step."""
        for _ in range(seconds):
            clock.advance(1)
            self.fire()


class BrokenScheduler:
    def schedule(self, interval, callback):
        raise RuntimeError("no running event loop")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def broken_scheduler():
    return BrokenScheduler()


@pytest.fixture
def notifier():
    return NotificationCenter()


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def store():
    return InMemoryStore(seed=True)
