"""
Shared fixtures: a manual scheduler, a settable clock and a write-recording storage.
"""
from datetime import UTC, datetime, timedelta

import pytest

from src.orgstate.storage import MemoryStorage
from src.orgstate.store import ApplicationStateStore


class FakeHandle:
    def __init__(self, due: float, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Runs callbacks only when the test advances time."""

    def __init__(self):
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.now = handle.due
            handle.fired = True
            handle.callback()
        self.now = target


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingStorage(MemoryStorage):
    """MemoryStorage that remembers the key of every successful write."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.writes: list[str] = []

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self.writes.append(key)

    def count(self, key: str = "appData") -> int:
        return self.writes.count(key)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 15, 10, 0, tzinfo=UTC))


@pytest.fixture
def storage():
    return RecordingStorage()


@pytest.fixture
def make_store(scheduler, clock):
    def _make(storage=None, settings=None, load=True):
        backend = storage if storage is not None else RecordingStorage()
        store = ApplicationStateStore(backend, settings=settings, scheduler=scheduler, clock=clock)
        if load:
            store.load()
        return store
    return _make


@pytest.fixture
def store(make_store, storage):
    return make_store(storage)
