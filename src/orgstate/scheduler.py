"""
Timers for debounced autosave and periodic refresh.

AutosaveScheduler owns a single cancellable handle: each request cancels the
pending write and schedules a new one, so a burst of mutations produces one
write after a quiet period. Ticker re-runs a callback at a fixed interval.
"""
import logging
import threading
from functools import partial
from typing import Callable, Optional, Protocol

log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules a callback to run once after a delay in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Scheduler backed by daemon threading.Timer instances."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AutosaveScheduler:
    """Debounces write requests onto one timer handle."""

    def __init__(self, scheduler: Scheduler, flush: Callable[[], None], delay: float):
        self._scheduler = scheduler
        self._flush = flush
        self.delay = delay
        self._lock = threading.Lock()
        self._handle: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def request(self) -> None:
        """Schedule a write `delay` seconds from now, replacing any pending one."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            self._handle = self._scheduler.call_later(
                self.delay, partial(self._fire, self._generation)
            )

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer thread can fire after being replaced
            if generation != self._generation:
                return
            self._handle = None
        self._flush()


class Ticker:
    """Runs a callback every `interval` seconds until stopped."""

    def __init__(self, scheduler: Scheduler, interval: float, callback: Callable[[], None], name: str = "ticker"):
        self._scheduler = scheduler
        self.interval = interval
        self._callback = callback
        self.name = name
        self._lock = threading.Lock()
        self._handle: Optional[TimerHandle] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._arm()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None

    def _arm(self) -> None:
        self._handle = self._scheduler.call_later(self.interval, self._tick)

    def _tick(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._arm()
        try:
            self._callback()
        except Exception:
            log.exception("%s callback failed", self.name)
