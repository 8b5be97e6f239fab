"""
Timers for delayed actions, scheduled actions and auto-advancement checks.

The scheduler only decides *when* a callback runs. Whether the callback still
has anything to do (auto-actions paused, flow moved on) is checked by the
engine at fire time, so timers are never cancelled individually.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Scheduler(ABC):
    """Abstract timer service with a wall clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time (timezone-aware UTC)."""

    @abstractmethod
    def call_later(self, delay_seconds: float, callback: Callback) -> None:
        """Run callback once, delay_seconds from now."""

    def start(self) -> None:
        """Begin firing callbacks."""

    def shutdown(self, wait: bool = True) -> None:
        """Stop firing callbacks and release workers."""


def _invoke(callback: Callback) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Scheduled callback %r failed", callback)


class ThreadedScheduler(Scheduler):
    """
    Single timer thread feeding a worker pool.

    The timer thread only orders callbacks by due time and hands each due
    callback to a ThreadPoolExecutor, so slow collaborator calls made by a
    callback never hold up other timers. Callbacks registered before start()
    are kept and fire once the scheduler is running.
    """

    def __init__(self, max_workers: int = 4):
        """
        Initialize the scheduler.

        Args:
            max_workers: Size of the callback worker pool.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._max_workers = max_workers
        self._heap: list[tuple[float, int, Callback]] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def call_later(self, delay_seconds: float, callback: Callback) -> None:
        due = time.monotonic() + max(0.0, delay_seconds)
        with self._cond:
            heapq.heappush(self._heap, (due, next(self._seq), callback))
            self._cond.notify()

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._heap)

    def start(self) -> None:
        with self._cond:
            if self._running:
                return
            self._running = True
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="deal-flow-worker",
            )
            self._thread = threading.Thread(
                target=self._run, name="deal-flow-timer", daemon=True
            )
            self._thread.start()
        logger.info("Scheduler started (%d workers)", self._max_workers)

    def shutdown(self, wait: bool = True) -> None:
        with self._cond:
            if not self._running:
                return
            self._running = False
            dropped = len(self._heap)
            self._heap.clear()
            self._cond.notify_all()

        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
        logger.info("Scheduler stopped (%d pending timers dropped)", dropped)

    def _run(self) -> None:
        while True:
            with self._cond:
                while self._running:
                    if self._heap:
                        remaining = self._heap[0][0] - time.monotonic()
                        if remaining <= 0:
                            break
                        self._cond.wait(remaining)
                    else:
                        self._cond.wait()
                if not self._running:
                    return
                _, _, callback = heapq.heappop(self._heap)
                executor = self._executor
            executor.submit(_invoke, callback)


class ManualScheduler(Scheduler):
    """
    Virtual-clock scheduler for tests and simulations.

    Time only moves when advance() is called; due callbacks then run
    synchronously on the calling thread, in due order, with the clock set to
    each callback's due time.
    """

    DEFAULT_START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or self.DEFAULT_START
        self._heap: list[tuple[datetime, int, Callback]] = []
        self._seq = itertools.count()
        self._lock = threading.RLock()

    def now(self) -> datetime:
        return self._now

    def call_later(self, delay_seconds: float, callback: Callback) -> None:
        with self._lock:
            due = self._now + timedelta(seconds=max(0.0, delay_seconds))
            heapq.heappush(self._heap, (due, next(self._seq), callback))

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._heap)

    def advance(self, seconds: float = 0.0) -> None:
        """Move the clock forward, firing every callback that falls due."""
        with self._lock:
            target = self._now + timedelta(seconds=seconds)

        while True:
            # Callbacks run unlocked: they take flow locks and call call_later.
            with self._lock:
                if not self._heap or self._heap[0][0] > target:
                    self._now = max(self._now, target)
                    return
                due, _, callback = heapq.heappop(self._heap)
                self._now = max(self._now, due)
            _invoke(callback)

    def advance_minutes(self, minutes: float) -> None:
        self.advance(minutes * 60)

    def run_pending(self) -> None:
        """Fire callbacks already due without moving the clock."""
        self.advance(0.0)
