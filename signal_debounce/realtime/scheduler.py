from __future__ import annotations

import asyncio
import heapq
import itertools
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Protocol, Tuple

from signal_debounce.utils.config_utils import ConfigurationError


class TaskHandle(Protocol):
    def cancel(self) -> Any:
        ...


class SchedulerBase(ABC):
    """Runs a callback once after a delay; the returned handle cancels it."""

    @abstractmethod
    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TaskHandle:
        raise NotImplementedError

    @abstractmethod
    def now(self) -> float:
        raise NotImplementedError


class ThreadingScheduler(SchedulerBase):
    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TaskHandle:
        timer = threading.Timer(max(0.0, float(delay_s)), fn)
        timer.daemon = True
        timer.start()
        return timer

    def now(self) -> float:
        return time.monotonic()


class AsyncioScheduler(SchedulerBase):
    """Schedules on an asyncio event loop; callbacks run on the loop thread."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TaskHandle:
        return self.loop.call_later(max(0.0, float(delay_s)), fn)

    def now(self) -> float:
        return self.loop.time()


class _ManualTask:
    __slots__ = ("due", "seq", "fn", "cancelled")

    def __init__(self, due: float, seq: int, fn: Callable[[], None]):
        self.due = due
        self.seq = seq
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(SchedulerBase):
    """Virtual-clock scheduler; time only moves when advance() is called."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._seq = itertools.count()
        self._heap: List[Tuple[float, int, _ManualTask]] = []

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> TaskHandle:
        task = _ManualTask(self._now + max(0.0, float(delay_s)), next(self._seq), fn)
        heapq.heappush(self._heap, (task.due, task.seq, task))
        return task

    def now(self) -> float:
        return self._now

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, task in self._heap if not task.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every task that falls due on the way.

        Returns the number of tasks that ran.
        """
        if seconds < 0:
            raise ValueError("cannot advance a ManualScheduler backwards")
        target = self._now + float(seconds)
        ran = 0
        while self._heap and self._heap[0][0] <= target:
            due, _, task = heapq.heappop(self._heap)
            if task.cancelled:
                continue
            self._now = max(self._now, due)
            task.fn()
            ran += 1
        self._now = target
        return ran

    def run_pending(self) -> int:
        return self.advance(0.0)


def create_scheduler(kind: str = "threading") -> SchedulerBase:
    key = str(kind).strip().lower()
    if key == "threading":
        return ThreadingScheduler()
    if key == "asyncio":
        return AsyncioScheduler()
    if key == "manual":
        return ManualScheduler()
    raise ConfigurationError(f"Unknown scheduler kind: {kind!r}")
