"""Repeating background timers used by simulated push feeds."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """Invoke ``fn`` every ``interval`` seconds on a daemon thread until cancelled.

    The first call happens one interval after start(). Exceptions raised by
    ``fn`` are logged and the timer keeps running.

    Args:
        interval: Seconds between invocations.
        fn: Zero-argument callable.
        name: Thread name, for logs.
    """

    def __init__(self, interval: float, fn: Callable[[], Any], name: str = "repeating-timer") -> None:
        if interval <= 0:
            raise ValueError(f"RepeatingTimer interval must be positive, got {interval}")
        self.interval = interval
        self._fn = fn
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)
        self.ticks = 0

    def start(self) -> "RepeatingTimer":
        self._thread.start()
        return self

    def cancel(self) -> None:
        """Stop the timer; an in-progress invocation is allowed to finish."""
        self._stop.set()

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._fn()
            except Exception as exc:
                logger.warning("RepeatingTimer %s: callback raised %s", self._thread.name, exc)
            self.ticks += 1


class TimerGroup:
    """Running timers owned by one component.

    Stopped timers are dropped whenever a new one is added, so a long-lived
    owner only holds what is still running.
    """

    def __init__(self) -> None:
        self._timers: List[RepeatingTimer] = []
        self._lock = threading.Lock()

    def add(self, timer: RepeatingTimer) -> RepeatingTimer:
        with self._lock:
            self._timers = [t for t in self._timers if t.active]
            self._timers.append(timer)
        return timer

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)
