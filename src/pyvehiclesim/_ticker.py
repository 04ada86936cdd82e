"""Fixed-rate background ticker used to drive the simulation."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

_logger = logging.getLogger(__name__)


class Ticker(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TickerFactory = Callable[[float, Callable[[], None]], Ticker]


class PeriodicTicker:
    """Call *callback* every *interval* seconds on a daemon thread.

    Ticks are scheduled at a fixed rate against ``time.monotonic``; a tick
    that overruns its slot delays the next one instead of queueing up
    extra calls. :meth:`cancel` stops future ticks and never waits for a
    tick in progress, so it is safe to call while holding a lock the
    callback needs.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        *,
        initial_delay: float | None = None,
        name: str = "vehicle-ticker",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._callback = callback
        self._initial_delay = interval if initial_delay is None else initial_delay
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not threading.current_thread() and self._thread.is_alive():
            self._thread.join(timeout)

    def _run(self) -> None:
        deadline = time.monotonic() + self._initial_delay
        while not self._cancelled.wait(max(0.0, deadline - time.monotonic())):
            try:
                self._callback()
            except Exception:
                _logger.exception("Tick callback failed")
            deadline += self._interval
            now = time.monotonic()
            if deadline < now:
                deadline = now
