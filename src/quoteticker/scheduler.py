"""Scheduler — two independent periodic triggers and their lifecycle.

The fetch trigger fires at the configured polling interval and hands each
cycle to a small executor, so a cycle slower than the interval never holds
back the next tick. The rotation trigger fires on its own fixed cadence.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from quoteticker.fetcher import Fetcher
from quoteticker.rotator import Rotator

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_INTERVAL = 15.0


class PeriodicTask:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread.

    The first call happens one interval after ``start()``. ``start()`` on a
    running task and ``stop()`` on a stopped one are no-ops; once ``stop()``
    returns no further tick begins.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], object]) -> None:
        if interval <= 0:
            raise ValueError(f"{name}: interval must be > 0")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run, args=(stop_event,), name=self.name, daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            self._thread = self._stop_event = None
        if thread is None or stop_event is None:
            return
        stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("%s tick failed", self.name)


class Scheduler:
    """Owns the fetch and rotation triggers.

    Usage::

        scheduler = Scheduler(fetcher, rotator, polling_interval=2.0)
        scheduler.start()   # returns after the initial fetch cycle
        ...
        scheduler.close()
    """

    def __init__(
        self,
        fetcher: Fetcher,
        rotator: Rotator,
        polling_interval: float,
        rotation_interval: float = DEFAULT_ROTATION_INTERVAL,
        max_concurrent_cycles: int = 4,
    ) -> None:
        self.fetcher = fetcher
        self.rotator = rotator
        self._fetch_task = PeriodicTask("quote-fetch-timer", polling_interval, self.trigger_fetch)
        self._rotate_task = PeriodicTask("quote-rotate-timer", rotation_interval, rotator.rotate_once)
        self._cycles = ThreadPoolExecutor(
            max_workers=max_concurrent_cycles, thread_name_prefix="quote-cycle",
        )
        self._lock = threading.Lock()
        self._started_once = False
        self._closed = False

    @property
    def running(self) -> bool:
        return self._fetch_task.running or self._rotate_task.running

    def start(self, wait: bool = True) -> None:
        """Start both triggers; the first start also runs one cycle at once.

        Args:
            wait: Run that initial cycle on the calling thread and return
                only after it completes. Otherwise submit it in the
                background.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Scheduler is closed")
            first = not self._started_once
            self._started_once = True
            self._fetch_task.start()
            self._rotate_task.start()

        if first:
            logger.info("Scheduler started, running initial fetch cycle")
            if wait:
                self.fetcher.run_cycle()
            else:
                self.trigger_fetch()

    def stop(self) -> None:
        """Halt both triggers. Idempotent; in-flight cycles may finish."""
        self._fetch_task.stop()
        self._rotate_task.stop()
        logger.info("Scheduler stopped")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.stop()
        self._cycles.shutdown(wait=False, cancel_futures=True)
        self.fetcher.close()

    def trigger_fetch(self) -> Future | None:
        """Submit one fetch cycle without waiting for it."""
        if self._closed:
            return None
        try:
            return self._cycles.submit(self.fetcher.run_cycle)
        except RuntimeError:
            # Executor shut down between the check and the submit
            return None

    def __enter__(self) -> Scheduler:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
