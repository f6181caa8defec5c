"""
Fixed-rate scheduler.

Runs a job once immediately and then every `interval` seconds until
stopped.  Deadlines are anchored to the first run (start + k * interval);
if a job overruns, missed slots are skipped instead of fired back-to-back.
The clock and the sleep function are injectable so cycle timing can be
driven deterministically.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Scheduler:
    def __init__(
        self,
        job: Callable[[], object],
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], object]] = None,
        name: str = "scheduler",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.job = job
        self.interval = interval
        self.clock = clock
        self.name = name
        self.cycles = 0
        self._stop = threading.Event()
        # Event.wait returns early when stop() is called.
        self._sleep = sleep or self._stop.wait
        self._thread: Optional[threading.Thread] = None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run_job(self) -> None:
        try:
            self.job()
        except Exception:
            logger.exception("Loop error in %s", self.name)
        finally:
            self.cycles += 1

    def run_forever(self) -> None:
        next_run = self.clock()
        while not self._stop.is_set():
            self._run_job()

            next_run += self.interval
            now = self.clock()
            if next_run < now:
                skipped = int((now - next_run) // self.interval) + 1
                logger.warning("%s overran; skipping %d slot(s).", self.name, skipped)
                next_run += skipped * self.interval

            if self._stop.is_set():
                break
            self._sleep(next_run - now)


__all__ = ["Scheduler"]
