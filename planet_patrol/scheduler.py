"""
Interval-driven background refresh loops.

Each loop owns one daemon thread. A tick runs the refresh callable under the
loop's retry policy; a tick that fires while a refresh is still running is
skipped, so at most one refresh per loop is ever in flight.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from planet_patrol.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class RefreshStatus:
    """Bookkeeping for one loop, read by the status endpoint."""

    last_started_at: Optional[float] = None
    last_success_at: Optional[float] = None
    last_failure_at: Optional[float] = None
    last_error: Optional[str] = None
    consecutive_failures: int = 0
    skipped_ticks: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


class RefreshLoop:
    def __init__(
        self,
        name: str,
        refresh: Callable[[], object],
        interval_seconds: float,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self.interval_seconds = interval_seconds
        self.retry_policy = retry_policy or RetryPolicy.no_retry()
        self.status = RefreshStatus()
        self._refresh = refresh
        self._busy = threading.Lock()
        self._status_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._busy.locked()

    def trigger(self, deadline: Optional[float] = None) -> bool:
        """
        Run one refresh (with retries) in the calling thread.

        Returns False without doing anything when a refresh is already in
        flight. ``deadline`` is a ``time.monotonic()`` value past which no
        retry is scheduled.
        """
        if not self._busy.acquire(blocking=False):
            self._record_skip()
            logger.debug("[%s] refresh already in progress, skipping", self.name)
            return False
        try:
            self._run_with_retry(deadline)
        finally:
            self._busy.release()
        return True

    def trigger_in_background(self) -> bool:
        """
        Start one refresh on a worker thread unless one is already running.

        Retries stop where the next scheduled tick would take over.
        """
        if not self._busy.acquire(blocking=False):
            self._record_skip()
            return False
        deadline = time.monotonic() + self.interval_seconds

        def _target():
            try:
                self._run_with_retry(deadline)
            finally:
                self._busy.release()

        threading.Thread(
            target=_target, name=f"refresh-{self.name}-manual", daemon=True
        ).start()
        return True

    def _record_skip(self) -> None:
        with self._status_lock:
            self.status.skipped_ticks += 1

    def _run_with_retry(self, deadline: Optional[float]) -> bool:
        attempts = 0
        while not self._stop.is_set():
            attempts += 1
            self.status.last_started_at = time.time()
            try:
                self._refresh()
            except Exception as exc:
                self.status.last_failure_at = time.time()
                self.status.last_error = f"{exc.__class__.__name__}: {exc}"
                self.status.consecutive_failures += 1
                logger.exception("[%s] refresh attempt %d failed", self.name, attempts)
                if not self.retry_policy.should_retry(attempts):
                    return False
                delay = self.retry_policy.delay(attempts)
                if deadline is not None and time.monotonic() + delay >= deadline:
                    logger.warning(
                        "[%s] next retry would overrun the next scheduled refresh; giving up",
                        self.name,
                    )
                    return False
                logger.info("[%s] retrying in %.1fs", self.name, delay)
                if self._stop.wait(delay):
                    return False
                continue

            self.status.last_success_at = time.time()
            self.status.last_error = None
            self.status.consecutive_failures = 0
            return True
        return False

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run_forever, name=f"refresh-{self.name}", daemon=True
        )
        self._thread.start()
        logger.info("[%s] refresh loop started (every %ss)", self.name, self.interval_seconds)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("[%s] refresh loop stopped", self.name)

    def _run_forever(self) -> None:
        while not self._stop.is_set():
            deadline = time.monotonic() + self.interval_seconds
            self.trigger(deadline=deadline)
            if self._stop.wait(max(0.0, deadline - time.monotonic())):
                break
