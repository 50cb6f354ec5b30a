"""ExpirySweeper — recurring background eviction of expired overrides.

A single daemon thread wakes every ``interval`` seconds and runs one tick:
evict expired overrides through the coordinator (which broadcasts each
evicted domain), then poll the store for writes by other processes.

INVARIANT: A failing tick is logged and swallowed; the next tick always runs.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from grayctl.services.coordinator import Coordinator
    from grayctl.services.result import ServiceResult

log = structlog.get_logger(__name__)


class ExpirySweeper:
    """Timer thread driving :meth:`Coordinator.sweep`.

    Parameters:
        coordinator: The coordinator whose sweep path is invoked.
        interval: Seconds between ticks.
    """

    def __init__(self, coordinator: Coordinator, interval: float = 60.0) -> None:
        if interval <= 0:
            msg = f"Sweep interval must be positive, got {interval}"
            raise ValueError(msg)
        self._coordinator = coordinator
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.ticks = 0
        self.failures = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the timer thread. Calling start on a running sweeper is a no-op."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="grayctl-sweeper", daemon=True)
        self._thread.start()
        log.debug("sweeper_started", interval=self._interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the thread to exit and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        log.debug("sweeper_stopped", ticks=self.ticks, failures=self.failures)

    def tick(self) -> ServiceResult | None:
        """Run one sweep pass synchronously. Returns None if the pass raised."""
        self.ticks += 1
        try:
            result = self._coordinator.sweep()
            if result.ok:
                self._coordinator.poll_store()
        except Exception:
            self.failures += 1
            log.warning("sweep_failed", tick=self.ticks, exc_info=True)
            return None
        if not result.ok:
            self.failures += 1
            assert result.error is not None
            log.warning(
                "sweep_failed",
                tick=self.ticks,
                code=result.error.code,
                error=result.error.message,
            )
        elif result.data["count"]:
            log.info("overrides_evicted", domains=result.data["evicted"])
        return result

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.tick()
