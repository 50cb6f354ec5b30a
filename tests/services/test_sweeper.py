"""Tests for the ExpirySweeper timer thread."""

from __future__ import annotations

import threading

import pytest

from grayctl.domain.policy import OverrideState
from grayctl.services.coordinator import Coordinator
from grayctl.services.result import ServiceResult
from grayctl.services.sweeper import ExpirySweeper
from tests.conftest import FakeClock


class _StubCoordinator:
    """Coordinator stand-in scripted with per-tick outcomes."""

    def __init__(self, outcomes: list[object]) -> None:
        self._outcomes = list(outcomes)
        self.polls = 0
        self.done = threading.Event()

    def sweep(self) -> ServiceResult:
        outcome = self._outcomes.pop(0) if self._outcomes else None
        if not self._outcomes:
            self.done.set()
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, ServiceResult):
            return outcome
        return ServiceResult(ok=True, op="sweep", data={"count": 0, "evicted": []})

    def poll_store(self) -> ServiceResult:
        self.polls += 1
        return ServiceResult(ok=True, op="poll_store", data={"changed_keys": []})


class TestTick:
    def test_tick_evicts_through_coordinator(
        self, coordinator: Coordinator, clock: FakeClock
    ) -> None:
        coordinator.set_override("example.com", OverrideState.EFFECT_ON, 1_000)
        clock.advance(1_000)
        result = ExpirySweeper(coordinator).tick()
        assert result is not None
        assert result.data["evicted"] == ["example.com"]

    def test_raising_tick_is_swallowed(self) -> None:
        stub = _StubCoordinator([RuntimeError("boom"), None])
        sweeper = ExpirySweeper(stub)  # type: ignore[arg-type]
        assert sweeper.tick() is None
        assert sweeper.tick() is not None
        assert sweeper.ticks == 2
        assert sweeper.failures == 1

    def test_failed_result_skips_poll(self) -> None:
        failed = ServiceResult.failure("sweep", "STORE_UNAVAILABLE", "locked")
        stub = _StubCoordinator([failed])
        sweeper = ExpirySweeper(stub)  # type: ignore[arg-type]
        sweeper.tick()
        assert sweeper.failures == 1
        assert stub.polls == 0

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            ExpirySweeper(_StubCoordinator([]), interval=0)  # type: ignore[arg-type]


class TestThread:
    def test_failure_does_not_stop_later_ticks(self) -> None:
        stub = _StubCoordinator([RuntimeError("boom"), None, None])
        sweeper = ExpirySweeper(stub, interval=0.01)  # type: ignore[arg-type]
        sweeper.start()
        try:
            assert stub.done.wait(5)
        finally:
            sweeper.stop()
        assert sweeper.ticks >= 3
        assert sweeper.failures >= 1
        assert stub.polls >= 2
        assert not sweeper.running

    def test_start_is_idempotent(self) -> None:
        sweeper = ExpirySweeper(_StubCoordinator([]), interval=60)  # type: ignore[arg-type]
        sweeper.start()
        try:
            sweeper.start()
            assert sweeper.running
        finally:
            sweeper.stop()
