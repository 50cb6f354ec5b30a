"""Shared pytest fixtures and test helpers for grayctl tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from grayctl.config.settings import GraySettings
from grayctl.domain.policy import PolicyMessage
from grayctl.infrastructure.database.engine import init_database
from grayctl.infrastructure.kvstore import KeyValueStore
from grayctl.infrastructure.workspace import Workspace
from grayctl.services.coordinator import Coordinator

# Fixed epoch for deterministic expiry arithmetic.
T0 = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = T0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingChannel:
    """Channel that keeps every delivered message."""

    def __init__(self) -> None:
        self.messages: list[PolicyMessage] = []

    def send(self, message: PolicyMessage) -> None:
        self.messages.append(message)

    @property
    def commands(self) -> list[tuple[str, str]]:
        return [(m.command, m.domain) for m in self.messages]


class FailingChannel:
    """Channel whose every delivery raises, like a closed tab."""

    def __init__(self) -> None:
        self.attempts = 0

    def send(self, message: PolicyMessage) -> None:
        self.attempts += 1
        msg = "observer is gone"
        raise ConnectionError(msg)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_engine(tmp_path: Path) -> Engine:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def kv(db_engine: Engine) -> KeyValueStore:
    return KeyValueStore(db_engine)


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GraySettings:
    """Settings rooted at a temp directory with synchronous delivery."""
    monkeypatch.delenv("GRAYCTL_CONFIG", raising=False)
    return GraySettings.from_cli(state_root=tmp_path, sync=True)


@pytest.fixture
def workspace(settings: GraySettings, clock: FakeClock) -> Workspace:
    """Workspace on a temp database, driven by the fake clock."""
    ws = Workspace(settings, clock=clock)
    ws.init_broadcaster(sync=True, discover_plugins=False)
    try:
        yield ws
    finally:
        ws.close()


@pytest.fixture
def coordinator(workspace: Workspace) -> Coordinator:
    coord = Coordinator(workspace)
    try:
        yield coord
    finally:
        coord.close()


@pytest.fixture
def _isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_state")`` on command test
    classes.
    """
    monkeypatch.delenv("GRAYCTL_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
