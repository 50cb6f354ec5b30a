"""Tests for GraySettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from grayctl.config.settings import GraySettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GRAYCTL_CONFIG", raising=False)
    monkeypatch.delenv("GRAYCTL_SWEEP__INTERVAL_SECONDS", raising=False)


class TestGraySettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = GraySettings.from_cli(state_root=tmp_path)
        assert settings.state_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.sync is False
        assert settings.store.filename == "grayctl.db"
        assert settings.sweep.interval_seconds == 60
        assert settings.broadcast.max_workers == 4
        assert settings.overrides.default_duration_ms == 15 * 60_000

    def test_frozen(self, tmp_path: Path) -> None:
        settings = GraySettings.from_cli(state_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "grayctl.toml").write_text(
            '[sweep]\ninterval_seconds = 5\n[overrides]\ndefault_duration = "1h"\n'
        )
        settings = GraySettings.from_cli(state_root=tmp_path)
        assert settings.sweep.interval_seconds == 5
        assert settings.overrides.default_duration_ms == 3_600_000
        assert settings.overrides.max_duration == "1d"  # default preserved

    def test_state_root_follows_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "grayctl.toml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        settings = GraySettings.from_cli()
        assert settings.state_root == tmp_path.resolve()

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        config = tmp_path / "elsewhere.toml"
        config.write_text("[broadcast]\nmax_workers = 2\n")
        settings = GraySettings.from_cli(config_path=str(config), state_root=tmp_path)
        assert settings.broadcast.max_workers == 2
        assert settings.config_path == config

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "grayctl.toml").write_text("[sweep\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            GraySettings.from_cli(state_root=tmp_path)

    def test_sub_second_sweep_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "grayctl.toml").write_text("[sweep]\ninterval_seconds = 0.5\n")
        with pytest.raises(Exception, match="interval_seconds"):
            GraySettings.from_cli(state_root=tmp_path)


class TestPriority:
    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "grayctl.toml").write_text("[sweep]\ninterval_seconds = 5\n")
        monkeypatch.setenv("GRAYCTL_SWEEP__INTERVAL_SECONDS", "30")
        settings = GraySettings.from_cli(state_root=tmp_path)
        assert settings.sweep.interval_seconds == 30

    def test_cli_flags_beat_everything(self, tmp_path: Path) -> None:
        settings = GraySettings.from_cli(state_root=tmp_path, json_output=True, sync=True)
        assert settings.json_output is True
        assert settings.sync is True
