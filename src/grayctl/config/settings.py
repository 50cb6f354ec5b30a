"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``GRAYCTL_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``grayctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from grayctl.config.discovery import find_config
from grayctl.config.models import (
    BroadcastConfig,
    OverridesConfig,
    StoreConfig,
    SweepConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``grayctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class GraySettings(BaseSettings):
    """Unified, frozen settings for the grayctl CLI and server.

    Attributes:
        state_root: Directory holding ``.grayctl/`` (parent of
            ``grayctl.toml``, or CWD if no config found).
        config_path: The TOML file actually used, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "GRAYCTL_",
        "env_nested_delimiter": "__",
    }

    state_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False

    # --- TOML sections ---
    store: StoreConfig = Field(default_factory=StoreConfig)
    sweep: SweepConfig = Field(default_factory=SweepConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)
    overrides: OverridesConfig = Field(default_factory=OverridesConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        state_root: Path | None = None,
        **cli_flags: Any,
    ) -> GraySettings:
        """Construct settings from a CLI invocation.

        Discovers ``grayctl.toml`` via walk-up (or explicit *config_path*),
        resolves *state_root* from the config file's parent directory,
        and merges CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(state_root)

        resolved_root = state_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(state_root=resolved_root, config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None
