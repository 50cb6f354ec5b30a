"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, grayctl.toml only contains overrides.
An empty (or absent) grayctl.toml is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from grayctl.domain.durations import parse_duration

# --- grayctl.toml sections ---


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    filename: str = "grayctl.db"


class SweepConfig(BaseModel):
    """[sweep] section."""

    model_config = {"frozen": True}

    interval_seconds: float = Field(default=60.0, ge=1.0)


class BroadcastConfig(BaseModel):
    """[broadcast] section."""

    model_config = {"frozen": True}

    max_workers: int = Field(default=4, ge=1)


class OverridesConfig(BaseModel):
    """[overrides] section.

    Durations accept ``"15m"``, ``"1h"``, ``"1d"`` or bare milliseconds.
    """

    model_config = {"frozen": True}

    default_duration: str = "15m"
    max_duration: str = "1d"

    @field_validator("default_duration", "max_duration")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def default_duration_ms(self) -> int:
        return parse_duration(self.default_duration)

    @property
    def max_duration_ms(self) -> int:
        return parse_duration(self.max_duration)


class GrayConfig(BaseModel):
    """Root config model — aggregates all sections."""

    model_config = {"frozen": True}

    store: StoreConfig = Field(default_factory=StoreConfig)
    sweep: SweepConfig = Field(default_factory=SweepConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)
    overrides: OverridesConfig = Field(default_factory=OverridesConfig)
