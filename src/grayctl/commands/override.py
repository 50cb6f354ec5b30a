"""Command group: temporary overrides."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from grayctl.commands._base import DURATION, GrayGroup
from grayctl.domain.policy import OverrideState

if TYPE_CHECKING:
    from grayctl.commands._context import AppContext

_STATES = {"on": OverrideState.EFFECT_ON, "off": OverrideState.EFFECT_OFF}

_OVERRIDE_EXAMPLES = """\
  grayctl override set example.com --state off --duration 30m
  grayctl override status example.com
  grayctl override clear example.com
  grayctl override list"""


@click.group(cls=GrayGroup, examples=_OVERRIDE_EXAMPLES)
def override() -> None:
    """Temporarily force grayscale on or off for a domain."""


@override.command(
    name="set",
    examples="""\
  # Show a listed site in color for half an hour
  grayctl override set example.com --state off --duration 30m

  # Gray out an unlisted site until tomorrow
  grayctl override set https://video.example.net/watch --state on --duration 1d""",
)
@click.argument("domain")
@click.option(
    "--state",
    type=click.Choice(sorted(_STATES)),
    required=True,
    help="on = force grayscale, off = force color.",
)
@click.option(
    "--duration",
    type=DURATION,
    default=None,
    help="How long the override lasts (e.g. 15m, 1h, 1d). Defaults to [overrides] config.",
)
@click.pass_obj
def set_cmd(app: AppContext, domain: str, state: str, duration: int | None) -> None:
    """Set (or replace) the override for DOMAIN."""
    if duration is None:
        duration = app.settings.overrides.default_duration_ms
    app.emit(app.coordinator.set_override(domain, _STATES[state], duration))


@override.command(examples="  grayctl override clear example.com")
@click.argument("domain")
@click.pass_obj
def clear(app: AppContext, domain: str) -> None:
    """Cancel the override for DOMAIN."""
    app.emit(app.coordinator.clear_override(domain))


@override.command(examples="  grayctl --json override status example.com")
@click.argument("domain")
@click.pass_obj
def status(app: AppContext, domain: str) -> None:
    """Show whether DOMAIN has an active override and its remaining time."""
    app.emit(app.coordinator.get_override_status(domain))


@override.command(name="list", examples="  grayctl override list")
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """Show all active overrides, soonest expiry first."""
    app.emit(app.coordinator.list_overrides())
