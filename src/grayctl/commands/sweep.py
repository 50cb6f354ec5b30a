"""Command: run one expiry sweep."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from grayctl.commands._base import GrayCommand

if TYPE_CHECKING:
    from grayctl.commands._context import AppContext


@click.command(
    cls=GrayCommand,
    examples="""\
  grayctl sweep
  grayctl --json sweep""",
)
@click.pass_obj
def sweep(app: AppContext) -> None:
    """Evict expired overrides now instead of waiting for the background tick."""
    app.emit(app.coordinator.sweep())
