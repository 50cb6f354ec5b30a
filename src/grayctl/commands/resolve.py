"""Command: resolve the current policy for a domain or URL."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from grayctl.commands._base import GrayCommand

if TYPE_CHECKING:
    from grayctl.commands._context import AppContext


@click.command(
    cls=GrayCommand,
    examples="""\
  grayctl resolve example.com
  grayctl resolve "https://www.example.com/path?q=1"
  grayctl -q resolve example.com""",
)
@click.argument("target")
@click.pass_obj
def resolve(app: AppContext, target: str) -> None:
    """Show whether grayscale applies to TARGET right now, and why."""
    app.emit(app.coordinator.resolve(target))
