"""serve — run the JSON-lines control surface on stdin/stdout."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from grayctl.commands._base import GrayCommand

if TYPE_CHECKING:
    from grayctl.commands._context import AppContext


@click.command(
    cls=GrayCommand,
    examples="""\
  # Interactive session
  grayctl serve

  # Faster sweeps while testing
  grayctl serve --sweep-interval 5

  # One request from a script
  echo '{"action": "get_override", "domain": "example.com"}' | grayctl serve""",
)
@click.option(
    "--sweep-interval",
    type=click.FloatRange(min=1.0),
    default=None,
    help="Seconds between expiry sweeps. Defaults to [sweep] interval_seconds.",
)
@click.pass_obj
def serve(app: AppContext, sweep_interval: float | None) -> None:
    """Serve override/observer requests as JSON lines with a background sweeper."""
    from grayctl.server.stdio import StdioServer
    from grayctl.services.sweeper import ExpirySweeper

    interval = sweep_interval or app.settings.sweep.interval_seconds
    sweeper = ExpirySweeper(app.coordinator, interval=interval)
    server = StdioServer(
        app.coordinator,
        stdin=sys.stdin,
        stdout=sys.stdout,
        sweeper=sweeper,
    )
    server.serve()
