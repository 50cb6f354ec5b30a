"""Command group: permanent list editing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from grayctl.commands._base import GrayGroup

if TYPE_CHECKING:
    from grayctl.commands._context import AppContext

_DOMAINS_EXAMPLES = """\
  grayctl domains add example.com
  grayctl domains add https://www.news.example.org/front-page
  grayctl domains remove example.com
  grayctl --json domains list"""


@click.group(cls=GrayGroup, examples=_DOMAINS_EXAMPLES)
def domains() -> None:
    """Edit the permanent grayscale list."""


@domains.command(
    examples="""\
  grayctl domains add example.com
  grayctl domains add https://www.example.com/some/page"""
)
@click.argument("domain")
@click.pass_obj
def add(app: AppContext, domain: str) -> None:
    """Add DOMAIN to the permanent list (scheme, www. and path are stripped)."""
    app.emit(app.coordinator.add_permanent(domain))


@domains.command(examples="  grayctl domains remove example.com")
@click.argument("domain")
@click.pass_obj
def remove(app: AppContext, domain: str) -> None:
    """Remove DOMAIN from the permanent list."""
    app.emit(app.coordinator.remove_permanent(domain))


@domains.command(
    name="list",
    examples="""\
  grayctl domains list
  grayctl -q domains list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """Show the permanent list."""
    app.emit(app.coordinator.list_permanent())
