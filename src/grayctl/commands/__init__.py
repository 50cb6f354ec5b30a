"""Subcommand modules for grayctl.

Provides register_commands() which uses deferred imports to keep
``grayctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from grayctl.commands.domains import domains
    from grayctl.commands.override import override

    cli.add_command(domains)
    cli.add_command(override)

    # --- Standalone commands ---
    from grayctl.commands.resolve import resolve
    from grayctl.commands.serve import serve
    from grayctl.commands.sweep import sweep

    cli.add_command(resolve)
    cli.add_command(sweep)
    cli.add_command(serve)
