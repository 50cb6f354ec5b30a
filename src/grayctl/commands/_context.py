"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Workspace/Coordinator initialization
and centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from grayctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from grayctl.config.settings import GraySettings
    from grayctl.infrastructure.workspace import Workspace
    from grayctl.services.coordinator import Coordinator
    from grayctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The workspace is created on first use so ``--help`` and ``--version``
    never touch the state database.
    """

    def __init__(self, settings: GraySettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None
        self._coordinator: Coordinator | None = None

        from grayctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def workspace(self) -> Workspace:
        if self._workspace is None:
            from grayctl.infrastructure.workspace import Workspace

            self._workspace = Workspace(self.settings)
            self._workspace.init_broadcaster(sync=self.settings.sync)
        return self._workspace

    @property
    def coordinator(self) -> Coordinator:
        if self._coordinator is None:
            from grayctl.services.coordinator import Coordinator

            self._coordinator = Coordinator(self.workspace)
        return self._coordinator

    def close(self) -> None:
        """Release the coordinator subscription and the workspace."""
        if self._coordinator is not None:
            self._coordinator.close()
            self._coordinator = None
        if self._workspace is not None:
            self._workspace.close()
            self._workspace = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings to stderr so they don't pollute pipes.
        * Failure: stderr, exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
