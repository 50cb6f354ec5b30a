"""Output mode selection.

The CLI renders ServiceResult for humans (Rich tables and styled fields),
for scripts (``--quiet``: bare values), or for machines (``--json``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from grayctl.output.renderers import render_quiet, render_result

if TYPE_CHECKING:
    from grayctl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """Resolved output flags from the CLI root."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display according to *settings*."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
