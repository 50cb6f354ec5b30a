"""Rich Console factory and theme for grayctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

GRAY_THEME = Theme(
    {
        "gray.ok": "bold green",
        "gray.error": "bold red",
        "gray.warning": "bold yellow",
        "gray.op": "bold cyan",
        "gray.key": "dim",
        "gray.domain": "bold blue",
        "gray.apply": "bold white on grey37",
        "gray.remove": "bold magenta",
        "gray.expiry": "yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=GRAY_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def policy_label(apply: bool) -> tuple[str, str]:
    """``(text, style)`` for a resolved policy value."""
    return ("grayscale", "gray.apply") if apply else ("color", "gray.remove")
