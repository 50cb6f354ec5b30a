"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from grayctl.domain.durations import format_remaining
from grayctl.output.console import create_console, get_output, policy_label

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from grayctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    if result.op == "list_permanent":
        return "\n".join(result.data["domains"])
    if result.op == "list_overrides":
        return "\n".join(item["domain"] for item in result.data["items"])
    if result.op == "resolve":
        return policy_label(result.data["apply"])[0]
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="gray.ok"), Text(f"  {result.op}", style="gray.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="gray.key")
    if key == "domain":
        v = Text(str(value), style="gray.domain")
    elif key == "apply":
        v = Text(*policy_label(bool(value)))
    elif key == "remaining_ms":
        v = Text(format_remaining(int(value)), style="gray.expiry")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


# ── Renderers ─────────────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    error = result.error
    message = error.message if error else "Unknown error"
    console.print(
        Text("ERROR", style="gray.error"),
        Text(f"  {result.op}", style="gray.op"),
        Text(f" — {message}"),
    )
    if verbose and error is not None:
        console.print(Text(f"  code: {error.code}", style="gray.key"))
        for key, value in error.detail.items():
            console.print(Text(f"  {key}: {value}", style="gray.key"))


def _render_permanent(result: ServiceResult, console: Console) -> None:
    domains: list[str] = result.data["domains"]
    if not domains:
        console.print(Text("Permanent list is empty.", style="dim"))
        return
    table = Table(title=f"Permanent list ({len(domains)})", title_justify="left")
    table.add_column("Domain", style="gray.domain")
    for domain in domains:
        table.add_row(domain)
    console.print(table)


def _render_overrides(result: ServiceResult, console: Console) -> None:
    items: list[dict[str, Any]] = result.data["items"]
    if not items:
        console.print(Text("No active overrides.", style="dim"))
        return
    table = Table(title=f"Active overrides ({len(items)})", title_justify="left")
    table.add_column("Domain", style="gray.domain")
    table.add_column("State")
    table.add_column("Remaining", style="gray.expiry", justify="right")
    table.add_column("Expires (UTC)", style="dim")
    table.add_column("Was listed", justify="center")
    for item in items:
        table.add_row(
            item["domain"],
            item["state"],
            format_remaining(item["remaining_ms"]),
            item["expires_at_iso"],
            "yes" if item["preceding_membership"] else "no",
        )
    console.print(table)


def _render_status(result: ServiceResult, console: Console) -> None:
    data = result.data
    _status_line(console, result)
    _field(console, "domain", data["domain"])
    if not data["active"]:
        console.print(Text("  no active override", style="dim"))
        return
    _field(console, "state", data["state"])
    _field(console, "remaining_ms", data["remaining_ms"])
    _field(console, "expires", data["expires_at_iso"])


def _render_resolve(result: ServiceResult, console: Console) -> None:
    data = result.data
    if data["domain"] is None:
        console.print(Text("No web domain; the effect never applies.", style="dim"))
        return
    text, style = policy_label(data["apply"])
    console.print(
        Text(data["domain"], style="gray.domain"),
        Text(" → "),
        Text(text, style=style),
        Text(f"  ({data['source']})", style="dim"),
    )


def _render_sweep(result: ServiceResult, console: Console) -> None:
    _status_line(console, result)
    evicted: list[str] = result.data["evicted"]
    if not evicted:
        console.print(Text("  nothing expired", style="dim"))
    for domain in evicted:
        console.print(Text("  evicted ", style="gray.key"), Text(domain, style="gray.domain"))


_OP_RENDERERS: dict[str, Callable[[ServiceResult, Console], None]] = {
    "list_permanent": _render_permanent,
    "list_overrides": _render_overrides,
    "get_override": _render_status,
    "resolve": _render_resolve,
    "sweep": _render_sweep,
}
