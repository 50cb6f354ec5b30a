"""Tests for operation-specific Rich renderers and output modes."""

import json

from grayctl.output.formatters import OutputSettings, format_result
from grayctl.output.renderers import render_quiet, render_result
from grayctl.services.result import ServiceResult

# ── Helpers ───────────────────────────────────────────────────────────


def _ok(op: str, **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _override_item(domain: str, remaining_ms: int) -> dict[str, object]:
    return {
        "domain": domain,
        "state": "effect_off",
        "expires_at": 1_700_000_060_000,
        "expires_at_iso": "2023-11-14T22:14:20Z",
        "remaining_ms": remaining_ms,
        "preceding_membership": True,
    }


# ── Error rendering ──────────────────────────────────────────────────


class TestErrorRenderer:
    def test_basic_error(self) -> None:
        result = ServiceResult.failure("add_permanent", "INVALID_DOMAIN", "Invalid domain: 'x'")
        output = render_result(result)
        assert "ERROR" in output
        assert "add_permanent" in output
        assert "Invalid domain" in output

    def test_verbose_shows_code_and_detail(self) -> None:
        result = ServiceResult.failure("add_permanent", "INVALID_DOMAIN", "Bad", input="x")
        output = render_result(result, verbose=True)
        assert "INVALID_DOMAIN" in output
        assert "input: x" in output


# ── Operation renderers ──────────────────────────────────────────────


class TestRenderers:
    def test_permanent_table(self) -> None:
        output = render_result(_ok("list_permanent", count=2, domains=["a.com", "b.com"]))
        assert "Permanent list (2)" in output
        assert "a.com" in output
        assert "b.com" in output

    def test_empty_permanent(self) -> None:
        output = render_result(_ok("list_permanent", count=0, domains=[]))
        assert "empty" in output

    def test_overrides_table(self) -> None:
        output = render_result(
            _ok("list_overrides", count=1, items=[_override_item("a.com", 200_000)])
        )
        assert "a.com" in output
        assert "3m 20s" in output
        assert "effect_off" in output

    def test_status_inactive(self) -> None:
        output = render_result(_ok("get_override", domain="a.com", active=False))
        assert "no active override" in output

    def test_status_active(self) -> None:
        output = render_result(
            _ok("get_override", active=True, **_override_item("a.com", 3_840_000))
        )
        assert "1h 04m" in output

    def test_resolve(self) -> None:
        output = render_result(_ok("resolve", domain="a.com", apply=True, source="permanent"))
        assert "a.com" in output
        assert "grayscale" in output
        assert "permanent" in output

    def test_sweep(self) -> None:
        output = render_result(_ok("sweep", count=1, evicted=["a.com"]))
        assert "evicted" in output
        assert "a.com" in output

    def test_generic(self) -> None:
        output = render_result(_ok("add_permanent", domain="a.com", apply=False))
        assert "OK" in output
        assert "color" in output


class TestQuiet:
    def test_lists_print_bare_domains(self) -> None:
        result = _ok("list_permanent", count=2, domains=["a.com", "b.com"])
        assert render_quiet(result) == "a.com\nb.com"

    def test_resolve(self) -> None:
        result = _ok("resolve", domain="a.com", apply=False, source="default")
        assert render_quiet(result) == "color"

    def test_error(self) -> None:
        result = ServiceResult.failure("sweep", "STORE_UNAVAILABLE", "locked")
        assert render_quiet(result).startswith("ERROR: sweep")


class TestFormatResult:
    def test_json_mode(self) -> None:
        output = format_result(_ok("sweep", count=0), settings=OutputSettings(json_output=True))
        assert json.loads(output)["data"] == {"count": 0}

    def test_default_is_rich(self) -> None:
        assert "OK" in format_result(_ok("forget", observer="t", forgotten=True))
