"""Tests for the ServiceResult contract."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from grayctl.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_defaults(self) -> None:
        result = ServiceResult(ok=True, op="resolve")
        assert result.data == {}
        assert result.warnings == []
        assert result.error is None

    def test_failure_shorthand(self) -> None:
        result = ServiceResult.failure("add_permanent", "INVALID_DOMAIN", "bad", input="x")
        assert result.ok is False
        assert result.error == ServiceError(
            code="INVALID_DOMAIN", message="bad", detail={"input": "x"}
        )

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="sweep")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]

    def test_json_round_trip(self) -> None:
        result = ServiceResult(ok=True, op="sweep", data={"count": 0, "evicted": []})
        assert ServiceResult.model_validate_json(result.model_dump_json()) == result
