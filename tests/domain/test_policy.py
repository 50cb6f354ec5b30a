"""Tests for the override model and the pure resolver."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from grayctl.domain.policy import (
    OVERRIDES_KEY,
    PERMANENT_KEY,
    Override,
    OverrideState,
    PolicyMessage,
    PolicySnapshot,
    changed_domains,
    resolve,
)

NOW = 1_700_000_000_000
ON = OverrideState.EFFECT_ON
OFF = OverrideState.EFFECT_OFF


def _override(state: OverrideState, delta: int, preceding: bool = False) -> Override:
    return Override(state=state, expires_at=NOW + delta, preceding_membership=preceding)


class TestResolveScenarios:
    def test_permanent_member_applies(self) -> None:
        assert resolve("example.com", {"example.com"}, {}, NOW) is True
        assert resolve("other.com", {"example.com"}, {}, NOW) is False

    def test_active_on_override_applies_to_unlisted_domain(self) -> None:
        overrides = {"example.com": _override(ON, 60_000)}
        assert resolve("example.com", set(), overrides, NOW) is True

    def test_active_off_override_masks_permanent_membership(self) -> None:
        overrides = {"example.com": _override(OFF, 60_000, preceding=True)}
        assert resolve("example.com", {"example.com"}, overrides, NOW) is False

    def test_expired_override_falls_back_to_permanent(self) -> None:
        overrides = {"example.com": _override(ON, -1)}
        assert resolve("example.com", set(), overrides, NOW) is False


class TestResolveEdges:
    def test_absent_everywhere_is_false(self) -> None:
        assert resolve("nowhere.com", set(), {}, NOW) is False

    def test_expiry_equal_to_now_is_expired(self) -> None:
        overrides = {"example.com": _override(ON, 0)}
        assert resolve("example.com", set(), overrides, NOW) is False

    def test_one_ms_before_expiry_is_active(self) -> None:
        overrides = {"example.com": _override(ON, 1)}
        assert resolve("example.com", set(), overrides, NOW) is True

    def test_none_domain_never_matches(self) -> None:
        assert resolve(None, {"example.com"}, {}, NOW) is False

    def test_resolve_does_not_evict(self) -> None:
        overrides = {"example.com": _override(ON, -1000)}
        resolve("example.com", set(), overrides, NOW)
        assert "example.com" in overrides

    @pytest.mark.parametrize("listed", [True, False])
    def test_active_override_ignores_permanent_list(self, listed: bool) -> None:
        permanent = {"example.com"} if listed else set()
        on = {"example.com": _override(ON, 5)}
        off = {"example.com": _override(OFF, 5)}
        assert resolve("example.com", permanent, on, NOW) is True
        assert resolve("example.com", permanent, off, NOW) is False


class TestOverride:
    def test_frozen(self) -> None:
        override = _override(ON, 10)
        with pytest.raises(ValidationError):
            override.expires_at = 0  # type: ignore[misc]

    def test_remaining_clamps_at_zero(self) -> None:
        override = _override(ON, 500)
        assert override.remaining_ms(NOW) == 500
        assert override.remaining_ms(NOW + 10_000) == 0

    def test_unknown_state_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Override.model_validate({"state": "sepia", "expires_at": NOW})


class TestPolicyMessage:
    def test_apply_and_remove(self) -> None:
        assert PolicyMessage.for_policy("example.com", True).command == "apply"
        assert PolicyMessage.for_policy("example.com", False).command == "remove"


class TestPolicySnapshot:
    def test_records_layout(self) -> None:
        snapshot = PolicySnapshot(
            permanent=frozenset({"b.com", "a.com"}),
            overrides={"c.com": _override(OFF, 100, preceding=False)},
        )
        records = snapshot.to_records()
        assert records[PERMANENT_KEY] == ["a.com", "b.com"]
        assert records[OVERRIDES_KEY] == {
            "c.com": {"state": "effect_off", "expires_at": NOW + 100, "preceding_membership": False}
        }

    def test_from_records_tolerates_missing_keys(self) -> None:
        snapshot = PolicySnapshot.from_records({})
        assert snapshot.permanent == frozenset()
        assert dict(snapshot.overrides) == {}

    def test_expired(self) -> None:
        snapshot = PolicySnapshot(
            overrides={"old.com": _override(ON, 0), "new.com": _override(ON, 1)}
        )
        assert snapshot.expired(NOW) == {"old.com"}


class TestChangedDomains:
    def test_only_domains_whose_policy_moved(self) -> None:
        before = PolicySnapshot(permanent=frozenset({"a.com", "b.com"}))
        after = PolicySnapshot(
            permanent=frozenset({"a.com", "c.com"}),
            # b.com was removed from the list but an on-override keeps it gray
            overrides={"b.com": _override(ON, 1000)},
        )
        assert changed_domains(before, after, NOW) == {"c.com"}

    def test_identical_snapshots(self) -> None:
        snapshot = PolicySnapshot(permanent=frozenset({"a.com"}))
        assert changed_domains(snapshot, snapshot, NOW) == set()
