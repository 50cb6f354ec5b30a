"""Override model, policy snapshot, and the resolver.

Priority rule: an active override wins outright, in either direction.
Without one (or once it has expired) the permanent list decides.

INVARIANT: resolve() is pure. Eviction of expired overrides is a store
mutation and never happens here.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel

# Top-level keys in the key-value store.
PERMANENT_KEY = "domains"
OVERRIDES_KEY = "temporary_overrides"


class OverrideState(StrEnum):
    """Forced display state of a temporary override."""

    EFFECT_ON = "effect_on"
    EFFECT_OFF = "effect_off"


class Override(BaseModel):
    """A time-bounded exception to the permanent list for one domain.

    Attributes:
        state: Forced state while the override is active.
        expires_at: Absolute expiry in epoch milliseconds.
        preceding_membership: Whether the domain was permanently listed
            when the override was created. Informational only.
    """

    model_config = {"frozen": True}

    state: OverrideState
    expires_at: int
    preceding_membership: bool = False

    def is_active(self, now: int) -> bool:
        """Strictly before expiry; ``expires_at == now`` is already expired."""
        return self.expires_at > now

    def remaining_ms(self, now: int) -> int:
        return max(0, self.expires_at - now)


class PolicyMessage(BaseModel):
    """Push payload delivered to observers."""

    model_config = {"frozen": True}

    command: Literal["apply", "remove"]
    domain: str

    @classmethod
    def for_policy(cls, domain: str, apply: bool) -> PolicyMessage:
        return cls(command="apply" if apply else "remove", domain=domain)


def resolve(
    domain: str | None,
    permanent: Set[str],
    overrides: Mapping[str, Override],
    now: int,
) -> bool:
    """Decide whether the effect applies to *domain* at *now*.

    1. An override with ``expires_at > now`` decides alone.
    2. Otherwise membership in *permanent* decides.

    A ``None`` domain never matches and resolves to False.
    """
    if domain is None:
        return False
    override = overrides.get(domain)
    if override is not None and override.is_active(now):
        return override.state is OverrideState.EFFECT_ON
    return domain in permanent


@dataclass(frozen=True)
class PolicySnapshot:
    """Immutable copy of the store's two records for one evaluation."""

    permanent: frozenset[str] = frozenset()
    overrides: Mapping[str, Override] = field(default_factory=dict)

    def resolve(self, domain: str | None, now: int) -> bool:
        return resolve(domain, self.permanent, self.overrides, now)

    def expired(self, now: int) -> set[str]:
        """Domains whose override is present but no longer active."""
        return {d for d, o in self.overrides.items() if not o.is_active(now)}

    def to_records(self) -> dict[str, Any]:
        """Serialize into the key-value store's record layout."""
        return {
            PERMANENT_KEY: sorted(self.permanent),
            OVERRIDES_KEY: {d: o.model_dump(mode="json") for d, o in self.overrides.items()},
        }

    @classmethod
    def from_records(cls, records: Mapping[str, Any]) -> PolicySnapshot:
        """Build a snapshot from raw store records, tolerating missing keys."""
        permanent = records.get(PERMANENT_KEY) or []
        raw_overrides = records.get(OVERRIDES_KEY) or {}
        return cls(
            permanent=frozenset(permanent),
            overrides={d: Override.model_validate(o) for d, o in raw_overrides.items()},
        )


def changed_domains(before: PolicySnapshot, after: PolicySnapshot, now: int) -> set[str]:
    """Domains whose resolved policy differs between two snapshots."""
    candidates = (
        set(before.permanent)
        | set(after.permanent)
        | set(before.overrides)
        | set(after.overrides)
    )
    return {d for d in candidates if before.resolve(d, now) != after.resolve(d, now)}
