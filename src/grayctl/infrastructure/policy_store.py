"""PolicyStore — the authoritative permanent list and override map.

One instance per process, injected into the coordinator and sweeper. All
mutations run under a single re-entrant lock (the single-writer
discipline). Each mutation:

1. re-reads both records so edits made by another process are not lost,
2. computes the new state,
3. writes the changed record durably,
4. swaps the in-memory snapshot only after the write is confirmed.

Every mutation returns the set of domains whose resolved policy may have
changed, including domains touched by an external edit picked up in step 1.

INVARIANT: A failed write leaves the in-memory state untouched.
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING

from grayctl.domain.clock import Clock, now_ms
from grayctl.domain.policy import (
    OVERRIDES_KEY,
    PERMANENT_KEY,
    Override,
    OverrideState,
    PolicySnapshot,
    changed_domains,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from grayctl.infrastructure.kvstore import KeyValueStore

logger = logging.getLogger(__name__)

RECORD_KEYS = (PERMANENT_KEY, OVERRIDES_KEY)


def _freeze(permanent: frozenset[str], overrides: Mapping[str, Override]) -> PolicySnapshot:
    return PolicySnapshot(permanent=permanent, overrides=MappingProxyType(dict(overrides)))


class PolicyStore:
    """Atomic read/mutate access to the permanent list and override map.

    Parameters:
        kv: Durable key-value store holding the two records.
        clock: Epoch-millisecond clock, injectable for tests.
    """

    def __init__(self, kv: KeyValueStore, *, clock: Clock = now_ms) -> None:
        self._kv = kv
        self._clock = clock
        self._lock = threading.RLock()
        self._state = self._load()
        # External changes absorbed by an eviction, reported on the next reload().
        self._unreported: set[str] = set()

    @property
    def lock(self) -> threading.RLock:
        """The writer lock. Hold it to make a read-mutate sequence atomic."""
        return self._lock

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> PolicySnapshot:
        """Frozen view of the current state; safe to resolve against concurrently."""
        return self._state

    def get_override(self, domain: str) -> Override | None:
        return self._state.overrides.get(domain)

    def is_permanent(self, domain: str) -> bool:
        return domain in self._state.permanent

    # ------------------------------------------------------------------
    # Permanent list
    # ------------------------------------------------------------------

    def add_permanent(self, domain: str) -> set[str]:
        """Add *domain* to the permanent list. Idempotent."""
        with self._lock:
            affected = self._refresh()
            current = self._state
            if domain in current.permanent:
                return affected
            self._commit(_freeze(current.permanent | {domain}, current.overrides), PERMANENT_KEY)
            return affected | {domain}

    def remove_permanent(self, domain: str) -> set[str]:
        """Remove *domain* from the permanent list. Idempotent."""
        with self._lock:
            affected = self._refresh()
            current = self._state
            if domain not in current.permanent:
                return affected
            self._commit(_freeze(current.permanent - {domain}, current.overrides), PERMANENT_KEY)
            return affected | {domain}

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------

    def set_override(self, domain: str, state: OverrideState, duration_ms: int) -> set[str]:
        """Create or replace the override for *domain*, expiring ``duration_ms`` from now.

        Any existing override is replaced outright (last write wins).

        Raises:
            ValueError: If *duration_ms* is not positive.
        """
        if duration_ms <= 0:
            msg = f"Override duration must be positive, got {duration_ms}"
            raise ValueError(msg)
        with self._lock:
            affected = self._refresh()
            current = self._state
            override = Override(
                state=OverrideState(state),
                expires_at=self._clock() + duration_ms,
                preceding_membership=domain in current.permanent,
            )
            overrides = {**current.overrides, domain: override}
            self._commit(_freeze(current.permanent, overrides), OVERRIDES_KEY)
            return affected | {domain}

    def clear_override(self, domain: str) -> set[str]:
        """Remove the override for *domain*, if any."""
        with self._lock:
            affected = self._refresh()
            current = self._state
            if domain not in current.overrides:
                return affected
            overrides = {d: o for d, o in current.overrides.items() if d != domain}
            self._commit(_freeze(current.permanent, overrides), OVERRIDES_KEY)
            return affected | {domain}

    def evict_expired(self, now: int | None = None) -> set[str]:
        """Remove every override with ``expires_at <= now``.

        Returns exactly the evicted domains. Calling it again with no
        intervening mutation evicts nothing and returns an empty set.
        External changes picked up on the way are held for :meth:`reload`,
        since this write moves the store past the revision a later poll
        would have noticed.
        """
        with self._lock:
            self._unreported |= self._refresh()
            return self._evict(self._state.expired(self._clock() if now is None else now))

    def evict_if_expired(self, domain: str, now: int | None = None) -> set[str]:
        """Lazy single-domain eviction, run just before resolve-and-notify.

        Like :meth:`evict_expired`, external changes picked up on the way are
        held for the next :meth:`reload`.
        """
        with self._lock:
            self._unreported |= self._refresh()
            override = self._state.overrides.get(domain)
            if override is None or override.is_active(self._clock() if now is None else now):
                return set()
            return self._evict({domain})

    # ------------------------------------------------------------------
    # External changes
    # ------------------------------------------------------------------

    def reload(self) -> set[str]:
        """Re-read both records; return domains whose resolved policy changed.

        Includes changes held back by an earlier eviction.
        """
        with self._lock:
            changed = self._unreported | self._refresh()
            self._unreported = set()
            return changed

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self) -> PolicySnapshot:
        loaded = PolicySnapshot.from_records(self._kv.get(RECORD_KEYS))
        return _freeze(loaded.permanent, loaded.overrides)

    def _refresh(self) -> set[str]:
        before = self._state
        after = self._load()
        if after == before:
            return set()
        self._state = after
        changed = changed_domains(before, after, self._clock())
        if changed:
            logger.debug("Picked up external policy changes for %s", sorted(changed))
        return changed

    def _evict(self, domains: set[str]) -> set[str]:
        if not domains:
            return set()
        current = self._state
        overrides = {d: o for d, o in current.overrides.items() if d not in domains}
        self._commit(_freeze(current.permanent, overrides), OVERRIDES_KEY)
        logger.debug("Evicted expired overrides: %s", sorted(domains))
        return set(domains)

    def _commit(self, new_state: PolicySnapshot, key: str) -> None:
        """Persist one record of *new_state*, then make it current."""
        self._kv.set({key: new_state.to_records()[key]})
        self._state = new_state
