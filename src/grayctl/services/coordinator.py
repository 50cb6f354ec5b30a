"""Coordinator — every policy event funnels through here.

Event kinds and their paths:

* permanent add/remove, override set/clear — mutate the store, then
  resolve and broadcast the affected domains.
* sweep tick — evict expired overrides, broadcast each evicted domain.
* external store change — reload, broadcast domains whose policy moved.
* observer attach/reactivate, resync-all — re-resolve without mutating.

INVARIANT: The store is always mutated before anything is broadcast, and
a failed durable write is returned as a failure result with no broadcast.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from grayctl.domain.clock import ms_to_iso
from grayctl.domain.durations import format_duration
from grayctl.domain.names import is_valid_domain, normalize_domain, to_domain
from grayctl.domain.policy import OverrideState, PolicyMessage
from grayctl.infrastructure.kvstore import StoreError, StoreWriteError
from grayctl.services.base import BaseService
from grayctl.services.result import ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from grayctl.domain.policy import Override
    from grayctl.infrastructure.kvstore import StoreChange
    from grayctl.infrastructure.observers import Channel, Observer
    from grayctl.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class Coordinator(BaseService):
    """Long-lived service wiring the store, registry, and broadcaster.

    One coordinator per workspace. On construction it subscribes to the
    key-value store's change feed; call :meth:`close` to unsubscribe.
    """

    def __init__(self, workspace: Workspace) -> None:
        super().__init__(workspace)
        self._store = workspace.store
        self._registry = workspace.observers
        self._unsubscribe = workspace.kv.subscribe(self.handle_store_change)

    def close(self) -> None:
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Permanent list
    # ------------------------------------------------------------------

    def add_permanent(self, raw_domain: str) -> ServiceResult:
        """Add a domain to the permanent list and push ``apply`` where it now holds."""
        op = "add_permanent"
        domain = normalize_domain(raw_domain)
        if not is_valid_domain(domain):
            return _invalid_domain(op, raw_domain)

        warnings: list[str] = []
        try:
            affected = self._store.add_permanent(domain)
        except StoreError as exc:
            return _store_failure(op, exc)
        if domain not in affected:
            warnings.append(f"{domain} is already in the permanent list")

        self._broadcast(affected)
        return ServiceResult(
            ok=True,
            op=op,
            data={"domain": domain, "apply": self._resolve_now(domain)},
            warnings=warnings,
        )

    def remove_permanent(self, raw_domain: str) -> ServiceResult:
        """Remove a domain from the permanent list. Removing an absent domain is a no-op."""
        op = "remove_permanent"
        domain = normalize_domain(raw_domain)
        warnings: list[str] = []
        try:
            affected = self._store.remove_permanent(domain)
        except StoreError as exc:
            return _store_failure(op, exc)
        if domain not in affected:
            warnings.append(f"{domain} is not in the permanent list")

        self._broadcast(affected)
        return ServiceResult(
            ok=True,
            op=op,
            data={"domain": domain, "apply": self._resolve_now(domain)},
            warnings=warnings,
        )

    def list_permanent(self) -> ServiceResult:
        snapshot = self._store.snapshot()
        domains = sorted(snapshot.permanent)
        return ServiceResult(
            ok=True, op="list_permanent", data={"count": len(domains), "domains": domains}
        )

    # ------------------------------------------------------------------
    # Overrides
    # ------------------------------------------------------------------

    def set_override(self, raw_domain: str, state: str, duration_ms: int) -> ServiceResult:
        """Create or replace a temporary override for a domain."""
        op = "set_override"
        domain = to_domain(raw_domain)
        if domain is None or not is_valid_domain(domain):
            return _invalid_domain(op, raw_domain)
        try:
            override_state = OverrideState(state)
        except ValueError:
            choices = ", ".join(s.value for s in OverrideState)
            return ServiceResult.failure(
                op, "INVALID_STATE", f"Unknown override state {state!r}; expected {choices}"
            )

        max_ms = self._workspace.settings.overrides.max_duration_ms
        if duration_ms <= 0 or duration_ms > max_ms:
            return ServiceResult.failure(
                op,
                "INVALID_DURATION",
                f"Duration must be between 1 ms and {format_duration(max_ms)}",
                duration_ms=duration_ms,
            )

        try:
            affected = self._store.set_override(domain, override_state, duration_ms)
        except StoreError as exc:
            return _store_failure(op, exc)

        self._broadcast(affected)
        override = self._store.get_override(domain)
        data: dict[str, Any] = {"domain": domain, "duration": format_duration(duration_ms)}
        if override is not None:
            data.update(_override_payload(override, self._store.now()))
        return ServiceResult(ok=True, op=op, data=data)

    def clear_override(self, raw_domain: str) -> ServiceResult:
        """Cancel a domain's override, if any."""
        op = "clear_override"
        domain = to_domain(raw_domain)
        if domain is None:
            return _invalid_domain(op, raw_domain)
        try:
            affected = self._store.clear_override(domain)
        except StoreError as exc:
            return _store_failure(op, exc)

        self._broadcast(affected)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "domain": domain,
                "cleared": domain in affected,
                "apply": self._resolve_now(domain),
            },
        )

    def get_override_status(self, raw_domain: str) -> ServiceResult:
        """Report whether *raw_domain* has an active override and how long it has left."""
        op = "get_override"
        domain = to_domain(raw_domain)
        if domain is None:
            return _invalid_domain(op, raw_domain)
        now = self._store.now()
        override = self._store.get_override(domain)
        data: dict[str, Any] = {"domain": domain, "active": False}
        if override is not None and override.is_active(now):
            data.update(_override_payload(override, now))
            data["active"] = True
        return ServiceResult(ok=True, op=op, data=data)

    def list_overrides(self) -> ServiceResult:
        """Active overrides, soonest expiry first."""
        now = self._store.now()
        snapshot = self._store.snapshot()
        items = [
            {"domain": domain, **_override_payload(override, now)}
            for domain, override in sorted(
                snapshot.overrides.items(), key=lambda item: item[1].expires_at
            )
            if override.is_active(now)
        ]
        return ServiceResult(
            ok=True, op="list_overrides", data={"count": len(items), "items": items}
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, raw: str) -> ServiceResult:
        """Resolve the policy for a URL or domain, naming which source decided it."""
        domain = to_domain(raw)
        now = self._store.now()
        snapshot = self._store.snapshot()
        override = snapshot.overrides.get(domain) if domain is not None else None
        if override is not None and override.is_active(now):
            source = "override"
        elif domain is not None and domain in snapshot.permanent:
            source = "permanent"
        else:
            source = "default"
        return ServiceResult(
            ok=True,
            op="resolve",
            data={"domain": domain, "apply": snapshot.resolve(domain, now), "source": source},
        )

    # ------------------------------------------------------------------
    # Background and external events
    # ------------------------------------------------------------------

    def sweep(self) -> ServiceResult:
        """Evict every expired override and broadcast each evicted domain.

        External edits absorbed by the eviction are broadcast in the same pass;
        the result still lists only the evicted domains.
        """
        op = "sweep"
        try:
            evicted = self._store.evict_expired()
        except StoreError as exc:
            return _store_failure(op, exc)
        try:
            external = self._store.reload()
        except StoreError:
            logger.warning("Reload after sweep failed", exc_info=True)
            external = set()
        self._broadcast(evicted | external)
        if evicted:
            plugins = self._workspace.plugins
            if plugins is not None:
                plugins.call("overrides_evicted", domains=sorted(evicted))
        return ServiceResult(
            ok=True, op=op, data={"count": len(evicted), "evicted": sorted(evicted)}
        )

    def poll_store(self) -> ServiceResult:
        """Check the key-value store for writes by another process."""
        try:
            changed = self._workspace.kv.poll()
        except StoreError as exc:
            return _store_failure("poll_store", exc)
        return ServiceResult(ok=True, op="poll_store", data={"changed_keys": sorted(changed)})

    def handle_store_change(self, change: StoreChange) -> None:
        """Change-feed listener. Local writes were already broadcast; act on external ones."""
        if not change.external:
            return
        try:
            affected = self._store.reload()
        except StoreError:
            logger.warning("Reload after external store change failed", exc_info=True)
            return
        self._broadcast(affected)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def attach_observer(self, observer_id: str, location: str, channel: Channel) -> ServiceResult:
        """Register (or move) an observer and push its current policy to it alone.

        *location* is a URL or a bare domain. Expired overrides for that
        domain are evicted on the way, which notifies any other observers
        sharing the domain.
        """
        op = "attach"
        domain = to_domain(location)
        observer = self._registry.attach(observer_id, domain, channel)
        if domain is None:
            return ServiceResult(
                ok=True, op=op, data={"observer": observer_id, "domain": None, "apply": False}
            )

        warnings: list[str] = []
        try:
            evicted = self._store.evict_if_expired(domain)
        except StoreError as exc:
            evicted = set()
            warnings.append(f"Could not evict expired override for {domain}: {exc}")
        if evicted:
            others = [o for o in self._registry.for_domain(domain) if o.observer_id != observer_id]
            self._publish(domain, others)
            try:
                self._broadcast(self._store.reload() - {domain})
            except StoreError as exc:
                warnings.append(f"Could not reload external changes: {exc}")

        apply = self._resolve_now(domain)
        self._workspace.broadcaster.deliver(observer, PolicyMessage.for_policy(domain, apply))
        return ServiceResult(
            ok=True,
            op=op,
            data={"observer": observer_id, "domain": domain, "apply": apply},
            warnings=warnings,
        )

    def forget_observer(self, observer_id: str) -> ServiceResult:
        forgotten = self._registry.forget(observer_id)
        return ServiceResult(
            ok=True, op="forget", data={"observer": observer_id, "forgotten": forgotten}
        )

    def resync_all(self) -> ServiceResult:
        """Re-push the current policy to every known observer."""
        domains = self._registry.domains()
        self._broadcast(domains)
        return ServiceResult(
            ok=True,
            op="resync_all",
            data={"domains": len(domains), "observers": len(self._registry)},
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve_now(self, domain: str | None) -> bool:
        return self._store.snapshot().resolve(domain, self._store.now())

    def _broadcast(self, domains: Iterable[str]) -> None:
        for domain in sorted(domains):
            self._publish(domain, self._registry.for_domain(domain))

    def _publish(self, domain: str, observers: list[Observer]) -> None:
        apply = self._resolve_now(domain)
        sent = self._workspace.broadcaster.publish(domain, apply, observers)
        logger.debug("Published %s for %s to %d observer(s)", apply, domain, sent)


def _override_payload(override: Override, now: int) -> dict[str, Any]:
    return {
        "state": override.state.value,
        "expires_at": override.expires_at,
        "expires_at_iso": ms_to_iso(override.expires_at),
        "remaining_ms": override.remaining_ms(now),
        "preceding_membership": override.preceding_membership,
    }


def _invalid_domain(op: str, raw: str) -> ServiceResult:
    return ServiceResult.failure(op, "INVALID_DOMAIN", f"Invalid domain: {raw!r}", input=raw)


def _store_failure(op: str, exc: StoreError) -> ServiceResult:
    code = "STORE_WRITE_FAILED" if isinstance(exc, StoreWriteError) else "STORE_UNAVAILABLE"
    logger.warning("%s failed: %s", op, exc)
    return ServiceResult.failure(op, code, str(exc))
