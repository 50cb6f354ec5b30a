"""Broadcaster — best-effort fan-out of resolved policy to observers.

Each observer is delivered to independently, on a ThreadPoolExecutor so
the writer never waits on a slow or unreachable observer (or inline when
``sync`` is set, for tests and one-shot CLI runs).

INVARIANT: A failed delivery is logged at debug level and otherwise
ignored. No retry, no acknowledgement; observers reconcile on their next
activation or the next broadcast touching their domain.
A channel raising :class:`ChannelClosed` additionally has its observer
dropped from the registry.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from grayctl.domain.policy import PolicyMessage
from grayctl.infrastructure.observers import ChannelClosed

if TYPE_CHECKING:
    from collections.abc import Iterable

    from grayctl.infrastructure.observers import Observer, ObserverRegistry
    from grayctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class Broadcaster:
    """Push ``PolicyMessage`` objects to observers without blocking the caller.

    Parameters:
        plugin_manager: Optional PluginManager; ``policy_resolved`` fires
            after each publish.
        sync: Deliver inline instead of on the executor.
        max_workers: ThreadPoolExecutor worker count.
        registry: Where observers with a closed channel are dropped from.
    """

    def __init__(
        self,
        plugin_manager: PluginManager | None = None,
        *,
        sync: bool = False,
        max_workers: int = 4,
        registry: ObserverRegistry | None = None,
    ) -> None:
        self._pm = plugin_manager
        self._registry = registry
        self._sync = sync
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync
            else ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="grayctl-push")
        )
        self._futures: list[Future[None]] = []
        self._futures_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def publish(self, domain: str, apply: bool, observers: Iterable[Observer]) -> int:
        """Deliver the policy for *domain* to each of *observers*.

        Returns the number of deliveries attempted (or scheduled).
        """
        message = PolicyMessage.for_policy(domain, apply)
        count = 0
        for observer in observers:
            self._submit(observer, message)
            count += 1
        if self._pm is not None:
            self._submit_hook(domain, apply, count)
        return count

    def deliver(self, observer: Observer, message: PolicyMessage) -> None:
        """Deliver one message to one observer (best-effort)."""
        self._submit(observer, message)

    def flush(self, timeout: float | None = 30) -> None:
        """Wait for in-flight deliveries. Used before exit and in tests."""
        with self._futures_lock:
            pending = self._futures
            self._futures = []
        wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        """Flush and stop the executor."""
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _submit(self, observer: Observer, message: PolicyMessage) -> None:
        if self._executor is None:
            self._send(observer, message)
            return
        future = self._executor.submit(self._send, observer, message)
        self._track(future)

    def _submit_hook(self, domain: str, apply: bool, count: int) -> None:
        assert self._pm is not None
        payload = {"domain": domain, "apply": apply, "observer_count": count}
        if self._executor is None:
            self._pm.call("policy_resolved", **payload)
            return
        self._track(self._executor.submit(self._pm.call, "policy_resolved", **payload))

    def _track(self, future: Future) -> None:
        with self._futures_lock:
            self._futures = [f for f in self._futures if not f.done()]
            self._futures.append(future)

    def _send(self, observer: Observer, message: PolicyMessage) -> None:
        try:
            observer.channel.send(message)
        except ChannelClosed:
            if self._registry is not None:
                self._registry.discard(observer)
        except Exception as exc:
            logger.debug(
                "Delivery to observer %s failed (%s): %s",
                observer.observer_id,
                message.command,
                exc,
            )
