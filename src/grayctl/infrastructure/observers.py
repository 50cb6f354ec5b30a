"""ObserverRegistry — best-effort map of live consumers to their current domain.

Observers (browser tabs, watch streams, plugin sinks) attach when they
navigate or become active and move to a new domain by re-attaching. There
is no required detach: a vanished observer keeps its entry until it is
forgotten, and deliveries to it simply fail and are ignored.

A channel that knows its observer is gone for good raises
:class:`ChannelClosed`; the broadcaster then drops that observer. Other
delivery failures leave the entry in place.

An observer on the ``None`` domain (special pages, malformed URLs) is
tracked but never matches any domain lookup.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TextIO

if TYPE_CHECKING:
    from collections.abc import Callable

    from grayctl.domain.policy import PolicyMessage

logger = logging.getLogger(__name__)


class ChannelClosed(Exception):
    """The observer behind a channel is permanently unreachable."""


class Channel(Protocol):
    """Delivery transport for one observer. ``send`` may raise on failure."""

    def send(self, message: PolicyMessage) -> None: ...


class CallbackChannel:
    """Deliver by calling a plain function."""

    def __init__(self, callback: Callable[[PolicyMessage], object]) -> None:
        self._callback = callback

    def send(self, message: PolicyMessage) -> None:
        self._callback(message)


class StreamChannel:
    """Write each message as one JSON line addressed to *observer_id*.

    Writes are serialized by a lock shared with the stream's other writers.
    """

    def __init__(self, stream: TextIO, observer_id: str, lock: threading.Lock) -> None:
        self._stream = stream
        self._observer_id = observer_id
        self._lock = lock

    def send(self, message: PolicyMessage) -> None:
        if self._stream.closed:
            msg = f"Stream for observer {self._observer_id} is closed"
            raise ChannelClosed(msg)
        line = json.dumps({"observer": self._observer_id, **message.model_dump()})
        with self._lock:
            try:
                self._stream.write(line + "\n")
                self._stream.flush()
            except BrokenPipeError as exc:
                msg = f"Stream for observer {self._observer_id} is gone"
                raise ChannelClosed(msg) from exc


@dataclass(frozen=True)
class Observer:
    """A registered observer: opaque id, current domain, delivery channel."""

    observer_id: str
    domain: str | None
    channel: Channel


class ObserverRegistry:
    """Thread-safe ``observer_id -> Observer`` map with a per-domain index."""

    def __init__(self) -> None:
        self._observers: dict[str, Observer] = {}
        self._by_domain: defaultdict[str, set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def attach(self, observer_id: str, domain: str | None, channel: Channel) -> Observer:
        """Register *observer_id* on *domain*, replacing any previous entry."""
        observer = Observer(observer_id=observer_id, domain=domain, channel=channel)
        with self._lock:
            self._unindex(observer_id)
            self._observers[observer_id] = observer
            if domain is not None:
                self._by_domain[domain].add(observer_id)
        logger.debug("Observer %s attached on %s", observer_id, domain)
        return observer

    def forget(self, observer_id: str) -> bool:
        """Drop *observer_id*. Returns False when it was not registered."""
        with self._lock:
            found = self._unindex(observer_id)
            self._observers.pop(observer_id, None)
        return found

    def discard(self, observer: Observer) -> bool:
        """Drop *observer* only if it is still the registered entry for its id.

        An observer that re-attached with a new channel in the meantime is kept.
        """
        with self._lock:
            if self._observers.get(observer.observer_id) is not observer:
                return False
            self._unindex(observer.observer_id)
            del self._observers[observer.observer_id]
        logger.debug("Observer %s dropped after its channel closed", observer.observer_id)
        return True

    def get(self, observer_id: str) -> Observer | None:
        return self._observers.get(observer_id)

    def for_domain(self, domain: str | None) -> list[Observer]:
        """Observers currently on *domain*. ``None`` matches nothing."""
        if domain is None:
            return []
        with self._lock:
            return [self._observers[oid] for oid in sorted(self._by_domain.get(domain, ()))]

    def all(self) -> list[Observer]:
        with self._lock:
            return list(self._observers.values())

    def domains(self) -> set[str]:
        """Domains with at least one observer."""
        with self._lock:
            return {d for d, ids in self._by_domain.items() if ids}

    def __len__(self) -> int:
        return len(self._observers)

    def _unindex(self, observer_id: str) -> bool:
        previous = self._observers.get(observer_id)
        if previous is None:
            return False
        if previous.domain is not None:
            ids = self._by_domain.get(previous.domain)
            if ids is not None:
                ids.discard(observer_id)
                if not ids:
                    del self._by_domain[previous.domain]
        return True
