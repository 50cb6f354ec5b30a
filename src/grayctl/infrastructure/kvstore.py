"""Durable key-value store with change notification.

Values are JSON documents keyed by top-level record name. Every write bumps
the key's ``revision``; the store remembers the last revision it wrote or
observed per key, so :meth:`KeyValueStore.poll` can report keys modified by
another process sharing the same database file.

Listeners receive a :class:`StoreChange` for every local write
(``external=False``) and for every change found by ``poll``
(``external=True``).

INVARIANT: A listener failure never fails the write that triggered it.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from grayctl.domain.clock import now_iso
from grayctl.infrastructure.database.schema import kv_records

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The backing store could not be read."""


class StoreWriteError(StoreError):
    """A write to the backing store was not confirmed."""


@dataclass(frozen=True)
class StoreChange:
    """Notification payload: which top-level keys changed, and by whom."""

    keys: frozenset[str]
    external: bool = False


Listener = Callable[[StoreChange], None]


class KeyValueStore:
    """SQLite-backed JSON record store.

    Parameters:
        engine: SQLAlchemy engine with the ``kv_records`` table.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self._seen: dict[str, int] = self._read_revisions()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return ``{key: value}`` for the present keys; absent keys are omitted."""
        wanted = list(keys)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    select(kv_records.c.key, kv_records.c.value).where(
                        kv_records.c.key.in_(wanted)
                    )
                ).fetchall()
        except SQLAlchemyError as exc:
            msg = f"Failed to read {wanted}: {exc}"
            raise StoreError(msg) from exc
        return {row.key: json.loads(row.value) for row in rows}

    def set(self, values: Mapping[str, Any]) -> None:
        """Write all *values* in one transaction.

        Raises:
            StoreWriteError: If the transaction did not commit.
        """
        if not values:
            return
        with self._lock:
            try:
                with self._engine.begin() as conn:
                    revisions = {
                        key: self._upsert(conn, key, value) for key, value in values.items()
                    }
            except (SQLAlchemyError, TypeError, ValueError) as exc:
                msg = f"Failed to write {sorted(values)}: {exc}"
                raise StoreWriteError(msg) from exc
            self._seen.update(revisions)
        self._notify(StoreChange(keys=frozenset(values)))

    def delete(self, keys: Iterable[str]) -> None:
        """Remove *keys*; absent keys are ignored.

        Raises:
            StoreWriteError: If the transaction did not commit.
        """
        doomed = frozenset(keys)
        if not doomed:
            return
        with self._lock:
            try:
                with self._engine.begin() as conn:
                    conn.execute(delete(kv_records).where(kv_records.c.key.in_(doomed)))
            except SQLAlchemyError as exc:
                msg = f"Failed to delete {sorted(doomed)}: {exc}"
                raise StoreWriteError(msg) from exc
            for key in doomed:
                self._seen.pop(key, None)
        self._notify(StoreChange(keys=doomed))

    def poll(self) -> frozenset[str]:
        """Detect keys written or deleted by another process since last seen.

        Notifies listeners with ``external=True`` and returns the changed keys.
        """
        with self._lock:
            current = self._read_revisions()
            changed = frozenset(
                key
                for key in current.keys() | self._seen.keys()
                if current.get(key) != self._seen.get(key)
            )
            self._seen = current
        if changed:
            logger.debug("External store change detected: %s", sorted(changed))
            self._notify(StoreChange(keys=changed, external=True))
        return changed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _upsert(self, conn: Connection, key: str, value: Any) -> int:
        """Insert or update one record. Returns the new revision."""
        payload = json.dumps(value, sort_keys=True)
        revision = conn.execute(
            select(kv_records.c.revision).where(kv_records.c.key == key)
        ).scalar_one_or_none()
        if revision is None:
            conn.execute(
                insert(kv_records).values(key=key, value=payload, revision=1, modified=now_iso())
            )
            return 1
        conn.execute(
            update(kv_records)
            .where(kv_records.c.key == key)
            .values(value=payload, revision=revision + 1, modified=now_iso())
        )
        return revision + 1

    def _read_revisions(self) -> dict[str, int]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(select(kv_records.c.key, kv_records.c.revision)).fetchall()
        except SQLAlchemyError as exc:
            msg = f"Failed to read record revisions: {exc}"
            raise StoreError(msg) from exc
        return {row.key: row.revision for row in rows}

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.warning("Store change listener failed", exc_info=True)
