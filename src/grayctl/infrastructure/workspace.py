"""Workspace — the per-process owner of all engine state.

Constructed once from :class:`GraySettings` and injected into services.
It owns the SQLite engine, the key-value store, the single
:class:`PolicyStore`, the :class:`ObserverRegistry`, and (once
initialized) the :class:`Broadcaster`. Nothing here is a module global.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from grayctl.domain.clock import Clock, now_ms
from grayctl.infrastructure.database.engine import STATE_DIRNAME, init_database
from grayctl.infrastructure.kvstore import KeyValueStore
from grayctl.infrastructure.observers import ObserverRegistry
from grayctl.infrastructure.policy_store import PolicyStore

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.engine import Engine

    from grayctl.config.settings import GraySettings
    from grayctl.infrastructure.broadcaster import Broadcaster
    from grayctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class Workspace:
    """Wiring for one engine instance.

    Parameters:
        settings: Resolved settings (state root, store, broadcast sections).
        clock: Epoch-millisecond clock shared by every component.
    """

    def __init__(self, settings: GraySettings, *, clock: Clock = now_ms) -> None:
        self._settings = settings
        self._clock = clock
        self._engine: Engine = init_database(settings.state_root, settings.store.filename)
        self._kv = KeyValueStore(self._engine)
        self._store = PolicyStore(self._kv, clock=clock)
        self._observers = ObserverRegistry()
        self._broadcaster: Broadcaster | None = None
        self._plugins: PluginManager | None = None

    @property
    def settings(self) -> GraySettings:
        return self._settings

    @property
    def state_dir(self) -> Path:
        return self._settings.state_root / STATE_DIRNAME

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def kv(self) -> KeyValueStore:
        return self._kv

    @property
    def store(self) -> PolicyStore:
        return self._store

    @property
    def observers(self) -> ObserverRegistry:
        return self._observers

    @property
    def plugins(self) -> PluginManager | None:
        return self._plugins

    @property
    def broadcaster(self) -> Broadcaster:
        """The broadcaster, initialized with defaults on first access."""
        if self._broadcaster is None:
            self.init_broadcaster(sync=self._settings.sync)
        assert self._broadcaster is not None
        return self._broadcaster

    def now(self) -> int:
        return self._clock()

    def init_broadcaster(
        self,
        *,
        sync: bool = False,
        plugin_manager: PluginManager | None = None,
        discover_plugins: bool = True,
    ) -> None:
        """Create the plugin manager and broadcaster.

        Entry-point plugins are discovered unless *discover_plugins* is
        False or an explicit *plugin_manager* is passed.
        """
        from grayctl.infrastructure.broadcaster import Broadcaster
        from grayctl.plugins.manager import PluginManager

        if plugin_manager is None:
            plugin_manager = PluginManager()
            if discover_plugins:
                plugin_manager.discover_and_load()
        self._plugins = plugin_manager
        if self._broadcaster is not None:
            self._broadcaster.shutdown()
        self._broadcaster = Broadcaster(
            plugin_manager,
            sync=sync,
            max_workers=self._settings.broadcast.max_workers,
            registry=self._observers,
        )

    def close(self) -> None:
        """Flush pending deliveries and release the database."""
        if self._broadcaster is not None:
            self._broadcaster.shutdown()
            self._broadcaster = None
        self._engine.dispose()
