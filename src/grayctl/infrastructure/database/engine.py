"""Database engine setup for SQLite with WAL mode.

The state database lives at ``{state_root}/.grayctl/{filename}``. WAL mode
lets a ``serve`` process and one-shot CLI invocations share it.

SQLAlchemy Core (not ORM) is used: two JSON records need no identity map.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from grayctl.infrastructure.database.schema import metadata

STATE_DIRNAME = ".grayctl"


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode enabled."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    return engine


def init_database(state_root: Path, filename: str = "grayctl.db") -> Engine:
    """Initialize the state database under ``{state_root}/.grayctl/``.

    Idempotent — safe to call on an existing state directory.
    """
    state_dir = state_root / STATE_DIRNAME
    state_dir.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(state_dir / filename)
    metadata.create_all(engine)
    return engine
