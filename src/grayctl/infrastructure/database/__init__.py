"""SQLite state database and schema via SQLAlchemy Core."""

from grayctl.infrastructure.database.engine import create_db_engine, init_database
from grayctl.infrastructure.database.schema import kv_records, metadata

__all__ = [
    "create_db_engine",
    "init_database",
    "kv_records",
    "metadata",
]
