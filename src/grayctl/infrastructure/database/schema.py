"""SQLAlchemy Core table definitions for the grayctl state database.

A single key-value table backs both policy records. ``revision`` is bumped
on every write so a process can notice records changed by another one.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, Table, Text

metadata = MetaData()

kv_records = Table(
    "kv_records",
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", Text, nullable=False),  # JSON
    Column("revision", Integer, nullable=False, default=1, server_default="1"),
    Column("modified", Text, nullable=False),
)
