"""Wall-clock helpers.

Override expiry is stored as epoch milliseconds. Components accept a
``Clock`` callable so tests can pin time.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], int]


def now_ms() -> int:
    """Current UTC time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (for record audit columns)."""
    return datetime.now(UTC).isoformat()


def ms_to_iso(epoch_ms: int) -> str:
    """Render an epoch-millisecond timestamp as ISO 8601 UTC."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=UTC).isoformat(timespec="seconds")
