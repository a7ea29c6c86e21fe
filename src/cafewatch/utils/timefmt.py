"""Timestamp helpers shared by the registry boundary and the agent."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_timestamp(ms: int | None) -> str | None:
    """Render an epoch-millisecond timestamp as an ISO-8601 UTC string."""
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat(timespec="seconds")
