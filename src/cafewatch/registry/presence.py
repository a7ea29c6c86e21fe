"""Presence registry: the authoritative store of terminal records.

Ingests heartbeats, answers status queries and derives active/inactive
from elapsed time. There is no background sweep; ``active`` is a pure
function of a record and the ``now`` it is evaluated at.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from cafewatch.domain.models import HeartbeatResult, StatusResult, SystemRecord
from cafewatch.registry.clock import Clock, SystemClock
from cafewatch.registry.errors import NotFound, require_text

logger = logging.getLogger(__name__)

# Heard from within this window -> shown as active
ACTIVE_WINDOW_MS = 30_000
# Heard from within this window -> may still be named
RECENT_WINDOW_MS = 300_000
# Cadence terminals are expected to send heartbeats at
EXPECTED_HEARTBEAT_INTERVAL_MS = 1_000

NOT_REGISTERED_SUGGESTION = (
    "Make sure client app is running and has sent at least one heartbeat"
)


class PresenceRegistry:
    """Thread-safe in-memory registry of terminals keyed by network address.

    A single coarse lock serializes every read and write, which keeps
    racing heartbeats for the same terminal from losing counter updates.
    Every operation accepts an optional ``now`` (epoch ms); when omitted
    the registry's clock is read.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        active_window_ms: int = ACTIVE_WINDOW_MS,
        recent_window_ms: int = RECENT_WINDOW_MS,
    ) -> None:
        if active_window_ms <= 0 or recent_window_ms <= 0:
            raise ValueError("Activity windows must be positive")
        self._clock = clock or SystemClock()
        self._active_window_ms = active_window_ms
        self._recent_window_ms = recent_window_ms
        self._records: dict[str, SystemRecord] = {}
        self._lock = threading.Lock()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def active_window_ms(self) -> int:
        return self._active_window_ms

    @property
    def recent_window_ms(self) -> int:
        return self._recent_window_ms

    def now(self, now: int | None = None) -> int:
        """Resolve an optional caller-supplied instant against the clock."""
        return self._clock.now_ms() if now is None else now

    def is_active(self, record: SystemRecord, now: int) -> bool:
        return record.idle_ms(now) < self._active_window_ms

    def is_recently_active(self, record: SystemRecord, now: int) -> bool:
        return record.idle_ms(now) < self._recent_window_ms

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._records

    # ------------------------------------------------------------------
    # Heartbeats
    # ------------------------------------------------------------------

    def record_heartbeat(
        self,
        identifier: str | None,
        metadata: str | None = None,
        now: int | None = None,
    ) -> HeartbeatResult:
        """Create or refresh the record for ``identifier``.

        Raises:
            InvalidArgument: If ``identifier`` is missing or blank.
        """
        identifier = require_text(identifier, "ip", "IP address is required")
        now = self.now(now)

        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                record = SystemRecord(
                    identifier=identifier,
                    created_at=now,
                    last_heartbeat_at=now,
                    client_metadata=metadata or "Unknown",
                )
                self._records[identifier] = record
                logger.info("New system registered: %s", identifier)
            else:
                record.last_heartbeat_at = now
                record.heartbeat_count += 1
                if metadata:
                    record.client_metadata = metadata

            result = HeartbeatResult(
                identifier=identifier,
                has_name=bool(record.display_name),
                assigned_name=record.display_name,
                heartbeat_count=record.heartbeat_count,
                timestamp=now,
            )

        logger.debug("Heartbeat from %s (#%d)", identifier, result.heartbeat_count)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_status(self, identifier: str, now: int | None = None) -> StatusResult:
        """Return the status of one terminal as of ``now``.

        Raises:
            NotFound: If no heartbeat was ever received from ``identifier``.
        """
        now = self.now(now)
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                raise NotFound(identifier, suggestion=NOT_REGISTERED_SUGGESTION)
            return self._status(record, now)

    def list_all(self, now: int | None = None) -> list[StatusResult]:
        """Return every terminal, most recently seen first."""
        now = self.now(now)
        with self._lock:
            statuses = [self._status(r, now) for r in self._records.values()]
        statuses.sort(key=lambda s: s.last_heartbeat_at, reverse=True)
        return statuses

    def counts(self, now: int | None = None) -> tuple[int, int]:
        """Return ``(total, active)`` terminal counts as of ``now``."""
        now = self.now(now)
        with self._lock:
            total = len(self._records)
            active = sum(1 for r in self._records.values() if self.is_active(r, now))
        return total, active

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def remove(self, identifier: str) -> SystemRecord:
        """Delete and return the record for ``identifier``.

        Raises:
            NotFound: If there is no such record.
        """
        with self._lock:
            record = self._records.pop(identifier, None)
        if record is None:
            raise NotFound(identifier)
        logger.info(
            "System removed: %s (was: %s)", identifier, record.display_name or "unnamed"
        )
        return record

    @contextmanager
    def mutate(self, identifier: str) -> Iterator[SystemRecord]:
        """Hold the store lock and yield the live record for ``identifier``.

        Changes made to the yielded record inside the ``with`` block are
        applied atomically with respect to every other registry call.

        Raises:
            NotFound: If there is no such record.
        """
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                raise NotFound(identifier, suggestion=NOT_REGISTERED_SUGGESTION)
            yield record

    def _status(self, record: SystemRecord, now: int) -> StatusResult:
        directive = record.launch_directive
        return StatusResult(
            identifier=record.identifier,
            display_name=record.display_name,
            active=self.is_active(record, now),
            last_heartbeat_at=record.last_heartbeat_at,
            created_at=record.created_at,
            heartbeat_count=record.heartbeat_count,
            client_metadata=record.client_metadata,
            launch_directive=directive.model_copy(deep=True) if directive else None,
            now=now,
        )
