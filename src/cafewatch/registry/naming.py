"""Naming service: operator-assigned display names for live terminals."""

from __future__ import annotations

import logging

from cafewatch.domain.models import AssignResult
from cafewatch.registry.errors import Inactive, require_text
from cafewatch.registry.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class NamingService:
    """Assigns display names, gated on the terminal being recently active.

    The gate uses the registry's recent window (five minutes by default)
    rather than the active window, so an operator can take a few minutes
    to type a name after checking the terminal.
    """

    def __init__(self, registry: PresenceRegistry) -> None:
        self._registry = registry

    def assign_name(
        self, identifier: str | None, name: str | None, now: int | None = None
    ) -> AssignResult:
        """Set the display name of ``identifier`` to ``name``.

        Assignment counts as a liveness signal: the record's last heartbeat
        is moved to ``now`` so the terminal is not flagged inactive before
        its next heartbeat lands.

        Raises:
            InvalidArgument: If ``identifier`` or ``name`` is blank.
            NotFound: If the terminal never sent a heartbeat.
            Inactive: If the terminal was last heard from too long ago.
        """
        identifier = require_text(identifier, "ip", "IP address is required")
        name = require_text(name, "name", "System name is required")
        now = self._registry.now(now)

        with self._registry.mutate(identifier) as record:
            if not self._registry.is_recently_active(record, now):
                raise Inactive(identifier, record.last_heartbeat_at)
            old_name = record.display_name
            record.display_name = name
            record.last_heartbeat_at = now

        logger.info('Name assigned: %s -> "%s"', identifier, name)
        return AssignResult(identifier=identifier, name=name, old_name=old_name, timestamp=now)
