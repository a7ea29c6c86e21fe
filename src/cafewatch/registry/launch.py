"""Launch coordinator: the one-shot launch/acknowledge handshake.

Per terminal the directive moves through three states::

    (none) --launch--> launched --acknowledge--> acknowledged
                          ^                            |
                          +----------launch------------+

A new launch always replaces the current directive, acknowledged or not.
Launch state is independent of whether the terminal is active.
"""

from __future__ import annotations

import logging
from typing import Sequence

from cafewatch.domain.models import (
    AckResult,
    LaunchDirective,
    LaunchResult,
    LaunchStatusResult,
)
from cafewatch.registry.errors import NotFound, require_text
from cafewatch.registry.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class LaunchCoordinator:
    """Stores at most one launch directive per terminal record."""

    def __init__(self, registry: PresenceRegistry) -> None:
        self._registry = registry

    def launch(
        self,
        identifier: str | None,
        software: Sequence[str] | None = None,
        label: str | None = None,
        now: int | None = None,
    ) -> LaunchResult:
        """Issue a launch directive, replacing any previous one.

        Args:
            identifier: Network address of the terminal.
            software: Software to start, in order. May be empty.
            label: Name to show for this launch; defaults to the terminal's
                   display name, then its address.
            now: Issue time (epoch ms); defaults to the registry clock.

        Raises:
            InvalidArgument: If ``identifier`` is blank.
            NotFound: If the terminal is unknown.
        """
        identifier = require_text(identifier, "ip", "IP address is required")
        software = list(software or [])
        now = self._registry.now(now)

        with self._registry.mutate(identifier) as record:
            system_name = (label or "").strip() or record.display_name or identifier
            record.launch_directive = LaunchDirective(
                software=software,
                system_name=system_name,
                launched_at=now,
            )

        logger.info(
            "Launch command sent to %s: %s", identifier, ", ".join(software) or "(no software)"
        )
        return LaunchResult(
            identifier=identifier, software=software, system_name=system_name, timestamp=now
        )

    def get_launch_status(self, identifier: str) -> LaunchStatusResult:
        """Report the current directive for ``identifier``, if any.

        Raises:
            NotFound: If the terminal is unknown.
        """
        with self._registry.mutate(identifier) as record:
            directive = record.launch_directive
            return LaunchStatusResult(
                identifier=identifier,
                directive=directive.model_copy(deep=True) if directive else None,
            )

    def acknowledge(self, identifier: str, now: int | None = None) -> AckResult:
        """Mark the current directive as picked up by the terminal.

        Acknowledging twice succeeds and keeps the first acknowledgment
        time.

        Raises:
            NotFound: If the terminal is unknown or has no directive.
        """
        now = self._registry.now(now)
        with self._registry.mutate(identifier) as record:
            directive = record.launch_directive
            if directive is None:
                raise NotFound(identifier, message=f"No launch pending for system {identifier}")
            already = directive.acknowledged
            if not already:
                directive.acknowledged = True
                directive.acknowledged_at = now
            acknowledged_at = directive.acknowledged_at

        if already:
            logger.debug("Launch re-acknowledged by %s", identifier)
        else:
            logger.info("Launch acknowledged by %s", identifier)
        return AckResult(
            identifier=identifier,
            acknowledged_at=acknowledged_at,
            already_acknowledged=already,
        )
