"""Core domain models for the cafewatch registry.

These models represent the data owned by the presence registry (one
``SystemRecord`` per terminal, with an optional ``LaunchDirective``) and
the immutable result objects handed back by registry operations.

All timestamps are integer milliseconds since the Unix epoch, the same
unit terminals and the admin panel use on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Stored state
# ---------------------------------------------------------------------------


class LaunchDirective(BaseModel):
    """A launch instruction pushed by the operator to one terminal.

    Replaced wholesale by every new launch call; there is never more than
    one directive per terminal.
    """

    software: list[str] = Field(
        default_factory=list, description="Requested software, in operator order"
    )
    system_name: str = Field(description="Label shown to the terminal for this launch")
    launched_at: int = Field(description="When the directive was issued (epoch ms)")
    acknowledged: bool = Field(default=False)
    acknowledged_at: int | None = Field(
        default=None, description="First acknowledgment time (epoch ms)"
    )


class SystemRecord(BaseModel):
    """Everything the registry knows about one terminal.

    Keyed by ``identifier`` (the terminal's network address). Whether the
    terminal is active is never stored here; it is derived on every read
    from ``last_heartbeat_at``.
    """

    identifier: str = Field(description="Network address of the terminal")
    display_name: str | None = Field(default=None)
    created_at: int = Field(description="First heartbeat time (epoch ms)")
    last_heartbeat_at: int = Field(description="Latest liveness signal (epoch ms)")
    heartbeat_count: int = Field(default=1, ge=1)
    client_metadata: str = Field(default="Unknown", description="Reported agent string")
    launch_directive: LaunchDirective | None = Field(default=None)

    def idle_ms(self, now: int) -> int:
        """Milliseconds since the last liveness signal."""
        return now - self.last_heartbeat_at


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class HeartbeatResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    has_name: bool
    assigned_name: str | None = None
    heartbeat_count: int
    timestamp: int


class StatusResult(BaseModel):
    """Point-in-time view of a record, with ``active`` computed for ``now``."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    display_name: str | None = None
    active: bool
    last_heartbeat_at: int
    created_at: int
    heartbeat_count: int
    client_metadata: str
    launch_directive: LaunchDirective | None = None
    now: int = Field(description="The instant this status was computed for")

    @property
    def idle_ms(self) -> int:
        return self.now - self.last_heartbeat_at

    @property
    def age_ms(self) -> int:
        return self.now - self.created_at


class AssignResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    name: str
    old_name: str | None = None
    timestamp: int


class LaunchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    software: list[str]
    system_name: str
    timestamp: int


class LaunchStatusResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    directive: LaunchDirective | None = None

    @property
    def launched(self) -> bool:
        return self.directive is not None


class AckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    acknowledged_at: int
    already_acknowledged: bool = Field(
        default=False, description="True when the directive had been acknowledged before"
    )
