"""Presence & session registry for cafewatch.

Tracks which terminals are live, lets operators name them, and manages
the launch/acknowledge handshake.

Public API:
    PresenceRegistry -- Heartbeat ingestion and status queries
    NamingService -- Display-name assignment gated on recent activity
    LaunchCoordinator -- Launch directives and acknowledgments
    Clock, SystemClock -- Time sources
    RegistryError, InvalidArgument, NotFound, Inactive -- Failures
"""

from cafewatch.registry.clock import Clock, SystemClock
from cafewatch.registry.errors import Inactive, InvalidArgument, NotFound, RegistryError
from cafewatch.registry.launch import LaunchCoordinator
from cafewatch.registry.naming import NamingService
from cafewatch.registry.presence import (
    ACTIVE_WINDOW_MS,
    EXPECTED_HEARTBEAT_INTERVAL_MS,
    RECENT_WINDOW_MS,
    PresenceRegistry,
)

__all__ = [
    "ACTIVE_WINDOW_MS",
    "EXPECTED_HEARTBEAT_INTERVAL_MS",
    "RECENT_WINDOW_MS",
    "Clock",
    "Inactive",
    "InvalidArgument",
    "LaunchCoordinator",
    "NamingService",
    "NotFound",
    "PresenceRegistry",
    "RegistryError",
    "SystemClock",
]
