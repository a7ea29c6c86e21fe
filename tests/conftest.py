"""Shared test fixtures for the cafewatch test suite.

Provides a manually advanced clock and registry/service fixtures wired to
it, so tests can place every operation at an exact millisecond.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from cafewatch.api.server import create_app
from cafewatch.registry import LaunchCoordinator, NamingService, PresenceRegistry
from cafewatch.registry.clock import Clock


class ManualClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.current = start_ms

    def now_ms(self) -> int:
        return self.current

    def advance(self, ms: int) -> int:
        self.current += ms
        return self.current


# ---------------------------------------------------------------------------
# Registry Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def registry(clock: ManualClock) -> PresenceRegistry:
    return PresenceRegistry(clock=clock)


@pytest.fixture
def naming(registry: PresenceRegistry) -> NamingService:
    return NamingService(registry)


@pytest.fixture
def launcher(registry: PresenceRegistry) -> LaunchCoordinator:
    return LaunchCoordinator(registry)


# ---------------------------------------------------------------------------
# API Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client(registry: PresenceRegistry) -> TestClient:
    """A test client whose registry runs on the manual clock."""
    return TestClient(create_app(registry=registry))
