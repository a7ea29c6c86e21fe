"""Tests for the launch/acknowledge handshake."""

from __future__ import annotations

import pytest

from cafewatch.registry import (
    InvalidArgument,
    LaunchCoordinator,
    NamingService,
    NotFound,
    PresenceRegistry,
)


@pytest.fixture
def known(registry: PresenceRegistry) -> str:
    registry.record_heartbeat("10.0.0.5", now=0)
    return "10.0.0.5"


class TestLaunch:
    def test_launch_then_status(self, launcher: LaunchCoordinator, known: str) -> None:
        result = launcher.launch(known, ["Steam", "Discord"], "PC-1", now=10)
        assert result.software == ["Steam", "Discord"]
        assert result.system_name == "PC-1"
        assert result.timestamp == 10

        status = launcher.get_launch_status(known)
        assert status.launched is True
        assert status.directive.software == ["Steam", "Discord"]
        assert status.directive.acknowledged is False
        assert status.directive.acknowledged_at is None
        assert status.directive.launched_at == 10

    def test_no_directive_initially(self, launcher: LaunchCoordinator, known: str) -> None:
        status = launcher.get_launch_status(known)
        assert status.launched is False
        assert status.directive is None

    def test_empty_software_allowed(self, launcher: LaunchCoordinator, known: str) -> None:
        launcher.launch(known, [], None, now=1)
        assert launcher.get_launch_status(known).directive.software == []
        launcher.launch(known, None, None, now=2)
        assert launcher.get_launch_status(known).directive.software == []

    def test_label_falls_back_to_name_then_address(
        self, launcher: LaunchCoordinator, naming: NamingService, known: str
    ) -> None:
        assert launcher.launch(known, [], None, now=1).system_name == known
        naming.assign_name(known, "PC-1", now=2)
        assert launcher.launch(known, [], "  ", now=3).system_name == "PC-1"
        assert launcher.launch(known, [], "VIP", now=4).system_name == "VIP"

    def test_unknown_identifier(self, launcher: LaunchCoordinator) -> None:
        with pytest.raises(NotFound):
            launcher.launch("10.0.0.9", ["Steam"], None)
        with pytest.raises(NotFound):
            launcher.get_launch_status("10.0.0.9")

    def test_blank_identifier(self, launcher: LaunchCoordinator) -> None:
        with pytest.raises(InvalidArgument):
            launcher.launch("  ", ["Steam"], None)

    def test_launch_works_while_inactive(
        self, launcher: LaunchCoordinator, registry: PresenceRegistry, known: str
    ) -> None:
        launcher.launch(known, ["Steam"], None, now=3_600_000)
        assert registry.get_status(known, now=3_600_000).active is False
        assert launcher.get_launch_status(known).launched is True

    def test_software_list_is_copied(self, launcher: LaunchCoordinator, known: str) -> None:
        software = ["Steam"]
        launcher.launch(known, software, None, now=1)
        software.append("Discord")
        assert launcher.get_launch_status(known).directive.software == ["Steam"]


class TestRelaunch:
    def test_relaunch_replaces_pending(self, launcher: LaunchCoordinator, known: str) -> None:
        launcher.launch(known, ["Steam"], None, now=1)
        launcher.launch(known, ["Discord"], None, now=2)
        directive = launcher.get_launch_status(known).directive
        assert directive.software == ["Discord"]
        assert directive.launched_at == 2

    def test_relaunch_resets_acknowledgment(self, launcher: LaunchCoordinator, known: str) -> None:
        launcher.launch(known, ["Steam"], None, now=1)
        launcher.acknowledge(known, now=2)
        launcher.launch(known, ["Discord"], None, now=3)
        directive = launcher.get_launch_status(known).directive
        assert directive.acknowledged is False
        assert directive.acknowledged_at is None


class TestAcknowledge:
    def test_ack_without_launch(self, launcher: LaunchCoordinator, known: str) -> None:
        with pytest.raises(NotFound):
            launcher.acknowledge(known, now=1)

    def test_ack_unknown_identifier(self, launcher: LaunchCoordinator) -> None:
        with pytest.raises(NotFound):
            launcher.acknowledge("10.0.0.9", now=1)

    def test_ack_marks_acknowledged(self, launcher: LaunchCoordinator, known: str) -> None:
        launcher.launch(known, ["Steam"], None, now=1)
        result = launcher.acknowledge(known, now=5)
        assert result.acknowledged_at == 5
        assert result.already_acknowledged is False
        directive = launcher.get_launch_status(known).directive
        assert directive.acknowledged is True
        assert directive.acknowledged_at == 5

    def test_ack_is_idempotent(self, launcher: LaunchCoordinator, known: str) -> None:
        launcher.launch(known, ["Steam"], None, now=1)
        launcher.acknowledge(known, now=5)
        result = launcher.acknowledge(known, now=9)
        assert result.already_acknowledged is True
        assert result.acknowledged_at == 5
        assert launcher.get_launch_status(known).directive.acknowledged_at == 5

    def test_status_copy_not_live(self, launcher: LaunchCoordinator, known: str) -> None:
        launcher.launch(known, ["Steam"], None, now=1)
        before = launcher.get_launch_status(known)
        launcher.acknowledge(known, now=2)
        assert before.directive.acknowledged is False
