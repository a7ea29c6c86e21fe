"""Concurrent access to the registry from many request threads."""

from __future__ import annotations

import threading

from cafewatch.registry import LaunchCoordinator, NamingService, PresenceRegistry


def _run_threads(target, count: int) -> None:
    threads = [threading.Thread(target=target) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


class TestConcurrentHeartbeats:
    def test_racing_heartbeats_same_identifier_all_counted(self) -> None:
        registry = PresenceRegistry()

        def beat() -> None:
            for _ in range(200):
                registry.record_heartbeat("10.0.0.5", "agent")

        _run_threads(beat, 8)
        assert registry.get_status("10.0.0.5").heartbeat_count == 1600

    def test_many_identifiers(self) -> None:
        registry = PresenceRegistry()
        counter = iter(range(1000))
        lock = threading.Lock()

        def beat() -> None:
            with lock:
                n = next(counter)
            for _ in range(50):
                registry.record_heartbeat(f"10.0.{n // 250}.{n % 250 + 1}")

        _run_threads(beat, 20)
        assert len(registry) == 20
        assert all(s.heartbeat_count == 50 for s in registry.list_all())

    def test_heartbeats_interleaved_with_naming_and_launch(self) -> None:
        registry = PresenceRegistry()
        naming = NamingService(registry)
        launcher = LaunchCoordinator(registry)
        registry.record_heartbeat("10.0.0.5")

        def beat() -> None:
            for _ in range(300):
                registry.record_heartbeat("10.0.0.5")

        def operate() -> None:
            for i in range(100):
                naming.assign_name("10.0.0.5", f"PC-{i}")
                launcher.launch("10.0.0.5", ["Steam"], None)
                launcher.acknowledge("10.0.0.5")

        threads = [threading.Thread(target=beat) for _ in range(4)]
        threads.append(threading.Thread(target=operate))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        status = registry.get_status("10.0.0.5")
        assert status.heartbeat_count == 1 + 4 * 300
        assert status.display_name == "PC-99"
        assert status.launch_directive.acknowledged is True
