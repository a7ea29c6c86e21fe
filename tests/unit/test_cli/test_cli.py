"""Tests for the command-line entry point."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from cafewatch.cli import main, parse_args
from cafewatch.discovery.scanner import Candidate


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.chdir(tmp_path)


class TestParseArgs:
    def test_serve_overrides(self) -> None:
        args = parse_args(["-v", "serve", "--port", "8080"])
        assert args.command == "serve"
        assert args.port == 8080
        assert args.verbose is True

    def test_agent_args(self) -> None:
        args = parse_args(["agent", "--ip", "10.0.0.5", "--server", "http://s:5000/api"])
        assert args.ip == "10.0.0.5"
        assert args.server == "http://s:5000/api"

    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0


class TestCommands:
    def test_serve_runs_uvicorn(self) -> None:
        with patch("uvicorn.run") as run:
            main(["serve", "--port", "8123"])
        app = run.call_args.args[0]
        assert run.call_args.kwargs == {"host": "0.0.0.0", "port": 8123}
        assert app.state.registry.active_window_ms == 30_000

    def test_scan_prints_candidates(self, capsys: pytest.CaptureFixture[str]) -> None:
        found = [Candidate(ip="10.0.0.7", hostname="pc-7.lan")]
        with patch(
            "cafewatch.discovery.scanner.NetworkScanner.scan", AsyncMock(return_value=found)
        ), patch("cafewatch.discovery.scanner.local_ipv4", return_value=None):
            main(["scan", "--subnet", "10.0.0.", "--start", "1", "--end", "9"])
        out = capsys.readouterr().out
        assert "1 address(es) answered in 10.0.0.1-9" in out
        assert "10.0.0.7  (pc-7.lan)" in out

    def test_scan_reversed_range_reports_error(
        self, capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture
    ) -> None:
        with patch("cafewatch.discovery.scanner.local_ipv4", return_value=None):
            main(["scan", "--subnet", "10.0.0.", "--start", "40", "--end", "10"])
        assert "answered" not in capsys.readouterr().out
        assert "Invalid host range 40-10" in caplog.text

    def test_agent_uses_explicit_ip(self) -> None:
        with patch("cafewatch.agent.client.TerminalAgent.connect", AsyncMock()), \
                patch("cafewatch.agent.client.TerminalAgent.run", AsyncMock()) as run, \
                patch("cafewatch.agent.client.TerminalAgent.disconnect", AsyncMock()):
            main(["agent", "--ip", "10.0.0.5"])
        run.assert_awaited_once()
