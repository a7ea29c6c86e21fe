"""Command-line interface for cafewatch.

Provides the main entry point for running the registry server, the
terminal-side heartbeat agent, or a one-off subnet scan.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="cafewatch",
        description="Presence and session registry for networked terminals",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/cafewatch.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the registry HTTP server")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    agent_parser = subparsers.add_parser("agent", help="Run the terminal heartbeat agent")
    agent_parser.add_argument(
        "--ip", type=str, default=None,
        help="Address to report (default: detected outbound IPv4 address)",
    )
    agent_parser.add_argument(
        "--server", type=str, default=None,
        help="Registry API base URL (e.g. http://192.168.1.10:5000/api)",
    )

    scan_parser = subparsers.add_parser("scan", help="Probe the local subnet for terminals")
    scan_parser.add_argument("--start", type=int, default=None, help="First host number")
    scan_parser.add_argument("--end", type=int, default=None, help="Last host number")
    scan_parser.add_argument(
        "--subnet", type=str, default=None,
        help="Three-octet prefix such as 192.168.1. (default: detected)",
    )

    return parser.parse_args(argv)


def _serve(settings, args) -> None:
    """Build the registry app and run it under uvicorn."""
    import uvicorn
    from cafewatch.api.server import create_app

    srv = settings.server
    app = create_app(
        active_window_ms=settings.registry.active_window_ms,
        recent_window_ms=settings.registry.recent_window_ms,
        cors_origins=srv.cors_origins,
    )
    host = args.host or srv.host
    port = args.port or srv.port
    logger.info("Registry listening on http://%s:%d/api", host, port)
    uvicorn.run(app, host=host, port=port)


async def _run_agent(settings, args) -> None:
    """Keep this terminal registered until interrupted."""
    from cafewatch.agent.client import TerminalAgent
    from cafewatch.discovery.scanner import local_ipv4

    cfg = settings.agent
    identifier = args.ip or cfg.identifier or local_ipv4() or "127.0.0.1"

    agent = TerminalAgent(
        server_url=args.server or cfg.server_url,
        identifier=identifier,
        user_agent=cfg.user_agent,
        heartbeat_interval=cfg.heartbeat_interval,
        launch_poll_interval=cfg.launch_poll_interval,
        retry_delay=cfg.retry_delay,
        timeout=cfg.timeout,
    )
    async with agent:
        await agent.run()


async def _scan(settings, args) -> None:
    """Print addresses on the local subnet that answer a ping."""
    from cafewatch.discovery.scanner import NetworkScanner

    cfg = settings.discovery
    scanner = NetworkScanner(
        subnet=args.subnet or cfg.subnet,
        timeout=cfg.timeout,
        concurrency=cfg.concurrency,
    )
    start = args.start or cfg.range_start
    end = args.end or cfg.range_end

    for iface in scanner.network_info():
        print(f"Local address: {iface['ip']} ({iface['hostname']}), subnet {iface['subnet']}0/24")

    try:
        candidates = await scanner.scan(start, end)
    except ValueError as e:
        logger.error("Scan aborted: %s", e)
        return
    print(f"\n{len(candidates)} address(es) answered in {scanner.subnet}{start}-{end}:")
    for c in candidates:
        suffix = f"  ({c.hostname})" if c.hostname != c.ip else ""
        print(f"  {c.ip}{suffix}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the cafewatch CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from cafewatch.config.settings import load_settings
    from cafewatch.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting registry server")
        _serve(settings, args)

    elif args.command == "agent":
        logger.info("Starting terminal agent")
        try:
            asyncio.run(_run_agent(settings, args))
        except KeyboardInterrupt:
            logger.info("Agent interrupted")

    elif args.command == "scan":
        logger.info("Running subnet scan")
        asyncio.run(_scan(settings, args))


if __name__ == "__main__":
    main()
