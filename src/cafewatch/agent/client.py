"""Terminal-side heartbeat agent.

Runs on each terminal. Pushes a heartbeat to the registry server on a
fixed interval, polls for launch directives, and acknowledges each new
directive exactly once. Network failures are logged and retried after a
fixed delay; the server keeps no retry state of its own.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

import httpx

from cafewatch.utils.timefmt import now_ms

logger = logging.getLogger(__name__)

LaunchCallback = Callable[[dict[str, Any]], None]


class AgentError(Exception):
    """Raised when the agent cannot talk to the registry server."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TerminalAgent:
    """Keeps one terminal registered and live on the registry server.

    Example usage::

        async with TerminalAgent("http://server:5000/api", "192.168.1.23") as agent:
            await agent.run()
    """

    def __init__(
        self,
        server_url: str = "http://localhost:5000/api",
        identifier: str = "127.0.0.1",
        user_agent: str = "cafewatch-agent",
        heartbeat_interval: float = 1.0,
        launch_poll_interval: float = 3.0,
        retry_delay: float = 5.0,
        timeout: float = 5.0,
        on_launch: LaunchCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._identifier = identifier
        self._user_agent = user_agent
        self._heartbeat_interval = heartbeat_interval
        self._launch_poll_interval = launch_poll_interval
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._on_launch = on_launch
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._running = False

        self.assigned_name: str | None = None
        self.heartbeats_sent = 0
        self.last_ping_ms: float | None = None
        self.launch_config: dict[str, Any] | None = None

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def is_running(self) -> bool:
        return self._running

    async def connect(self) -> None:
        """Create the HTTP client and verify the server answers."""
        self._client = httpx.AsyncClient(
            base_url=self._server_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json", "Cache-Control": "no-cache"},
        )
        try:
            await self._request("GET", "/test")
            logger.info("Connected to registry at %s", self._server_url)
        except AgentError:
            await self._client.aclose()
            self._client = None
            raise

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from registry")

    async def __aenter__(self) -> TerminalAgent:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Single calls
    # ------------------------------------------------------------------

    async def send_heartbeat(self) -> dict[str, Any]:
        """Send one heartbeat and record the name the server reports."""
        started = time.monotonic()
        data = await self._request(
            "POST",
            "/heartbeat",
            json={
                "ip": self._identifier,
                "timestamp": now_ms(),
                "userAgent": self._user_agent,
            },
        )
        self.last_ping_ms = (time.monotonic() - started) * 1000
        self.heartbeats_sent += 1

        if data.get("hasName") and data.get("assignedName") != self.assigned_name:
            self.assigned_name = data["assignedName"]
            logger.info('System name updated: "%s"', self.assigned_name)
        return data

    async def check_name(self) -> str | None:
        """Ask the server which name is assigned to this terminal."""
        data = await self._request("GET", f"/client/check/{self._identifier}")
        if data.get("exists") and data.get("name"):
            self.assigned_name = data["name"]
        return self.assigned_name

    async def check_launch(self) -> dict[str, Any] | None:
        """Poll for a launch directive; acknowledge and report a new one.

        Returns the launch config when this call picked up a directive that
        had not been acknowledged yet, otherwise None.
        """
        data = await self._request("GET", f"/systems/launch-status/{self._identifier}")
        if not data.get("launched"):
            return None

        config = data.get("config") or {}
        if config.get("acknowledged"):
            return None

        await self._request("POST", f"/systems/launch-acknowledge/{self._identifier}")
        self.launch_config = config
        logger.info(
            "Launch received for %s: %s",
            config.get("systemName", self._identifier),
            ", ".join(config.get("software") or []) or "(no software)",
        )
        if self._on_launch is not None:
            try:
                self._on_launch(config)
            except Exception:
                # The directive is already acknowledged; heartbeats must go on
                logger.exception("Launch handler failed for %s", self._identifier)
        return config

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Heartbeat and poll until stop() is called."""
        if self._client is None:
            raise AgentError("Not connected to registry")

        self._running = True
        next_launch_poll = 0.0
        logger.info(
            "Heartbeat monitoring started for %s (%.1fs interval)",
            self._identifier,
            self._heartbeat_interval,
        )

        while self._running:
            try:
                await self.send_heartbeat()
            except AgentError as e:
                logger.warning("Heartbeat failed: %s; retrying in %.1fs", e, self._retry_delay)
                await asyncio.sleep(self._retry_delay)
                continue

            if time.monotonic() >= next_launch_poll:
                next_launch_poll = time.monotonic() + self._launch_poll_interval
                try:
                    await self.check_launch()
                except AgentError as e:
                    # Launch polling is best effort; the next poll retries
                    logger.debug("Launch status check failed: %s", e)

            await asyncio.sleep(self._heartbeat_interval)

        logger.info("Heartbeat monitoring stopped for %s", self._identifier)

    def stop(self) -> None:
        self._running = False

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict[str, Any]:
        """Send a request to the server and return the decoded JSON body."""
        if self._client is None:
            raise AgentError("Not connected to registry")
        try:
            resp = await self._client.request(method, path, json=json)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise AgentError(
                f"{method} {path} failed: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise AgentError(f"{method} {path} failed: {e}") from e
