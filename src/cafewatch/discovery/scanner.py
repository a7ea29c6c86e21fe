"""Local subnet scanner that proposes candidate terminal addresses.

Stateless helper for the operator: it pings a range of addresses on the
host's /24 subnet and reports which ones answered. It never reads or
writes the registry; a candidate only becomes a known terminal once that
terminal sends its own heartbeat.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_SUBNET = "192.168.1."

# Any routable address works; connecting a UDP socket sends no packets
_ROUTE_PROBE_ADDR = ("10.255.255.255", 1)


class Candidate(BaseModel):
    """An address that answered a probe."""

    model_config = ConfigDict(frozen=True)

    ip: str
    hostname: str
    is_online: bool = True
    last_seen: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def local_ipv4() -> str | None:
    """Return the host's outbound IPv4 address, or None when offline."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(_ROUTE_PROBE_ADDR)
        address = sock.getsockname()[0]
    except OSError:
        return None
    finally:
        sock.close()
    if address.startswith("127.") or address == "0.0.0.0":
        return None
    return address


def subnet_of(address: str) -> str:
    """Three-octet prefix of an IPv4 address, e.g. '192.168.1.'."""
    octets = address.split(".")
    if len(octets) != 4:
        raise ValueError(f"Not an IPv4 address: {address}")
    return ".".join(octets[:3]) + "."


class NetworkScanner:
    """Pings a range of host addresses on one /24 subnet."""

    def __init__(
        self,
        subnet: str | None = None,
        timeout: float = 1.0,
        concurrency: int = 32,
    ) -> None:
        if subnet is None:
            address = local_ipv4()
            subnet = subnet_of(address) if address else DEFAULT_SUBNET
        if not subnet.endswith("."):
            subnet += "."
        self._subnet = subnet
        self._timeout = timeout
        self._concurrency = concurrency

    @property
    def subnet(self) -> str:
        return self._subnet

    async def scan(self, range_start: int = 1, range_end: int = 50) -> list[Candidate]:
        """Probe ``subnet + n`` for n in [range_start, range_end].

        Returns:
            Responsive addresses, ordered by last octet.

        Raises:
            ValueError: If the range is outside 1..254 or reversed.
        """
        if range_start < 1 or range_end > 254 or range_start > range_end:
            raise ValueError(f"Invalid host range {range_start}-{range_end}")

        semaphore = asyncio.Semaphore(self._concurrency)

        async def _probe_one(host: int) -> Candidate | None:
            ip = f"{self._subnet}{host}"
            async with semaphore:
                alive = await self.probe(ip)
            if not alive:
                return None
            return Candidate(ip=ip, hostname=await self._reverse_lookup(ip))

        logger.info("Scanning %s%d-%d", self._subnet, range_start, range_end)
        results = await asyncio.gather(
            *(_probe_one(n) for n in range(range_start, range_end + 1))
        )
        found = [c for c in results if c is not None]
        logger.info("Scan finished: %d of %d addresses answered",
                    len(found), range_end - range_start + 1)
        return found

    async def probe(self, ip: str) -> bool:
        """Send one ICMP echo request to ``ip`` via the system ping tool."""
        try:
            proc = await asyncio.create_subprocess_exec(
                "ping", "-c", "1", "-W", str(max(1, int(self._timeout))), ip,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Cannot run ping: %s", e)
            return False
        try:
            return await asyncio.wait_for(proc.wait(), timeout=self._timeout + 1.0) == 0
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return False

    def network_info(self) -> list[dict[str, str]]:
        """Describe the local interface the scanner derives its subnet from."""
        address = local_ipv4()
        if address is None:
            return []
        return [{"hostname": socket.gethostname(), "ip": address, "subnet": self._subnet}]

    async def _reverse_lookup(self, ip: str) -> str:
        loop = asyncio.get_running_loop()
        try:
            host, _, _ = await loop.run_in_executor(None, socket.gethostbyaddr, ip)
        except OSError:
            return ip
        return host
