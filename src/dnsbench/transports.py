"""
UDP transport for DNS queries.

Every query gets its own unconnected dnspython datagram socket, opened just
before the query is sent and closed when the exchange ends. Sockets are
never shared between concurrent queries, so one task can never consume a
response addressed to another.
"""

import socket
from typing import Optional

import dns.asyncbackend
import dns.asyncquery
import dns.inet

# Large enough for any EDNS-extended UDP response
MAX_DATAGRAM_SIZE = 65535


class UDPTransport:
    """
    Single-use UDP socket scoped to one DNS exchange.

    Usage:
        async with UDPTransport(socket.AF_INET) as transport:
            await transport.send(wire, ("1.1.1.1", 53))
            data = await transport.receive(timeout=2.0)
    """

    def __init__(self, family: int = socket.AF_INET):
        self.family = family
        self._sock: Optional[dns.asyncbackend.DatagramSocket] = None

    @classmethod
    def for_host(cls, host: str) -> "UDPTransport":
        """Create a transport whose address family matches the resolver."""
        return cls(dns.inet.af_for_address(host))

    @property
    def bind_host(self) -> str:
        return "::" if self.family == socket.AF_INET6 else "0.0.0.0"

    async def open(self) -> None:
        """Bind an ephemeral local port. Raises OSError on failure."""
        backend = dns.asyncbackend.get_backend("asyncio")
        self._sock = await backend.make_socket(
            self.family, socket.SOCK_DGRAM, 0, (self.bind_host, 0)
        )

    async def send(self, data: bytes, address: tuple[str, int]) -> None:
        """Send one datagram. Raises OSError if the socket rejects it."""
        if self._sock is None:
            raise OSError("transport is not open")
        await dns.asyncquery.send_udp(self._sock, data, address)

    async def receive(self, timeout: float) -> bytes:
        """
        Wait for the next datagram.

        Raises:
            dns.exception.Timeout: If nothing arrives within timeout seconds
            OSError: If the socket reported an error
        """
        if self._sock is None:
            raise OSError("transport is not open")
        data, _addr = await self._sock.recvfrom(MAX_DATAGRAM_SIZE, timeout)
        return data

    async def local_address(self) -> tuple:
        """The (host, port) this transport is bound to."""
        if self._sock is None:
            raise OSError("transport is not open")
        return await self._sock.getsockname()

    async def close(self) -> None:
        if self._sock is not None:
            sock, self._sock = self._sock, None
            await sock.close()

    async def __aenter__(self) -> "UDPTransport":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
