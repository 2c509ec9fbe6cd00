"""Cluster membership join entry points.

The gossip layer itself lives outside this package; the join controllers only
need ``join_lan`` and ``join_wan``. ``TcpProbeMembership`` is a minimal
implementation used by the command line tool: a "join" succeeds when at least
one candidate accepts a TCP connection.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from clusterjoin.core.errors import JoinError
from clusterjoin.datastructures.type_aliases import (
    AddressString,
    DurationSeconds,
    HostAddress,
    PeerCount,
    PortNumber,
)

DEFAULT_LAN_PORT: PortNumber = 8301
DEFAULT_WAN_PORT: PortNumber = 8302


class ClusterMembership(Protocol):
    """Join operations consumed by the retry controllers.

    Both return the number of peers contacted or raise on failure.
    """

    async def join_lan(self, addresses: Sequence[AddressString]) -> PeerCount: ...

    async def join_wan(self, addresses: Sequence[AddressString]) -> PeerCount: ...


def split_host_port(
    address: AddressString, default_port: PortNumber
) -> tuple[HostAddress, PortNumber]:
    """Split ``host``, ``host:port``, ``[v6]`` or ``[v6]:port``."""
    address = address.strip()
    if not address:
        raise ValueError("empty address")

    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {address!r}")
        host = address[1:end]
        rest = address[end + 1 :]
        if not rest:
            return host, default_port
        if not rest.startswith(":"):
            raise ValueError(f"unexpected text after ']' in address {address!r}")
        return host, _port(rest[1:], address)

    if address.count(":") > 1:
        # Bare IPv6 literal without a port
        return address, default_port
    host, sep, port = address.partition(":")
    if not sep:
        return host, default_port
    if not host:
        raise ValueError(f"missing host in address {address!r}")
    return host, _port(port, address)


def _port(text: str, address: str) -> PortNumber:
    if not text.isdigit():
        raise ValueError(f"invalid port in address {address!r}")
    port = int(text)
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in address {address!r}")
    return port


@dataclass(slots=True)
class TcpProbeMembership:
    """Counts reachable candidates; fails when none are reachable."""

    connect_timeout: DurationSeconds = 5.0
    lan_port: PortNumber = DEFAULT_LAN_PORT
    wan_port: PortNumber = DEFAULT_WAN_PORT

    async def join_lan(self, addresses: Sequence[AddressString]) -> PeerCount:
        return await self._join(addresses, self.lan_port)

    async def join_wan(self, addresses: Sequence[AddressString]) -> PeerCount:
        return await self._join(addresses, self.wan_port)

    async def _join(
        self, addresses: Sequence[AddressString], default_port: PortNumber
    ) -> PeerCount:
        results = await asyncio.gather(
            *(self._probe(address, default_port) for address in addresses)
        )
        failures = [
            f"{address}: {error}"
            for address, error in zip(addresses, results, strict=True)
            if error is not None
        ]
        contacted = len(addresses) - len(failures)
        if contacted == 0:
            raise JoinError("; ".join(failures) or "no addresses given")

        for failure in failures:
            logger.debug(f"Join probe failed for {failure}")
        return contacted

    async def _probe(
        self, address: AddressString, default_port: PortNumber
    ) -> str | None:
        """Return None when reachable, otherwise the failure reason."""
        try:
            host, port = split_host_port(address, default_port)
        except ValueError as e:
            return str(e)

        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=self.connect_timeout
            )
        except TimeoutError:
            return f"timed out after {self.connect_timeout}s"
        except OSError as e:
            return str(e) or e.__class__.__name__

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return None
