"""
Statistics dataclasses for clusterjoin.

Snapshots are frozen so callers can hold on to them while the controller keeps
running.
"""

from dataclasses import dataclass

from clusterjoin.datastructures.type_aliases import (
    AddressString,
    AttemptCount,
    ControllerName,
    DiscoveryDirectiveString,
    DurationSeconds,
    PeerCount,
)


@dataclass(frozen=True, slots=True)
class JoinControllerStatistics:
    """Point-in-time view of a join controller."""

    name: ControllerName
    state: str
    attempts: AttemptCount
    max_attempts: AttemptCount
    interval_seconds: DurationSeconds
    peer_count: PeerCount | None
    last_error: str | None
    static_addresses: tuple[AddressString, ...]
    discovery_directive: DiscoveryDirectiveString | None
    discarded_directives: tuple[DiscoveryDirectiveString, ...]


@dataclass(frozen=True, slots=True)
class JoinAgentStatistics:
    """Combined view of the LAN and WAN controllers."""

    lan: JoinControllerStatistics
    wan: JoinControllerStatistics
    running_tasks: int
    pending_failures: int
