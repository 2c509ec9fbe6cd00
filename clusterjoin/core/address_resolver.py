"""Split a configured join list into static addresses and a discovery directive."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from clusterjoin.datastructures.type_aliases import (
    AddressString,
    DiscoveryDirectiveString,
)

DISCOVERY_MARKER = "provider="


def is_discovery_directive(entry: str) -> bool:
    return DISCOVERY_MARKER in entry


@dataclass(frozen=True, slots=True)
class ResolvedJoinSpec:
    """Result of partitioning a join spec.

    ``discarded_directives`` holds earlier directives shadowed by the last one,
    in the order they appeared.
    """

    static_addresses: tuple[AddressString, ...]
    discovery_directive: DiscoveryDirectiveString | None = None
    discarded_directives: tuple[DiscoveryDirectiveString, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.static_addresses and self.discovery_directive is None


def partition_join_spec(join_spec: Iterable[str]) -> ResolvedJoinSpec:
    """Partition ``join_spec`` preserving the order of static entries.

    When several directives are present the most recently seen one wins.
    """
    static_addresses: list[AddressString] = []
    directives: list[DiscoveryDirectiveString] = []
    for entry in join_spec:
        if is_discovery_directive(entry):
            directives.append(entry)
            continue
        static_addresses.append(entry)

    return ResolvedJoinSpec(
        static_addresses=tuple(static_addresses),
        discovery_directive=directives[-1] if directives else None,
        discarded_directives=tuple(directives[:-1]),
    )
