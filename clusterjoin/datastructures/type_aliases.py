"""
Semantic type aliases for clusterjoin.

These aliases keep signatures self-documenting: a join candidate is an
``AddressString`` whether it came from static configuration or discovery.
"""

from collections.abc import Mapping
from typing import TypeAlias

# Time types
Timestamp: TypeAlias = float
DurationSeconds: TypeAlias = float

# Address types
AddressString: TypeAlias = str  # host, host:port or [v6]:port
HostAddress: TypeAlias = str
PortNumber: TypeAlias = int
DiscoveryDirectiveString: TypeAlias = str  # "provider=<name> key=value ..."
ProviderName: TypeAlias = str
DiscoveryArguments: TypeAlias = Mapping[str, str]

# Join bookkeeping
ControllerName: TypeAlias = str
AttemptCount: TypeAlias = int
PeerCount: TypeAlias = int
ErrorMessage: TypeAlias = str
