"""
clusterjoin - startup cluster join with bounded retries

Joins a LAN cluster and a WAN federation at agent startup. Each side runs its
own retry controller: candidates come from static addresses and (for the LAN)
a pluggable discovery directive such as ``provider=file path=peers.json``.
A controller that spends its retry budget reports a ``TerminalJoinError``
through a failure sink so the owning process can abort startup.

## Quick Start

```python
from clusterjoin import JoinAgent, JoinSettings, TcpProbeMembership
from clusterjoin.discovery import create_default_registry

settings = JoinSettings(
    retry_join=["10.0.0.1", "provider=file path=/etc/peers.json"],
    retry_interval=5.0,
    retry_max_attempts=10,
)
agent = JoinAgent(
    settings, TcpProbeMembership(), discovery=create_default_registry()
)
async with agent:
    failure = await agent.wait()
```
"""

from .agent import JoinAgent
from .core import (
    ClusterJoinError,
    ClusterMembership,
    ConfigurationError,
    DiscoveryError,
    FailureSink,
    JoinError,
    JoinSettings,
    JoinState,
    NoServersToJoinError,
    ResolvedJoinSpec,
    RetryJoinController,
    RetryPolicy,
    TcpProbeMembership,
    TerminalJoinError,
    create_lan_controller,
    create_wan_controller,
    load_settings,
    parse_duration,
    partition_join_spec,
)
from .discovery import DiscoveryProvider, DiscoveryRegistry

__version__ = "0.1.0"

__all__ = [
    "ClusterJoinError",
    "ClusterMembership",
    "ConfigurationError",
    "DiscoveryError",
    "DiscoveryProvider",
    "DiscoveryRegistry",
    "FailureSink",
    "JoinAgent",
    "JoinError",
    "JoinSettings",
    "JoinState",
    "NoServersToJoinError",
    "ResolvedJoinSpec",
    "RetryJoinController",
    "RetryPolicy",
    "TcpProbeMembership",
    "TerminalJoinError",
    "create_lan_controller",
    "create_wan_controller",
    "load_settings",
    "parse_duration",
    "partition_join_spec",
]
