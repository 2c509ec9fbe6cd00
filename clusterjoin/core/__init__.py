"""Core join machinery: settings, address handling, retry controllers."""

from .address_resolver import ResolvedJoinSpec, partition_join_spec
from .config import JoinSettings, RetryPolicy, load_settings, parse_duration
from .errors import (
    ClusterJoinError,
    ConfigurationError,
    DiscoveryError,
    JoinError,
    NoServersToJoinError,
    TerminalJoinError,
)
from .failure_sink import FailureSink
from .membership import ClusterMembership, TcpProbeMembership
from .retry_join import (
    JoinState,
    RetryJoinController,
    create_lan_controller,
    create_wan_controller,
)

__all__ = [
    "ClusterJoinError",
    "ClusterMembership",
    "ConfigurationError",
    "DiscoveryError",
    "FailureSink",
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
