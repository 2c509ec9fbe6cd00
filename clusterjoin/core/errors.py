"""Exception hierarchy for cluster join operations.

Transient errors (``DiscoveryError``, ``JoinError``) are logged and retried by
the join controllers. ``TerminalJoinError`` is never raised out of a
controller; it is handed to the owning process through a ``FailureSink``.
"""

from __future__ import annotations

from clusterjoin.datastructures.type_aliases import (
    AttemptCount,
    ControllerName,
    ErrorMessage,
)


class ClusterJoinError(Exception):
    """Base exception for clusterjoin errors."""

    pass


class ConfigurationError(ClusterJoinError):
    """Raised when join settings are invalid."""

    pass


class DiscoveryError(ClusterJoinError):
    """Raised when a discovery directive cannot be parsed or resolved."""

    pass


class JoinError(ClusterJoinError):
    """Raised by a membership implementation when a join attempt fails."""

    pass


class NoServersToJoinError(JoinError):
    """Raised when an iteration ends up with no candidate addresses."""

    def __init__(self) -> None:
        super().__init__("No servers to join")


class TerminalJoinError(ClusterJoinError):
    """Fatal exhaustion of a join controller's retry budget."""

    def __init__(
        self,
        message: ErrorMessage,
        *,
        controller: ControllerName,
        attempts: AttemptCount,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.controller = controller
        self.attempts = attempts
        self.last_error = last_error

    def __repr__(self) -> str:
        return (
            f"TerminalJoinError({self.message!r}, controller={self.controller!r}, "
            f"attempts={self.attempts})"
        )
