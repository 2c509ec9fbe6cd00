"""
Retry controllers for joining the LAN cluster and the WAN federation.

A controller loops until a join succeeds or its retry budget is spent:

    IDLE -> RESOLVING -> ATTEMPTING -> SUCCEEDED
                 ^            |
                 |            v
              WAITING <-- (failure) --> EXHAUSTED

Each iteration builds the candidate list (discovered addresses first, then
static ones), attempts the join, and on failure either sleeps for the policy
interval or, once ``max_attempts`` failures have accumulated, hands a
``TerminalJoinError`` to the failure sink and stops. ``stop()`` moves a running
controller to CANCELLED; the signal is checked before every resolve, join and
sleep, and interrupts a sleep in progress unless a custom ``sleep`` was
injected (that one always runs to completion). A failure of the final attempt
exhausts the controller even when ``stop()`` arrived while it was in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias

from loguru import logger

from clusterjoin.core.address_resolver import ResolvedJoinSpec, partition_join_spec
from clusterjoin.core.config import JoinSettings, RetryPolicy, format_duration
from clusterjoin.core.errors import (
    DiscoveryError,
    NoServersToJoinError,
    TerminalJoinError,
)
from clusterjoin.core.failure_sink import FailureSink
from clusterjoin.core.membership import ClusterMembership
from clusterjoin.core.statistics import JoinControllerStatistics
from clusterjoin.datastructures.type_aliases import (
    AddressString,
    AttemptCount,
    ControllerName,
    DurationSeconds,
    PeerCount,
)
from clusterjoin.discovery.registry import DiscoveryProvider

JoinFunction: TypeAlias = Callable[[Sequence[AddressString]], Awaitable[PeerCount]]
SleepFunction: TypeAlias = Callable[[DurationSeconds], Awaitable[None]]

LAN_CONTROLLER: ControllerName = "lan"
WAN_CONTROLLER: ControllerName = "wan"


class JoinState(Enum):
    """Lifecycle of a join controller."""

    IDLE = "idle"
    RESOLVING = "resolving"
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {JoinState.SUCCEEDED, JoinState.EXHAUSTED, JoinState.CANCELLED}
)


@dataclass(frozen=True, slots=True)
class JoinMessages:
    """Operator-facing wording for one controller flavour."""

    starting: str
    succeeded: str
    retrying: str
    exhausted: str


LAN_MESSAGES = JoinMessages(
    starting="Joining cluster...",
    succeeded="Join completed. Synced with {peers} initial agents",
    retrying="Join failed: {error}, retrying in {interval} (attempt {attempt})",
    exhausted="max join retry exhausted, exiting",
)

WAN_MESSAGES = JoinMessages(
    starting="Joining WAN cluster...",
    succeeded="Join -wan completed. Synced with {peers} initial agents",
    retrying="Join -wan failed: {error}, retrying in {interval} (attempt {attempt})",
    exhausted="max join -wan retry exhausted, exiting",
)


class RetryJoinController:
    """Fixed-interval, bounded retry loop around one join operation.

    With ``use_discovery`` the join spec is partitioned into static addresses
    and a discovery directive that is re-resolved on every iteration. Without
    it the join spec is passed to ``join`` as-is.

    ``sleep`` replaces the stop-aware wait between attempts, so ``stop()``
    takes effect only once an injected sleep returns.
    """

    def __init__(
        self,
        *,
        name: ControllerName,
        join_spec: Sequence[str],
        policy: RetryPolicy,
        join: JoinFunction,
        failure_sink: FailureSink,
        discovery: DiscoveryProvider | None = None,
        use_discovery: bool = True,
        messages: JoinMessages = LAN_MESSAGES,
        log: Any = None,
        sleep: SleepFunction | None = None,
    ) -> None:
        self.name = name
        self.policy = policy
        self.messages = messages
        self._join = join
        self._failure_sink = failure_sink
        self._discovery = discovery
        self._use_discovery = use_discovery
        self._sleep = sleep
        self._log = (log if log is not None else logger).bind(controller=name)

        if use_discovery:
            self.spec = partition_join_spec(join_spec)
        else:
            self.spec = ResolvedJoinSpec(static_addresses=tuple(join_spec))

        self._state = JoinState.IDLE
        self._attempts: AttemptCount = 0
        self._peer_count: PeerCount | None = None
        self._last_error: BaseException | None = None
        self._started = False
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> JoinState:
        return self._state

    @property
    def attempts(self) -> AttemptCount:
        return self._attempts

    @property
    def peer_count(self) -> PeerCount | None:
        return self._peer_count

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    @property
    def enabled(self) -> bool:
        """False when the join spec is empty and ``run`` is a no-op."""
        return not self.spec.empty

    def stop(self) -> None:
        """Request cancellation; takes effect at the next check point."""
        self._stop_event.set()

    def statistics(self) -> JoinControllerStatistics:
        return JoinControllerStatistics(
            name=self.name,
            state=self._state.value,
            attempts=self._attempts,
            max_attempts=self.policy.max_attempts,
            interval_seconds=self.policy.interval,
            peer_count=self._peer_count,
            last_error=str(self._last_error) if self._last_error else None,
            static_addresses=self.spec.static_addresses,
            discovery_directive=self.spec.discovery_directive,
            discarded_directives=self.spec.discarded_directives,
        )

    async def run(self) -> JoinState:
        """Run the join loop to completion and return the final state."""
        if self._started:
            raise RuntimeError(f"Join controller {self.name} already started")
        self._started = True

        if not self.enabled:
            return self._state

        self._log.info(self.messages.starting)
        for directive in self.spec.discarded_directives:
            self._log.warning(
                f"Ignoring discovery directive {directive!r}; only the last one "
                f"({self.spec.discovery_directive!r}) is used"
            )

        try:
            return await self._loop()
        except asyncio.CancelledError:
            self._cancelled()
            raise

    async def _loop(self) -> JoinState:
        while True:
            if self._stop_event.is_set():
                return self._cancelled()

            self._transition(JoinState.RESOLVING)
            candidates = await self._candidates()
            if self._stop_event.is_set():
                return self._cancelled()

            try:
                if not candidates:
                    raise NoServersToJoinError()
                self._transition(JoinState.ATTEMPTING)
                peers = await self._join(candidates)
            except Exception as e:
                error: Exception = e
            else:
                self._peer_count = peers
                self._transition(JoinState.SUCCEEDED)
                self._log.info(self.messages.succeeded.format(peers=peers))
                return self._state

            self._attempts += 1
            self._last_error = error
            if self.policy.exhausted(self._attempts):
                return self._exhausted(error)

            if self._stop_event.is_set():
                return self._cancelled()

            self._transition(JoinState.WAITING)
            self._log.warning(
                self.messages.retrying.format(
                    error=error,
                    interval=format_duration(self.policy.interval),
                    attempt=self._attempts,
                )
            )
            await self._wait(self.policy.interval)

    async def _candidates(self) -> list[AddressString]:
        static = list(self.spec.static_addresses)
        directive = self.spec.discovery_directive
        if directive is None:
            return static

        try:
            if self._discovery is None:
                raise DiscoveryError("no discovery provider configured")
            discovered = await self._discovery.resolve(directive)
        except Exception as e:
            self._log.error(f"Discovery failed for {directive!r}: {e}")
            return static

        self._log.info(f"Discovered servers: {discovered}")
        return list(discovered) + static

    async def _wait(self, seconds: DurationSeconds) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    def _exhausted(self, error: Exception) -> JoinState:
        terminal = TerminalJoinError(
            self.messages.exhausted,
            controller=self.name,
            attempts=self._attempts,
            last_error=error,
        )
        self._transition(JoinState.EXHAUSTED)
        self._log.error(
            f"{self.messages.exhausted} after {self._attempts} attempts "
            f"(last error: {error})"
        )
        self._failure_sink.deliver(terminal)
        return self._state

    def _cancelled(self) -> JoinState:
        if not self._state.terminal:
            self._transition(JoinState.CANCELLED)
            self._log.info(f"Join cancelled after {self._attempts} attempts")
        return self._state

    def _transition(self, state: JoinState) -> None:
        self._log.debug(f"Join state {self._state.value} -> {state.value}")
        self._state = state


def create_lan_controller(
    settings: JoinSettings,
    membership: ClusterMembership,
    failure_sink: FailureSink,
    *,
    discovery: DiscoveryProvider | None = None,
    log: Any = None,
    sleep: SleepFunction | None = None,
) -> RetryJoinController:
    """Controller for ``retry_join``: static addresses plus discovery."""
    return RetryJoinController(
        name=LAN_CONTROLLER,
        join_spec=settings.retry_join,
        policy=settings.lan_policy(),
        join=membership.join_lan,
        failure_sink=failure_sink,
        discovery=discovery,
        use_discovery=True,
        messages=LAN_MESSAGES,
        log=log,
        sleep=sleep,
    )


def create_wan_controller(
    settings: JoinSettings,
    membership: ClusterMembership,
    failure_sink: FailureSink,
    *,
    log: Any = None,
    sleep: SleepFunction | None = None,
) -> RetryJoinController:
    """Controller for ``retry_join_wan``: static addresses only."""
    return RetryJoinController(
        name=WAN_CONTROLLER,
        join_spec=settings.retry_join_wan,
        policy=settings.wan_policy(),
        join=membership.join_wan,
        failure_sink=failure_sink,
        use_discovery=False,
        messages=WAN_MESSAGES,
        log=log,
        sleep=sleep,
    )
