"""
Startup join orchestration.

``JoinAgent`` plays the owning process: it builds the LAN and WAN retry
controllers from ``JoinSettings``, runs each as its own background task and
exposes the failure sink through which an exhausted controller asks the
process to abort startup.

Example:

    agent = JoinAgent(settings, membership, discovery=create_default_registry())
    async with agent:
        failure = await agent.wait()
    if failure is not None:
        raise SystemExit(str(failure))
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any

from loguru import logger

from clusterjoin.core.config import JoinSettings
from clusterjoin.core.errors import TerminalJoinError
from clusterjoin.core.failure_sink import FailureSink
from clusterjoin.core.membership import ClusterMembership
from clusterjoin.core.retry_join import (
    RetryJoinController,
    SleepFunction,
    create_lan_controller,
    create_wan_controller,
)
from clusterjoin.core.statistics import JoinAgentStatistics
from clusterjoin.core.task_manager import TaskManager
from clusterjoin.discovery.registry import DiscoveryProvider


class JoinAgent:
    """Runs the LAN and WAN join controllers side by side."""

    def __init__(
        self,
        settings: JoinSettings,
        membership: ClusterMembership,
        *,
        discovery: DiscoveryProvider | None = None,
        failure_sink: FailureSink | None = None,
        log: Any = None,
        sleep: SleepFunction | None = None,
    ) -> None:
        self.settings = settings
        self.failures = failure_sink if failure_sink is not None else FailureSink()
        self.lan: RetryJoinController = create_lan_controller(
            settings,
            membership,
            self.failures,
            discovery=discovery,
            log=log,
            sleep=sleep,
        )
        self.wan: RetryJoinController = create_wan_controller(
            settings, membership, self.failures, log=log, sleep=sleep
        )
        self._tasks = TaskManager("JoinAgent")
        self._started = False

    @property
    def controllers(self) -> tuple[RetryJoinController, RetryJoinController]:
        return (self.lan, self.wan)

    def start(self) -> None:
        """Launch a background task for every controller with a join spec."""
        if self._started:
            raise RuntimeError("JoinAgent already started")
        self._started = True

        for controller in self.controllers:
            if controller.enabled:
                self._tasks.create_task(
                    controller.run(), name=f"retry-join-{controller.name}"
                )

    async def wait_for_failure(self) -> TerminalJoinError:
        """Block until a controller reports fatal exhaustion."""
        return await self.failures.get()

    async def wait(self) -> TerminalJoinError | None:
        """Wait until every controller finishes or one is exhausted.

        Returns the terminal error, or None when all joins completed (or were
        cancelled).
        """
        failure_task = asyncio.ensure_future(self.failures.get())
        finished_task = asyncio.ensure_future(self._tasks.wait())
        try:
            done, _pending = await asyncio.wait(
                {failure_task, finished_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (failure_task, finished_task):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        if failure_task in done and not failure_task.cancelled():
            return failure_task.result()
        if not self.failures.empty():
            return self.failures.get_nowait()
        return None

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Stop both controllers and wait for their tasks to wind down."""
        for controller in self.controllers:
            controller.stop()
        await self._tasks.shutdown(timeout=timeout)
        logger.debug(
            f"Join agent stopped (lan={self.lan.state.value}, "
            f"wan={self.wan.state.value})"
        )

    def statistics(self) -> JoinAgentStatistics:
        return JoinAgentStatistics(
            lan=self.lan.statistics(),
            wan=self.wan.statistics(),
            running_tasks=len(self._tasks),
            pending_failures=len(self.failures),
        )

    async def __aenter__(self) -> JoinAgent:
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()
