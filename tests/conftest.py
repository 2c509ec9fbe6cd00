"""Pytest configuration and fixtures for clusterjoin testing.

Provides scripted membership and discovery doubles, a controlled clock for the
retry sleep, loguru capture, and an async context that stops any agents or
tasks a test leaves running.
"""

import asyncio
import sys
from collections.abc import AsyncGenerator, Generator, Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from loguru import logger

from clusterjoin.agent import JoinAgent
from clusterjoin.core.errors import DiscoveryError, JoinError


class AsyncTestContext:
    """Context manager for async test operations with automatic cleanup."""

    def __init__(self) -> None:
        self.agents: list[JoinAgent] = []
        self.tasks: list[asyncio.Task[Any]] = []

    async def __aenter__(self) -> "AsyncTestContext":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        for task in self.tasks:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        for agent in self.agents:
            try:
                await agent.shutdown(timeout=1.0)
            except Exception as e:
                logger.warning(f"Error shutting down agent: {e}")

        self.agents.clear()
        self.tasks.clear()


@pytest_asyncio.fixture
async def test_context() -> AsyncGenerator[AsyncTestContext, None]:
    """Provides a clean async test context with automatic resource cleanup."""
    async with AsyncTestContext() as ctx:
        yield ctx


@dataclass(slots=True)
class FakeClock:
    """Controlled clock: ``sleep`` advances time instantly."""

    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class ScriptedMembership:
    """ClusterMembership double.

    ``outcomes`` is consumed one entry per join call: an int is a peer count,
    an exception is raised. Once exhausted, ``default`` applies (an exception
    means "always fail").
    """

    def __init__(
        self,
        outcomes: Sequence[int | BaseException] = (),
        default: int | BaseException = JoinError("connection refused"),
    ) -> None:
        self.outcomes = list(outcomes)
        self.default = default
        self.lan_calls: list[list[str]] = []
        self.wan_calls: list[list[str]] = []

    async def join_lan(self, addresses: Sequence[str]) -> int:
        self.lan_calls.append(list(addresses))
        return self._next()

    async def join_wan(self, addresses: Sequence[str]) -> int:
        self.wan_calls.append(list(addresses))
        return self._next()

    def _next(self) -> int:
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def failing_membership() -> ScriptedMembership:
    return ScriptedMembership()


class StubDiscovery:
    """DiscoveryProvider double returning fixed addresses or failing."""

    def __init__(
        self,
        addresses: Sequence[str] = (),
        error: BaseException | None = None,
    ) -> None:
        self.addresses = list(addresses)
        self.error = error
        self.directives: list[str] = []

    async def resolve(self, directive: str) -> list[str]:
        self.directives.append(directive)
        if self.error is not None:
            raise self.error
        return list(self.addresses)


@pytest.fixture
def broken_discovery() -> StubDiscovery:
    return StubDiscovery(error=DiscoveryError("metadata service unreachable"))


@pytest.fixture
def log_records() -> Generator[list[tuple[str, str]], None, None]:
    """Capture loguru output as (level, message) pairs."""
    records: list[tuple[str, str]] = []

    def sink(message: Any) -> None:
        record = message.record
        records.append((record["level"].name, record["message"]))

    handler_id = logger.add(sink, level="INFO", format="{message}")
    yield records
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def restore_loguru() -> Generator[None, None, None]:
    """Undo handler changes made by configure_logging during a test."""
    yield
    logger.remove()
    logger.add(lambda message: sys.stderr.write(message), level="DEBUG")
