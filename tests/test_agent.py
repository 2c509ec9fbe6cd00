"""
Tests for JoinAgent, the owner of the LAN and WAN join controllers.
"""

import asyncio

import pytest

from clusterjoin.agent import JoinAgent
from clusterjoin.core.config import JoinSettings
from clusterjoin.core.errors import JoinError
from clusterjoin.core.retry_join import JoinState
from tests.conftest import ScriptedMembership, StubDiscovery


class SplitMembership:
    """LAN and WAN joins scripted separately."""

    def __init__(self, lan: ScriptedMembership, wan: ScriptedMembership) -> None:
        self.lan = lan
        self.wan = wan

    async def join_lan(self, addresses):
        return await self.lan.join_lan(addresses)

    async def join_wan(self, addresses):
        return await self.wan.join_wan(addresses)


@pytest.mark.asyncio
async def test_both_joins_succeed(test_context, clock):
    membership = ScriptedMembership(default=2)
    settings = JoinSettings(retry_join=["10.0.0.1"], retry_join_wan=["dc2"])
    agent = JoinAgent(settings, membership, sleep=clock.sleep)
    test_context.agents.append(agent)

    agent.start()
    failure = await asyncio.wait_for(agent.wait(), timeout=2.0)

    assert failure is None
    assert agent.lan.state is JoinState.SUCCEEDED
    assert agent.wan.state is JoinState.SUCCEEDED
    assert membership.lan_calls == [["10.0.0.1"]]
    assert membership.wan_calls == [["dc2"]]


@pytest.mark.asyncio
async def test_exhausted_controller_is_reported(test_context, clock):
    membership = SplitMembership(
        lan=ScriptedMembership(),
        wan=ScriptedMembership(default=1),
    )
    settings = JoinSettings(
        retry_join=["10.0.0.1"],
        retry_join_wan=["dc2"],
        retry_max_attempts=3,
    )
    agent = JoinAgent(settings, membership, sleep=clock.sleep)
    test_context.agents.append(agent)

    agent.start()
    failure = await asyncio.wait_for(agent.wait(), timeout=2.0)

    assert failure is not None
    assert failure.controller == "lan"
    assert failure.attempts == 3
    assert agent.lan.state is JoinState.EXHAUSTED
    assert agent.failures.empty()


@pytest.mark.asyncio
async def test_wait_for_failure(test_context, clock):
    settings = JoinSettings(retry_join_wan=["dc2"], retry_max_attempts_wan=2)
    agent = JoinAgent(settings, ScriptedMembership(), sleep=clock.sleep)
    test_context.agents.append(agent)

    agent.start()
    failure = await asyncio.wait_for(agent.wait_for_failure(), timeout=2.0)

    assert failure.controller == "wan"
    assert str(failure) == "max join -wan retry exhausted, exiting"


@pytest.mark.asyncio
async def test_empty_settings_start_no_tasks(test_context, log_records):
    membership = ScriptedMembership()
    agent = JoinAgent(JoinSettings(), membership)
    test_context.agents.append(agent)

    agent.start()
    failure = await asyncio.wait_for(agent.wait(), timeout=1.0)

    assert failure is None
    assert agent.statistics().running_tasks == 0
    assert agent.lan.state is JoinState.IDLE
    assert agent.wan.state is JoinState.IDLE
    assert membership.lan_calls == []
    assert not [msg for _level, msg in log_records if "Join" in msg]


@pytest.mark.asyncio
async def test_shutdown_cancels_retrying_controllers():
    membership = ScriptedMembership(default=JoinError("refused"))
    settings = JoinSettings(
        retry_join=["10.0.0.1"],
        retry_join_wan=["dc2"],
        retry_interval=30.0,
        retry_interval_wan=30.0,
    )
    agent = JoinAgent(settings, membership)

    agent.start()
    while agent.lan.state is not JoinState.WAITING or (
        agent.wan.state is not JoinState.WAITING
    ):
        await asyncio.sleep(0.001)
    await asyncio.wait_for(agent.shutdown(timeout=1.0), timeout=2.0)

    assert agent.lan.state is JoinState.CANCELLED
    assert agent.wan.state is JoinState.CANCELLED
    assert agent.failures.empty()
    assert agent.statistics().running_tasks == 0


@pytest.mark.asyncio
async def test_context_manager_runs_discovery(clock):
    membership = ScriptedMembership(default=3)
    discovery = StubDiscovery(addresses=["10.2.0.1"])
    settings = JoinSettings(retry_join=["provider=mock", "10.0.0.1"])

    async with JoinAgent(
        settings, membership, discovery=discovery, sleep=clock.sleep
    ) as agent:
        failure = await asyncio.wait_for(agent.wait(), timeout=2.0)

    assert failure is None
    assert membership.lan_calls == [["10.2.0.1", "10.0.0.1"]]
    stats = agent.statistics()
    assert stats.lan.peer_count == 3
    assert stats.wan.state == "idle"
    assert stats.pending_failures == 0


@pytest.mark.asyncio
async def test_start_twice_is_rejected(test_context):
    agent = JoinAgent(JoinSettings(), ScriptedMembership())
    test_context.agents.append(agent)

    agent.start()
    with pytest.raises(RuntimeError, match="already started"):
        agent.start()
