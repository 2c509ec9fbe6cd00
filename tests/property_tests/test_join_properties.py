"""
Property-based tests for join list partitioning and the retry budget.

Hypothesis generates join lists mixing literal addresses and discovery
directives, and failure/success scripts for the controller, to check:
1. Partitioning preserves static order and keeps only the last directive
2. A bounded controller never exceeds its attempt ceiling
3. Exactly one terminal error is produced per exhausted controller
4. Rendered discovery directives parse back to the same value
"""

import asyncio

from hypothesis import given, settings
from hypothesis import strategies as st

from clusterjoin.core.address_resolver import (
    DISCOVERY_MARKER,
    partition_join_spec,
)
from clusterjoin.core.config import JoinSettings
from clusterjoin.core.errors import JoinError
from clusterjoin.core.failure_sink import FailureSink
from clusterjoin.core.retry_join import JoinState, create_lan_controller
from clusterjoin.discovery.directive import DiscoveryDirective, parse_directive


def static_addresses() -> st.SearchStrategy[str]:
    """Generate host[:port] strings that never contain the discovery marker."""
    host = st.from_regex(r"[a-z0-9][a-z0-9.-]{0,20}", fullmatch=True)
    port = st.integers(min_value=1, max_value=65535)
    return st.one_of(host, st.builds(lambda h, p: f"{h}:{p}", host, port)).filter(
        lambda a: DISCOVERY_MARKER not in a
    )


def directives() -> st.SearchStrategy[str]:
    name = st.sampled_from(["aws", "gce", "azure", "file", "mock"])
    value = st.from_regex(r"[a-z0-9_]{1,10}", fullmatch=True)
    return st.builds(lambda n, v: f"provider={n} key={v}", name, value)


join_entries = st.lists(st.one_of(static_addresses(), directives()), max_size=12)


@given(join_entries)
def test_partition_preserves_static_order(entries):
    spec = partition_join_spec(entries)

    assert list(spec.static_addresses) == [
        e for e in entries if DISCOVERY_MARKER not in e
    ]


@given(join_entries)
def test_partition_keeps_last_directive(entries):
    spec = partition_join_spec(entries)
    found = [e for e in entries if DISCOVERY_MARKER in e]

    if found:
        assert spec.discovery_directive == found[-1]
        assert list(spec.discarded_directives) == found[:-1]
    else:
        assert spec.discovery_directive is None
        assert spec.discarded_directives == ()
    assert len(spec.static_addresses) + len(found) == len(entries)


@given(
    st.dictionaries(
        st.from_regex(r"[a-z_]{1,8}", fullmatch=True).filter(
            lambda k: k != "provider"
        ),
        st.text(
            alphabet=st.characters(exclude_categories=("Cs", "Cc")), max_size=12
        ),
        max_size=4,
    )
)
def test_directive_render_parses_back(arguments):
    directive = DiscoveryDirective(provider="mock", arguments=arguments)

    assert parse_directive(directive.render()) == directive


class _Membership:
    def __init__(self, script: list[bool]) -> None:
        self.script = list(script)
        self.calls = 0

    async def join_lan(self, addresses):
        self.calls += 1
        if self.script and self.script.pop(0):
            return 1
        raise JoinError("refused")

    async def join_wan(self, addresses):
        raise AssertionError("WAN join not expected")


async def _no_sleep(seconds: float) -> None:
    await asyncio.sleep(0)


@settings(max_examples=50, deadline=None)
@given(
    max_attempts=st.integers(min_value=0, max_value=6),
    script=st.lists(st.booleans(), max_size=10),
)
def test_attempts_never_exceed_ceiling(max_attempts, script):
    # Unbounded controllers only finish once the script yields a success
    if max_attempts == 0 and True not in script:
        script = [*script, True]

    membership = _Membership(script)
    sink = FailureSink()
    controller = create_lan_controller(
        JoinSettings(retry_join=["10.0.0.1"], retry_max_attempts=max_attempts),
        membership,
        sink,
        sleep=_no_sleep,
    )

    state = asyncio.run(controller.run())

    first_success = script.index(True) + 1 if True in script else None
    if max_attempts and (first_success is None or first_success > max_attempts):
        assert state is JoinState.EXHAUSTED
        assert membership.calls == max_attempts
        assert len(sink) == 1
    else:
        assert state is JoinState.SUCCEEDED
        assert membership.calls == first_success
        assert controller.attempts == first_success - 1
        assert sink.empty()
