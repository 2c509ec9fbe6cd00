#!/usr/bin/env python3
"""
Main CLI entry point for clusterjoin.

Commands:
- join: run the LAN and WAN retry-join controllers until they finish
- resolve: show how a join list splits into static and discovered addresses
- template: write a settings file with the defaults filled in
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from ..agent import JoinAgent
from ..core.address_resolver import partition_join_spec
from ..core.config import JoinSettings, format_duration, load_settings
from ..core.errors import ClusterJoinError, ConfigurationError, TerminalJoinError
from ..core.logging import configure_logging
from ..core.membership import TcpProbeMembership
from ..core.retry_join import LAN_CONTROLLER, WAN_CONTROLLER
from ..core.statistics import JoinAgentStatistics
from ..discovery.registry import create_default_registry

console = Console()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--debug-scope",
    multiple=True,
    type=click.Choice([LAN_CONTROLLER, WAN_CONTROLLER]),
    help="Enable DEBUG logging for one join controller only",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug_scope: tuple[str, ...]) -> None:
    """
    clusterjoin - join a LAN cluster and WAN federation with bounded retries.
    """
    configure_logging("DEBUG" if verbose else "INFO", debug_controllers=debug_scope)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug_scope"] = debug_scope


def build_settings(
    config_path: str | None,
    overrides: dict[str, Any],
) -> JoinSettings:
    """Load the config file (if any) and apply non-empty command line overrides."""
    data: dict[str, Any] = {}
    if config_path:
        base = load_settings(config_path)
        data = {
            name: getattr(base, name) for name in JoinSettings.__dataclass_fields__
        }
    for key, value in overrides.items():
        if value is None or value == ():
            continue
        data[key] = list(value) if isinstance(value, tuple) else value
    return JoinSettings.from_mapping(data)


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON settings file",
)
@click.option("--retry-join", multiple=True, help="LAN address or discovery directive")
@click.option("--retry-join-wan", multiple=True, help="WAN address")
@click.option("--retry-interval", help="Delay between LAN attempts (e.g. 30s)")
@click.option("--retry-interval-wan", help="Delay between WAN attempts (e.g. 30s)")
@click.option("--retry-max", type=int, help="LAN attempt ceiling (0 = unbounded)")
@click.option("--retry-max-wan", type=int, help="WAN attempt ceiling (0 = unbounded)")
@click.option(
    "--connect-timeout",
    type=float,
    default=5.0,
    show_default=True,
    help="TCP connect timeout per candidate, in seconds",
)
@click.pass_context
def join(
    ctx: click.Context,
    config_path: str | None,
    retry_join: tuple[str, ...],
    retry_join_wan: tuple[str, ...],
    retry_interval: str | None,
    retry_interval_wan: str | None,
    retry_max: int | None,
    retry_max_wan: int | None,
    connect_timeout: float,
) -> None:
    """Join the configured LAN and WAN peers, retrying on failure."""
    try:
        settings = build_settings(
            config_path,
            {
                "retry_join": retry_join,
                "retry_join_wan": retry_join_wan,
                "retry_interval": retry_interval,
                "retry_interval_wan": retry_interval_wan,
                "retry_max_attempts": retry_max,
                "retry_max_attempts_wan": retry_max_wan,
            },
        )
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e

    if not ctx.obj.get("verbose"):
        configure_logging(
            settings.log_level, debug_controllers=ctx.obj.get("debug_scope", ())
        )

    if not settings.retry_join and not settings.retry_join_wan:
        console.print("[yellow]Nothing to join: no retry-join addresses given[/yellow]")
        return

    membership = TcpProbeMembership(connect_timeout=connect_timeout)
    failure, stats = asyncio.run(_run_join(settings, membership))
    display_join_summary(stats)

    if failure is not None:
        console.print(f"[red]❌ {failure.controller}: {failure}[/red]")
        ctx.exit(1)
    console.print("[green]✅ Join finished[/green]")


async def _run_join(
    settings: JoinSettings, membership: TcpProbeMembership
) -> tuple[TerminalJoinError | None, JoinAgentStatistics]:
    agent = JoinAgent(settings, membership, discovery=create_default_registry())
    async with agent:
        failure = await agent.wait()
    return failure, agent.statistics()


def display_join_summary(stats: JoinAgentStatistics) -> None:
    table = Table(title="Join Summary")
    table.add_column("Controller", style="cyan", no_wrap=True)
    table.add_column("State", justify="center")
    table.add_column("Attempts", justify="right")
    table.add_column("Peers", justify="right")
    table.add_column("Last Error", style="yellow")

    state_style = {
        "succeeded": "green",
        "exhausted": "red",
        "cancelled": "yellow",
    }
    for controller in (stats.lan, stats.wan):
        if controller.state == "idle" and controller.attempts == 0:
            continue
        style = state_style.get(controller.state, "white")
        limit = controller.max_attempts or "∞"
        table.add_row(
            controller.name,
            f"[{style}]{controller.state}[/{style}]",
            f"{controller.attempts}/{limit}",
            "-" if controller.peer_count is None else str(controller.peer_count),
            controller.last_error or "",
        )
    console.print(table)


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON settings file",
)
@click.option("--retry-join", multiple=True, help="LAN address or discovery directive")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def resolve(
    ctx: click.Context,
    config_path: str | None,
    retry_join: tuple[str, ...],
    output: str,
) -> None:
    """Show the candidate addresses a LAN join attempt would use."""
    try:
        settings = build_settings(config_path, {"retry_join": retry_join})
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e

    spec = partition_join_spec(settings.retry_join)
    discovered: list[str] = []
    error: str | None = None
    if spec.discovery_directive is not None:
        try:
            discovered = asyncio.run(
                create_default_registry().resolve(spec.discovery_directive)
            )
        except ClusterJoinError as e:
            logger.error(f"Discovery failed: {e}")
            error = str(e)

    if output == "json":
        click.echo(
            json.dumps(
                {
                    "static": list(spec.static_addresses),
                    "directive": spec.discovery_directive,
                    "ignored_directives": list(spec.discarded_directives),
                    "discovered": discovered,
                    "candidates": discovered + list(spec.static_addresses),
                    "error": error,
                },
                indent=2,
            )
        )
    else:
        table = Table(title="Join Candidates")
        table.add_column("Source", style="cyan", no_wrap=True)
        table.add_column("Address")
        for address in discovered:
            table.add_row("discovered", address)
        for address in spec.static_addresses:
            table.add_row("static", address)
        console.print(table)
        for directive in spec.discarded_directives:
            console.print(f"[yellow]⚠️ Ignored directive: {directive}[/yellow]")
        if error:
            console.print(f"[red]❌ Discovery failed: {error}[/red]")

    if error:
        ctx.exit(1)


@cli.command()
@click.argument("output_path", type=click.Path(dir_okay=False))
def template(output_path: str) -> None:
    """Write a settings template with default values."""
    defaults = JoinSettings()
    data = {
        "retry_join": ["10.0.0.1", "provider=file path=/etc/clusterjoin/peers.json"],
        "retry_join_wan": [],
        "retry_interval": format_duration(defaults.retry_interval),
        "retry_interval_wan": format_duration(defaults.retry_interval_wan),
        "retry_max_attempts": defaults.retry_max_attempts,
        "retry_max_attempts_wan": defaults.retry_max_attempts_wan,
        "log_level": defaults.log_level,
    }
    Path(output_path).write_text(json.dumps(data, indent=2) + "\n")
    console.print(f"[green]✅ Settings template written: {output_path}[/green]")


def main() -> None:
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️ Join cancelled by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
