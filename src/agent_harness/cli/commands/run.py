"""harness run -- advance a run by single ticks or continuously."""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

import click

from agent_harness.cli.formatting import format_summary, format_tick

if TYPE_CHECKING:
    from rich.console import Console

    from agent_harness.harness import Harness


async def _run_ticks(h: Harness, name: str, count: int, agent_index: int | None,
                     thinking: bool, console: Console) -> None:
    for i in range(count):
        result = await h.run(name, agent_index=agent_index, single_tick=True, thinking=thinking)
        for tick in result.ticks:
            format_tick(tick, console)
        console.print(f"[dim]tick {i + 1}/{count}, total cost ${result.cost:.4f}[/dim]")
    console.print("[green]Tick(s) completed.[/green]")


async def _run_continuous(h: Harness, name: str, agent_index: int | None, max_cost: float | None,
                          thinking: bool, console: Console) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, h.request_stop)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        handler_installed = False
    if handler_installed:
        console.print("[cyan]Press Ctrl+C to stop after the current tick.[/cyan]")
    try:
        summary = await h.run(
            name,
            agent_index=agent_index,
            max_cost=max_cost,
            thinking=thinking,
            on_tick=lambda tick: format_tick(tick, console),
        )
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
    format_summary(summary, console)


@click.command()
@click.argument("name")
@click.option("--tick", "ticks", default=None, type=click.IntRange(min=1), help="Run this many single ticks instead of running continuously.")
@click.option("--agent", "agent_index", default=None, type=int, help="Only run this agent.")
@click.option("--max-cost", default=None, type=click.FloatRange(min=0), help="Stop once the run cost exceeds this many dollars.")
@click.option("--thinking/--no-thinking", default=True, show_default=True, help="Request extended thinking.")
@click.pass_context
def run(
    ctx: click.Context,
    name: str,
    ticks: int | None,
    agent_index: int | None,
    max_cost: float | None,
    thinking: bool,
) -> None:
    """Advance run NAME."""
    from agent_harness.cli import _harness_session

    with _harness_session(ctx) as (h, console):
        if ticks is not None:
            asyncio.run(_run_ticks(h, name, ticks, agent_index, thinking, console))
        else:
            asyncio.run(_run_continuous(h, name, agent_index, max_cost, thinking, console))
