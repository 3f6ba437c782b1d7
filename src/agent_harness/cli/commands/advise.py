"""harness advise -- queue an advisory note for a run."""

from __future__ import annotations

import click


@click.command()
@click.argument("name")
@click.argument("text")
@click.option("--agent", "agent_index", default=None, type=int, help="Target agent (all agents if omitted).")
@click.pass_context
def advise(ctx: click.Context, name: str, text: str, agent_index: int | None) -> None:
    """Send TEXT to the agents of run NAME with their next prompt."""
    from agent_harness.cli import _harness_session

    with _harness_session(ctx) as (h, console):
        advisory = h.send_advisory(name, text, agent_index)
        target = f"agent {agent_index}" if agent_index is not None else "all agents"
        console.print(f"Queued advisory #{advisory.id} for {target}")
