"""harness create -- create a new run."""

from __future__ import annotations

import click

from agent_harness.llm.registry import DEFAULT_MODEL


@click.command()
@click.argument("name")
@click.option("--problem", "problem_id", required=True, help="Problem id (directory under the problems dir).")
@click.option("--model", default=DEFAULT_MODEL, show_default=True, help="Model name.")
@click.option("--agents", "agent_count", default=1, type=click.IntRange(min=1), show_default=True, help="Number of agents.")
@click.option("--profile", default=None, help="Profile name (defaults to 'example' or the first available).")
@click.pass_context
def create(
    ctx: click.Context,
    name: str,
    problem_id: str,
    model: str,
    agent_count: int,
    profile: str | None,
) -> None:
    """Create run NAME working on a problem."""
    from agent_harness.cli import _harness_session

    with _harness_session(ctx) as (h, console):
        run = h.create_run(
            name,
            problem_id=problem_id,
            model=model,
            agent_count=agent_count,
            profile=profile,
        )
        console.print(
            f"Created run [yellow]{run.name}[/yellow] "
            f"({run.agent_count} agent(s), model [cyan]{run.model}[/cyan], profile {run.profile})"
        )
