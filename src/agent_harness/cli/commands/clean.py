"""harness clean -- delete a run and all its data."""

from __future__ import annotations

import click


@click.command()
@click.argument("name")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def clean(ctx: click.Context, name: str, yes: bool) -> None:
    """Delete run NAME with its messages and advisories."""
    from agent_harness.cli import _harness_session

    with _harness_session(ctx) as (h, console):
        run = h.get_run(name)
        if not yes and not click.confirm(f"Delete run '{run.name}' and all data?", default=False):
            console.print("Aborted.")
            return
        h.delete_run(run.name)
        console.print(f"[green]Run '{run.name}' deleted.[/green]")
