"""harness list -- show all runs."""

from __future__ import annotations

import click

from agent_harness.cli.formatting import format_runs


@click.command(name="list")
@click.pass_context
def list_runs(ctx: click.Context) -> None:
    """List all runs with their cost so far."""
    from agent_harness.cli import _harness_session

    with _harness_session(ctx) as (h, console):
        runs = h.list_runs()
        costs = {run.id: h.store.aggregate_cost(run.id) for run in runs}
        format_runs(runs, costs, console)
