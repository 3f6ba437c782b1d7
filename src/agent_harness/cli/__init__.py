"""Harness CLI -- terminal interface for creating and driving runs.

This module is NEVER imported from agent_harness/__init__.py.
It is only loaded via the ``harness`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

import click
from dotenv import load_dotenv

from agent_harness.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from agent_harness.harness import Harness


@click.group()
@click.option(
    "--db",
    default=None,
    envvar="HARNESS_DB",
    help="Path to the harness database.",
)
@click.option(
    "--profiles-dir",
    default=None,
    envvar="PROFILES_DIR",
    help="Directory of profiles (prompt.md, settings.json).",
)
@click.option(
    "--problems-dir",
    default=None,
    envvar="PROBLEMS_DIR",
    help="Directory of problems (problem.md).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    db: str | None,
    profiles_dir: str | None,
    problems_dir: str | None,
) -> None:
    """Harness: run autonomous tool-using agents on problems."""
    load_dotenv()
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["profiles_dir"] = profiles_dir
    ctx.obj["problems_dir"] = problems_dir


def _get_harness(ctx: click.Context) -> Harness:
    """Open a Harness from the Click context options and environment."""
    from agent_harness.harness import Harness
    from agent_harness.models.config import HarnessConfig

    config = HarnessConfig.from_env(
        db_path=ctx.obj.get("db_path"),
        profiles_dir=ctx.obj.get("profiles_dir"),
        problems_dir=ctx.obj.get("problems_dir"),
    )
    return Harness.open(config=config, **ctx.obj.get("coordinator_kwargs", {}))


@contextmanager
def _harness_session(ctx: click.Context) -> Iterator[tuple[Harness, Console]]:
    """Open a Harness, yield (harness, console), and handle cleanup.

    Exceptions are formatted as CLI errors and exit with status 1.
    """
    console = get_console()
    try:
        h = _get_harness(ctx)
        try:
            yield h, console
        finally:
            h.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from agent_harness.cli.commands.create import create  # noqa: E402
from agent_harness.cli.commands.list_runs import list_runs  # noqa: E402
from agent_harness.cli.commands.run import run  # noqa: E402
from agent_harness.cli.commands.clean import clean  # noqa: E402
from agent_harness.cli.commands.advise import advise  # noqa: E402

cli.add_command(create)
cli.add_command(list_runs)
cli.add_command(run)
cli.add_command(clean)
cli.add_command(advise)
