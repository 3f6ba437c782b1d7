"""Rich formatting helpers for the harness CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from agent_harness.models.content import (
    TextContent,
    ThinkingContent,
    ToolResultContent,
    ToolUseContent,
)

if TYPE_CHECKING:
    from agent_harness.engine.tick import TickResult
    from agent_harness.models.content import ContentBlock
    from agent_harness.models.run import RunInfo, StoredMessage
    from agent_harness.orchestrator.models import RunSummary

_PREVIEW_CHARS = 400


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def _preview(text: str, limit: int = _PREVIEW_CHARS) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + " …"


def format_content_block(block: ContentBlock, agent_index: int, console: Console) -> None:
    """Display one content block, prefixed by the agent index."""
    prefix = f"[dim]\\[{agent_index}][/dim]"
    if isinstance(block, TextContent):
        console.print(f"{prefix} [bold]text[/bold] {escape(_preview(block.text))}")
    elif isinstance(block, ThinkingContent):
        console.print(f"{prefix} [magenta]thinking[/magenta] [dim]{escape(_preview(block.thinking))}[/dim]")
    elif isinstance(block, ToolUseContent):
        args = _preview(json.dumps(block.input), 200)
        console.print(f"{prefix} [cyan]tool_use[/cyan] {escape(block.name)} {escape(args)}")
    elif isinstance(block, ToolResultContent):
        texts = [str(item.get("text", "")) for item in block.content if item.get("type") == "text"]
        body = _preview("\n".join(texts) or json.dumps(block.content), 200)
        status = "[red]error[/red]" if block.is_error else "[green]ok[/green]"
        console.print(
            f"{prefix} [cyan]tool_result[/cyan] {escape(block.tool_use_name)} {status} {escape(body)}"
        )


def format_message(message: StoredMessage, console: Console) -> None:
    for block in message.content:
        format_content_block(block, message.agent_index, console)


def format_tick(result: TickResult, console: Console) -> None:
    """Display the agent-produced messages of one tick."""
    for message in result.messages:
        if message.role == "user" and message.is_text_only:
            continue
        format_message(message, console)
    if result.agent_message is None:
        console.print(f"[dim]\\[{result.agent_index}][/dim] [yellow]empty response[/yellow]")


def format_runs(runs: list[RunInfo], costs: dict[int, float], console: Console) -> None:
    """Display runs as a table."""
    if not runs:
        console.print("[dim]No runs.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Name", style="yellow")
    table.add_column("Problem")
    table.add_column("Model", style="cyan")
    table.add_column("Profile")
    table.add_column("Agents", justify="right")
    table.add_column("Cost", justify="right", style="green")
    table.add_column("Created", style="dim")

    for run in runs:
        table.add_row(
            escape(run.name),
            escape(run.problem_id),
            escape(run.model),
            escape(run.profile),
            str(run.agent_count),
            f"${costs.get(run.id, 0.0):.4f}",
            run.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


def format_summary(summary: RunSummary, console: Console) -> None:
    if summary.cost_limit_reached:
        console.print(f"[yellow]Cost limit reached:[/yellow] ${summary.cost:.4f}")
    elif summary.interrupted:
        console.print("[yellow]Run interrupted.[/yellow]")
    if summary.stopped_agents:
        agents = ", ".join(str(i) for i in summary.stopped_agents)
        console.print(f"Stop condition matched for agent(s) {agents}")
    console.print(
        f"[green]Run completed.[/green] {summary.ticks} tick(s), total cost ${summary.cost:.4f}"
    )


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
