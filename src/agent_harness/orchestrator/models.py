"""Result models for the run coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agent_harness.engine.tick import TickResult


@dataclass(frozen=True)
class SingleTickResult:
    """Outcome of one concurrent tick across the selected agents.

    Attributes:
        cost: Aggregate run cost after the tick.
        stopped: True when the stop predicate matched the latest message.
        ticks: Per-agent tick results, in agent order.
    """

    cost: float
    stopped: bool = False
    ticks: list[TickResult] = field(default_factory=list)


@dataclass(frozen=True)
class RunSummary:
    """Outcome of a continuous run once every agent loop has settled.

    Attributes:
        cost: Aggregate run cost at the end.
        ticks: Ticks completed across all agents.
        stopped_agents: Agents whose loop ended on the stop predicate.
        cost_limit_reached: True when the cost ceiling ended the run.
        interrupted: True when a stop was requested from outside.
    """

    cost: float
    ticks: int = 0
    stopped_agents: list[int] = field(default_factory=list)
    cost_limit_reached: bool = False
    interrupted: bool = False
