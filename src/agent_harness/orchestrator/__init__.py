"""Run coordination: drive many tick engines under stop and cost conditions."""

from agent_harness.orchestrator.coordinator import RunCoordinator
from agent_harness.orchestrator.models import RunSummary, SingleTickResult

__all__ = ["RunCoordinator", "RunSummary", "SingleTickResult"]
