"""Run, stored-message, and advisory domain models.

These are SDK-facing data-transfer models returned by the store.
Not ORM models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from agent_harness.models.content import Message


class RunInfo(BaseModel):
    """A run: a named group of agents working on one problem with one model."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    problem_id: str
    model: str
    profile: str
    agent_count: int
    created_at: datetime
    updated_at: datetime

    @property
    def agent_indices(self) -> list[int]:
        """All agent indices of this run, ``0..agent_count-1``."""
        return list(range(self.agent_count))


class StoredMessage(Message):
    """A message as persisted in an agent's log."""

    id: int
    run_id: int
    agent_index: int
    position: int
    total_tokens: int = 0
    cost: float = 0.0
    created_at: datetime


class AdvisoryInfo(BaseModel):
    """An out-of-band note for one agent (or all agents when agent_index is None)."""

    model_config = ConfigDict(frozen=True)

    id: int
    run_id: int
    agent_index: Optional[int] = None
    content: str
    created_at: datetime
