"""Abstract repository interfaces for harness storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from agent_harness.storage.schema import AdvisoryRow, MessageRow, RunRow


class RunRepository(ABC):
    """Abstract interface for run storage operations."""

    @abstractmethod
    def get(self, run_id: int) -> RunRow | None:
        """Get a run by id. Returns None if not found."""
        ...

    @abstractmethod
    def get_by_name(self, name: str) -> RunRow | None:
        """Get a run by its unique name. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, run: RunRow) -> None:
        """Save a run to storage."""
        ...

    @abstractmethod
    def list_all(self) -> Sequence[RunRow]:
        """All runs, ordered by creation time ascending."""
        ...

    @abstractmethod
    def delete(self, run_id: int) -> None:
        """Delete a run and everything that references it."""
        ...


class MessageRepository(ABC):
    """Abstract interface for message storage operations."""

    @abstractmethod
    def save(self, message: MessageRow) -> None:
        """Insert a message row. Raises on (run, agent, position) conflict."""
        ...

    @abstractmethod
    def list_by_agent(self, run_id: int, agent_index: int) -> Sequence[MessageRow]:
        """All messages of one agent, ordered by position ascending."""
        ...

    @abstractmethod
    def list_by_run(self, run_id: int) -> Sequence[MessageRow]:
        """All messages of a run, ordered by id ascending (insertion order)."""
        ...

    @abstractmethod
    def latest(self, run_id: int) -> MessageRow | None:
        """The most recently inserted message of a run."""
        ...

    @abstractmethod
    def sum_cost(self, run_id: int) -> float:
        """Sum of message cost over a run."""
        ...

    @abstractmethod
    def sum_tokens(self, run_id: int) -> int:
        """Sum of message total_tokens over a run."""
        ...


class AdvisoryRepository(ABC):
    """Abstract interface for advisory storage operations."""

    @abstractmethod
    def save(self, advisory: AdvisoryRow) -> None:
        """Insert an advisory."""
        ...

    @abstractmethod
    def list_pending(self, run_id: int, agent_index: int) -> Sequence[AdvisoryRow]:
        """Advisories addressed to the agent (or broadcast) not yet delivered to it."""
        ...

    @abstractmethod
    def mark_delivered(self, advisory_ids: Sequence[int], agent_index: int) -> None:
        """Record delivery of the given advisories to one agent."""
        ...
