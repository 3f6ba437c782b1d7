"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session

from agent_harness.storage.repositories import (
    AdvisoryRepository,
    MessageRepository,
    RunRepository,
)
from agent_harness.storage.schema import (
    AdvisoryDeliveryRow,
    AdvisoryRow,
    MessageRow,
    RunRow,
)


class SqliteRunRepository(RunRepository):
    """SQLite implementation of run repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, run_id: int) -> RunRow | None:
        stmt = select(RunRow).where(RunRow.id == run_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_name(self, name: str) -> RunRow | None:
        stmt = select(RunRow).where(RunRow.name == name)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, run: RunRow) -> None:
        self._session.add(run)
        self._session.flush()

    def list_all(self) -> Sequence[RunRow]:
        stmt = select(RunRow).order_by(RunRow.created_at, RunRow.id)
        return list(self._session.execute(stmt).scalars().all())

    def delete(self, run_id: int) -> None:
        """Delete a run; messages, advisories and deliveries go by ON DELETE CASCADE."""
        self._session.execute(delete(RunRow).where(RunRow.id == run_id))
        self._session.flush()


class SqliteMessageRepository(MessageRepository):
    """SQLite implementation of message repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, message: MessageRow) -> None:
        self._session.add(message)
        self._session.flush()

    def list_by_agent(self, run_id: int, agent_index: int) -> Sequence[MessageRow]:
        stmt = (
            select(MessageRow)
            .where(
                and_(
                    MessageRow.run_id == run_id,
                    MessageRow.agent_index == agent_index,
                )
            )
            .order_by(MessageRow.position)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_by_run(self, run_id: int) -> Sequence[MessageRow]:
        stmt = (
            select(MessageRow)
            .where(MessageRow.run_id == run_id)
            .order_by(MessageRow.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def latest(self, run_id: int) -> MessageRow | None:
        stmt = (
            select(MessageRow)
            .where(MessageRow.run_id == run_id)
            .order_by(MessageRow.id.desc())
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def sum_cost(self, run_id: int) -> float:
        stmt = select(func.coalesce(func.sum(MessageRow.cost), 0.0)).where(
            MessageRow.run_id == run_id
        )
        return float(self._session.execute(stmt).scalar_one())

    def sum_tokens(self, run_id: int) -> int:
        stmt = select(func.coalesce(func.sum(MessageRow.total_tokens), 0)).where(
            MessageRow.run_id == run_id
        )
        return int(self._session.execute(stmt).scalar_one())


class SqliteAdvisoryRepository(AdvisoryRepository):
    """SQLite implementation of advisory repository.

    Delivery is tracked per agent in advisory_deliveries, so a broadcast
    advisory reaches every agent exactly once.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, advisory: AdvisoryRow) -> None:
        self._session.add(advisory)
        self._session.flush()

    def list_pending(self, run_id: int, agent_index: int) -> Sequence[AdvisoryRow]:
        delivered = select(AdvisoryDeliveryRow.advisory_id).where(
            AdvisoryDeliveryRow.agent_index == agent_index
        )
        stmt = (
            select(AdvisoryRow)
            .where(
                and_(
                    AdvisoryRow.run_id == run_id,
                    or_(
                        AdvisoryRow.agent_index == agent_index,
                        AdvisoryRow.agent_index.is_(None),
                    ),
                    AdvisoryRow.id.not_in(delivered),
                )
            )
            .order_by(AdvisoryRow.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def mark_delivered(self, advisory_ids: Sequence[int], agent_index: int) -> None:
        now = datetime.now(timezone.utc)
        for advisory_id in advisory_ids:
            self._session.merge(
                AdvisoryDeliveryRow(
                    advisory_id=advisory_id,
                    agent_index=agent_index,
                    delivered_at=now,
                )
            )
        self._session.flush()
