"""SqlHarnessStore: the durable run/message/advisory store.

Implements the MessageStore protocol plus the run lifecycle surface and
the advisory channel. Every public method runs in its own short session
and commits before returning, so concurrent agent tasks never share a
session.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from agent_harness.exceptions import (
    DuplicateRunError,
    PersistenceError,
    PositionConflictError,
    RunNotFoundError,
)
from agent_harness.models.content import dump_content, validate_content
from agent_harness.models.run import AdvisoryInfo, RunInfo, StoredMessage
from agent_harness.storage.engine import (
    create_harness_engine,
    create_session_factory,
    init_db,
)
from agent_harness.storage.schema import AdvisoryRow, MessageRow, RunRow
from agent_harness.storage.sqlite import (
    SqliteAdvisoryRepository,
    SqliteMessageRepository,
    SqliteRunRepository,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from agent_harness.models.content import Message

logger = logging.getLogger(__name__)


def _run_info(row: RunRow) -> RunInfo:
    return RunInfo(
        id=row.id,
        name=row.name,
        problem_id=row.problem_id,
        model=row.model,
        profile=row.profile,
        agent_count=row.agent_count,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _stored_message(row: MessageRow) -> StoredMessage:
    return StoredMessage(
        id=row.id,
        run_id=row.run_id,
        agent_index=row.agent_index,
        position=row.position,
        role=row.role,
        content=validate_content(row.content_json),
        total_tokens=row.total_tokens,
        cost=row.cost,
        created_at=row.created_at,
    )


def _advisory_info(row: AdvisoryRow) -> AdvisoryInfo:
    return AdvisoryInfo(
        id=row.id,
        run_id=row.run_id,
        agent_index=row.agent_index,
        content=row.content,
        created_at=row.created_at,
    )


class SqlHarnessStore:
    """SQLAlchemy-backed store for runs, messages, and advisories.

    Usage::

        store = SqlHarnessStore.open(":memory:")
        run = store.create_run("demo", problem_id="p1", model="gpt-4.1")
        store.append(run.id, 0, Message(role="user", content=[...]), position=0)
        print(store.aggregate_cost(run.id))
    """

    def __init__(self, engine: Engine, *, owns_engine: bool = False) -> None:
        self._engine = engine
        self._owns_engine = owns_engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def open(cls, db_path: str = ":memory:", *, url: str | None = None) -> SqlHarnessStore:
        """Create an engine, initialize the schema, and return a store that owns it."""
        engine = create_harness_engine(db_path, url=url)
        try:
            init_db(engine)
        except BaseException:
            engine.dispose()
            raise
        return cls(engine, owns_engine=True)

    @property
    def engine(self) -> Engine:
        return self._engine

    def close(self) -> None:
        """Dispose the engine if this store created it."""
        if self._owns_engine:
            self._engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error.

        SQLAlchemy failures are re-raised as PersistenceError.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"{type(exc).__name__}: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def create_run(
        self,
        name: str,
        *,
        problem_id: str,
        model: str,
        agent_count: int = 1,
        profile: str = "example",
    ) -> RunInfo:
        """Create a run. Raises DuplicateRunError if the name is taken."""
        now = datetime.now(timezone.utc)
        try:
            with self._session() as session:
                repo = SqliteRunRepository(session)
                if repo.get_by_name(name) is not None:
                    raise DuplicateRunError(name)
                row = RunRow(
                    name=name,
                    problem_id=problem_id,
                    model=model,
                    profile=profile,
                    agent_count=agent_count,
                    created_at=now,
                    updated_at=now,
                )
                repo.save(row)
                info = _run_info(row)
        except PersistenceError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise DuplicateRunError(name) from exc.__cause__
            raise
        logger.info("Created run %r (%d agent(s), model=%s)", name, agent_count, model)
        return info

    def find_run(self, name: str) -> RunInfo | None:
        """Look up a run by name. Returns None if not found."""
        with self._session() as session:
            row = SqliteRunRepository(session).get_by_name(name)
            return _run_info(row) if row is not None else None

    def get_run(self, name: str) -> RunInfo:
        """Look up a run by name. Raises RunNotFoundError if not found."""
        info = self.find_run(name)
        if info is None:
            raise RunNotFoundError(name)
        return info

    def get_run_by_id(self, run_id: int) -> RunInfo:
        with self._session() as session:
            row = SqliteRunRepository(session).get(run_id)
            if row is None:
                raise RunNotFoundError(str(run_id))
            return _run_info(row)

    def list_runs(self) -> list[RunInfo]:
        """All runs, oldest first."""
        with self._session() as session:
            return [_run_info(r) for r in SqliteRunRepository(session).list_all()]

    def delete_run(self, run_id: int) -> None:
        """Delete a run, cascading to its messages and advisories."""
        with self._session() as session:
            SqliteRunRepository(session).delete(run_id)
        logger.info("Deleted run %d", run_id)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def append(
        self,
        run_id: int,
        agent_index: int,
        message: Message,
        *,
        position: int,
        total_tokens: int = 0,
        cost: float = 0.0,
    ) -> StoredMessage:
        """Persist a message at ``position`` in the agent's log.

        Raises:
            PositionConflictError: If the position is already taken.
            PersistenceError: On any other storage failure.
        """
        try:
            with self._session() as session:
                row = MessageRow(
                    run_id=run_id,
                    agent_index=agent_index,
                    position=position,
                    role=message.role,
                    content_json=dump_content(message.content),
                    total_tokens=total_tokens,
                    cost=cost,
                    created_at=datetime.now(timezone.utc),
                )
                SqliteMessageRepository(session).save(row)
                stored = _stored_message(row)
        except PersistenceError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise PositionConflictError(run_id, agent_index, position) from exc.__cause__
            raise
        return stored

    def list_by_agent(self, run_id: int, agent_index: int) -> list[StoredMessage]:
        with self._session() as session:
            rows = SqliteMessageRepository(session).list_by_agent(run_id, agent_index)
            return [_stored_message(r) for r in rows]

    def list_by_run(self, run_id: int) -> list[StoredMessage]:
        with self._session() as session:
            rows = SqliteMessageRepository(session).list_by_run(run_id)
            return [_stored_message(r) for r in rows]

    def latest(self, run_id: int) -> StoredMessage | None:
        with self._session() as session:
            row = SqliteMessageRepository(session).latest(run_id)
            return _stored_message(row) if row is not None else None

    def aggregate_cost(self, run_id: int) -> float:
        with self._session() as session:
            return SqliteMessageRepository(session).sum_cost(run_id)

    def aggregate_tokens(self, run_id: int) -> int:
        with self._session() as session:
            return SqliteMessageRepository(session).sum_tokens(run_id)

    # ------------------------------------------------------------------
    # Advisories
    # ------------------------------------------------------------------

    def send_advisory(
        self,
        run_id: int,
        content: str,
        agent_index: int | None = None,
    ) -> AdvisoryInfo:
        """Queue a note for one agent, or for all agents when agent_index is None."""
        with self._session() as session:
            row = AdvisoryRow(
                run_id=run_id,
                agent_index=agent_index,
                content=content,
                created_at=datetime.now(timezone.utc),
            )
            SqliteAdvisoryRepository(session).save(row)
            return _advisory_info(row)

    def pending_advisories(self, run_id: int, agent_index: int) -> list[AdvisoryInfo]:
        with self._session() as session:
            rows = SqliteAdvisoryRepository(session).list_pending(run_id, agent_index)
            return [_advisory_info(r) for r in rows]

    def mark_delivered(self, advisory_ids: Sequence[int], agent_index: int) -> None:
        if not advisory_ids:
            return
        with self._session() as session:
            SqliteAdvisoryRepository(session).mark_delivered(advisory_ids, agent_index)
