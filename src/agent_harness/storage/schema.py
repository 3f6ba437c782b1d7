"""SQLAlchemy ORM schema for the harness.

Defines all database tables: runs, messages, advisories,
advisory_deliveries, _harness_meta.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all harness ORM models."""

    pass


class RunRow(Base):
    """A run: a named set of agents sharing a problem, model, and profile."""

    __tablename__ = "runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    problem_id: Mapped[str] = mapped_column(String(255), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    profile: Mapped[str] = mapped_column(String(255), nullable=False, default="example")
    agent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class MessageRow(Base):
    """One conversation turn of one agent.

    Append-only: rows are never updated once written. ``position`` is
    dense per (run, agent), starting at 0.
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("runs.id", ondelete="CASCADE"),
        nullable=False,
    )
    agent_index: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False)
    content_json: Mapped[list] = mapped_column(JSON, nullable=False)
    total_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("run_id", "agent_index", "position", name="uq_messages_position"),
        Index("ix_messages_run_agent", "run_id", "agent_index"),
    )


class AdvisoryRow(Base):
    """An out-of-band note for one agent, or for every agent when agent_index is NULL."""

    __tablename__ = "advisories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    agent_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class AdvisoryDeliveryRow(Base):
    """Records that an advisory was delivered to a given agent.

    Broadcast advisories get one row per agent that consumed them.
    """

    __tablename__ = "advisory_deliveries"

    advisory_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("advisories.id", ondelete="CASCADE"),
        primary_key=True,
    )
    agent_index: Mapped[int] = mapped_column(Integer, primary_key=True)
    delivered_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class HarnessMetaRow(Base):
    """Key-value metadata for the harness database (schema version, etc.)."""

    __tablename__ = "_harness_meta"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
