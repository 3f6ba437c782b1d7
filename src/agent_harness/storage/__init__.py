"""Persistent storage for runs, messages, and advisories."""

from agent_harness.storage.engine import (
    create_harness_engine,
    create_session_factory,
    init_db,
)
from agent_harness.storage.store import SqlHarnessStore

__all__ = [
    "create_harness_engine",
    "create_session_factory",
    "init_db",
    "SqlHarnessStore",
]
