"""Configuration models for the harness.

HarnessConfig holds process-wide settings: where the database, profiles,
and problems live, and the knobs that bound inference retries and tool
fan-out.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field

_DEFAULT_DB_PATH = ".harness.db"


class HarnessConfig(BaseModel):
    """Harness-wide configuration.

    Attributes:
        db_path: Path to the SQLite database file, or ``":memory:"``.
        db_url: Full SQLAlchemy URL. Takes precedence over db_path.
        profiles_dir: Directory holding one sub-directory per profile.
        problems_dir: Directory holding one sub-directory per problem.
        thinking: Ask reasoning-capable models for extended thinking.
        inference_attempts: Total attempts per model call (first try included).
        tool_concurrency: Maximum tool invocations in flight per tick.
        tool_timeout: Seconds a single tool invocation may take.
        connect_timeout: Seconds a tool server may take to initialize.
    """

    db_path: str = _DEFAULT_DB_PATH
    db_url: Optional[str] = None
    profiles_dir: str = "profiles"
    problems_dir: str = "problems"
    thinking: bool = True
    inference_attempts: int = Field(default=3, ge=1)
    tool_concurrency: int = Field(default=8, ge=1)
    tool_timeout: float = Field(default=300.0, gt=0)
    connect_timeout: float = Field(default=30.0, gt=0)

    @classmethod
    def from_env(cls, **overrides: object) -> HarnessConfig:
        """Build a config from ``HARNESS_*`` / ``*_DIR`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, object] = {}
        env_map = {
            "db_path": "HARNESS_DB",
            "db_url": "HARNESS_DB_URL",
            "profiles_dir": "PROFILES_DIR",
            "problems_dir": "PROBLEMS_DIR",
        }
        for field_name, env_var in env_map.items():
            value = os.environ.get(env_var)
            if value:
                values[field_name] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
