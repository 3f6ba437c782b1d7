"""Harness: the user-facing entry point.

Ties the store, the configuration, and the run coordinator together
behind one object, the way a caller (or the CLI) uses them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from agent_harness.exceptions import (
    ConfigurationError,
    InvalidAgentIndexError,
    ProblemNotFoundError,
    ProfileNotFoundError,
)
from agent_harness.llm.registry import DEFAULT_MODEL, get_model_spec
from agent_harness.models.config import HarnessConfig
from agent_harness.orchestrator.coordinator import RunCoordinator
from agent_harness.profiles import default_profile, problem_exists, profile_exists
from agent_harness.storage.store import SqlHarnessStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from agent_harness.engine.tick import TickResult
    from agent_harness.models.run import AdvisoryInfo, RunInfo, StoredMessage
    from agent_harness.orchestrator.models import RunSummary, SingleTickResult

logger = logging.getLogger(__name__)


class Harness:
    """Create, inspect, run, and delete runs.

    Usage::

        with Harness.open() as h:
            h.create_run("demo", problem_id="factorial", model="gpt-4.1")
            result = asyncio.run(h.run("demo", single_tick=True))
            print(h.run_cost("demo"))
    """

    def __init__(
        self,
        store: SqlHarnessStore,
        config: HarnessConfig,
        coordinator: RunCoordinator,
    ) -> None:
        self._store = store
        self._config = config
        self._coordinator = coordinator
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str | None = None,
        *,
        config: HarnessConfig | None = None,
        **coordinator_kwargs: Any,
    ) -> Harness:
        """Open (or create) a harness database.

        Args:
            path: SQLite path. Overrides ``config.db_path``.
            config: Harness configuration. ``HarnessConfig.from_env()`` if None.
            **coordinator_kwargs: Forwarded to RunCoordinator (factories).
        """
        if config is None:
            config = HarnessConfig.from_env()
        if path is not None:
            config = config.model_copy(update={"db_path": path})
        store = SqlHarnessStore.open(config.db_path, url=config.db_url)
        coordinator = RunCoordinator(store, config, **coordinator_kwargs)
        return cls(store, config, coordinator)

    @property
    def store(self) -> SqlHarnessStore:
        return self._store

    @property
    def config(self) -> HarnessConfig:
        return self._config

    @property
    def coordinator(self) -> RunCoordinator:
        return self._coordinator

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def create_run(
        self,
        name: str,
        *,
        problem_id: str,
        model: str = DEFAULT_MODEL,
        agent_count: int = 1,
        profile: str | None = None,
        validate: bool = True,
    ) -> RunInfo:
        """Create a run.

        With ``validate`` the model must be registered and the problem and
        profile directories must exist. ``profile`` defaults to ``example``
        (or the first profile available).

        Raises:
            DuplicateRunError: If the name is taken.
            ConfigurationError: On an invalid model, problem, profile, or agent count.
        """
        if agent_count < 1:
            raise ConfigurationError(f"agent_count must be at least 1, got {agent_count}")
        if profile is None:
            profile = default_profile(self._config.profiles_dir) if validate else "example"
        if validate:
            get_model_spec(model)
            if not problem_exists(self._config.problems_dir, problem_id):
                raise ProblemNotFoundError(problem_id)
            if not profile_exists(self._config.profiles_dir, profile):
                raise ProfileNotFoundError(profile)
        return self._store.create_run(
            name,
            problem_id=problem_id,
            model=model,
            agent_count=agent_count,
            profile=profile,
        )

    def get_run(self, name: str) -> RunInfo:
        return self._store.get_run(name)

    def find_run(self, name: str) -> RunInfo | None:
        return self._store.find_run(name)

    def list_runs(self) -> list[RunInfo]:
        return self._store.list_runs()

    def delete_run(self, name: str) -> None:
        """Delete a run with its messages and advisories."""
        self._store.delete_run(self.get_run(name).id)

    def run_cost(self, name: str) -> float:
        return self._store.aggregate_cost(self.get_run(name).id)

    def run_tokens(self, name: str) -> int:
        return self._store.aggregate_tokens(self.get_run(name).id)

    def messages(self, name: str, agent_index: int | None = None) -> list[StoredMessage]:
        """Messages of one agent, or of the whole run when agent_index is None."""
        run = self.get_run(name)
        if agent_index is None:
            return self._store.list_by_run(run.id)
        self._check_agent(run, agent_index)
        return self._store.list_by_agent(run.id, agent_index)

    def send_advisory(
        self,
        name: str,
        content: str,
        agent_index: int | None = None,
    ) -> AdvisoryInfo:
        """Queue a note delivered with the agent's next synthesized turn."""
        run = self.get_run(name)
        if agent_index is not None:
            self._check_agent(run, agent_index)
        return self._store.send_advisory(run.id, content, agent_index)

    @staticmethod
    def _check_agent(run: RunInfo, agent_index: int) -> None:
        if not 0 <= agent_index < run.agent_count:
            raise InvalidAgentIndexError(agent_index, run.agent_count)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(
        self,
        name: str,
        *,
        agent_index: int | None = None,
        single_tick: bool = False,
        max_cost: float | None = None,
        thinking: bool | None = None,
        stop_on: Callable[[StoredMessage], bool] | None = None,
        on_message: Callable[[StoredMessage], None] | None = None,
        on_cost_update: Callable[[float], None] | None = None,
        on_tick: Callable[[TickResult], None] | None = None,
    ) -> SingleTickResult | RunSummary:
        """Advance a run: one tick per agent, or continuously.

        ``agent_index`` restricts execution to one agent.
        """
        run = self.get_run(name)
        indices = [agent_index] if agent_index is not None else None
        if single_tick:
            return await self._coordinator.run_single_tick(
                run, indices, stop_on=stop_on, thinking=thinking
            )
        return await self._coordinator.run_continuous(
            run,
            indices,
            max_cost=max_cost,
            stop_on=stop_on,
            on_message=on_message,
            on_cost_update=on_cost_update,
            on_tick=on_tick,
            thinking=thinking,
        )

    def request_stop(self) -> None:
        """Stop a continuous run after the in-flight ticks complete."""
        self._coordinator.request_stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store.close()

    def __enter__(self) -> Harness:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()
