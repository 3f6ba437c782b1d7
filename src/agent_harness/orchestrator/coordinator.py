"""RunCoordinator: drives the agents of a run concurrently.

Each agent gets its own TickEngine, built and closed inside the asyncio
task that drives it (tool transports are bound to the task that opened
them). Stop conditions and the cost ceiling are only checked between
ticks, so an in-flight tick always completes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from agent_harness.engine.tick import TickEngine
from agent_harness.exceptions import InvalidAgentIndexError
from agent_harness.llm.client import create_model_client
from agent_harness.models.config import HarnessConfig
from agent_harness.orchestrator.models import RunSummary, SingleTickResult
from agent_harness.profiles import load_system_prompt, profile_settings_path
from agent_harness.toolkit.config import load_tool_servers
from agent_harness.toolkit.dispatch import ToolDispatcher
from agent_harness.toolkit.providers import provider_from_config

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from agent_harness.engine.tick import TickResult
    from agent_harness.models.run import RunInfo, StoredMessage
    from agent_harness.protocols import ModelClient
    from agent_harness.storage.store import SqlHarnessStore
    from agent_harness.toolkit.providers import ToolProvider

logger = logging.getLogger(__name__)


class RunCoordinator:
    """Builds one TickEngine per agent and runs them.

    The three factories decide where models, tool providers, and system
    prompts come from. By default they read the model registry, the
    profile's ``settings.json``, and the profile/problem directories.

    Usage::

        coordinator = RunCoordinator(store, HarnessConfig.from_env())
        summary = await coordinator.run_continuous(run, max_cost=5.0)
    """

    def __init__(
        self,
        store: SqlHarnessStore,
        config: HarnessConfig | None = None,
        *,
        model_factory: Callable[[RunInfo, bool], ModelClient] | None = None,
        provider_factory: Callable[[RunInfo], list[ToolProvider]] | None = None,
        prompt_loader: Callable[[RunInfo], str] | None = None,
        retry_wait: Any | None = None,
    ) -> None:
        self._store = store
        self._config = config or HarnessConfig()
        self._model_factory = model_factory or self._default_model
        self._provider_factory = provider_factory or self._default_providers
        self._prompt_loader = prompt_loader or self._default_prompt
        self._retry_wait = retry_wait
        self._stop_event: asyncio.Event | None = None
        self._stop_requested = False

    # ------------------------------------------------------------------
    # Default factories
    # ------------------------------------------------------------------

    def _default_model(self, run: RunInfo, thinking: bool) -> ModelClient:
        return create_model_client(run.model, thinking=thinking)

    def _default_providers(self, run: RunInfo) -> list[ToolProvider]:
        servers = load_tool_servers(profile_settings_path(self._config.profiles_dir, run.profile))
        return [
            provider_from_config(
                server,
                connect_timeout=self._config.connect_timeout,
                tool_timeout=self._config.tool_timeout,
            )
            for server in servers
        ]

    def _default_prompt(self, run: RunInfo) -> str:
        return load_system_prompt(
            self._config.profiles_dir,
            self._config.problems_dir,
            run.profile,
            run.problem_id,
        )

    # ------------------------------------------------------------------
    # Engine construction
    # ------------------------------------------------------------------

    def _agent_indices(self, run: RunInfo, agent_indices: Sequence[int] | None) -> list[int]:
        if agent_indices is None:
            return run.agent_indices
        for idx in agent_indices:
            if not 0 <= idx < run.agent_count:
                raise InvalidAgentIndexError(idx, run.agent_count)
        return list(agent_indices)

    async def build_engine(
        self,
        run: RunInfo,
        agent_index: int,
        *,
        thinking: bool | None = None,
    ) -> TickEngine:
        """Build a ready TickEngine for one agent.

        Configuration is resolved (prompt, tool servers, model) before any
        tool server is contacted; configuration errors propagate.
        """
        if not 0 <= agent_index < run.agent_count:
            raise InvalidAgentIndexError(agent_index, run.agent_count)
        system_prompt = self._prompt_loader(run)
        providers = self._provider_factory(run)
        model = self._model_factory(run, self._config.thinking if thinking is None else thinking)

        dispatcher = ToolDispatcher(providers, concurrency=self._config.tool_concurrency)
        try:
            await dispatcher.connect()
        except BaseException:
            await dispatcher.close()
            await model.aclose()
            raise

        engine = TickEngine(
            run,
            agent_index,
            store=self._store,
            model=model,
            dispatcher=dispatcher,
            system_prompt=system_prompt,
            inference_attempts=self._config.inference_attempts,
            retry_wait=self._retry_wait,
            advisories=self._store,
        )
        engine.load()
        logger.info(
            "Built engine for run %r agent %d (%d tools)",
            run.name, agent_index, len(dispatcher.tool_specs()),
        )
        return engine

    # ------------------------------------------------------------------
    # Single tick
    # ------------------------------------------------------------------

    async def run_single_tick(
        self,
        run: RunInfo,
        agent_indices: Sequence[int] | None = None,
        *,
        stop_on: Callable[[StoredMessage], bool] | None = None,
        thinking: bool | None = None,
    ) -> SingleTickResult:
        """Tick every selected agent once, concurrently.

        Sibling ticks are never cancelled: a tick that already dispatched
        tool calls still persists their results.

        Raises:
            The first agent's error, once every tick has settled.
        """
        indices = self._agent_indices(run, agent_indices)

        async def one(agent_index: int) -> TickResult:
            engine = await self.build_engine(run, agent_index, thinking=thinking)
            async with engine:
                return await engine.tick()

        tasks = [asyncio.create_task(one(i), name=f"tick-{run.name}-{i}") for i in indices]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        for err in errors[1:]:
            logger.warning("Additional agent failure: %s", err)
        if errors:
            raise errors[0]

        cost = self._store.aggregate_cost(run.id)
        stopped = False
        if stop_on is not None:
            latest = self._store.latest(run.id)
            stopped = latest is not None and bool(stop_on(latest))
        return SingleTickResult(cost=cost, stopped=stopped, ticks=list(outcomes))

    # ------------------------------------------------------------------
    # Continuous
    # ------------------------------------------------------------------

    def request_stop(self) -> None:
        """Ask running loops to stop after their current tick."""
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()
        logger.info("Stop requested")

    async def run_continuous(
        self,
        run: RunInfo,
        agent_indices: Sequence[int] | None = None,
        *,
        max_cost: float | None = None,
        stop_on: Callable[[StoredMessage], bool] | None = None,
        on_message: Callable[[StoredMessage], None] | None = None,
        on_cost_update: Callable[[float], None] | None = None,
        on_tick: Callable[[TickResult], None] | None = None,
        thinking: bool | None = None,
    ) -> RunSummary:
        """Run independent tick loops for every selected agent.

        After each tick of an agent: its latest message goes to
        ``on_message`` and ``stop_on`` (a match ends that agent's loop
        only); the aggregate cost goes to ``on_cost_update``; a cost above
        ``max_cost`` ends every loop.

        Raises:
            The first error of any loop, once every loop has settled.
        """
        indices = self._agent_indices(run, agent_indices)
        stop = asyncio.Event()
        self._stop_event = stop
        self._stop_requested = False

        ticks = 0
        stopped_agents: list[int] = []
        cost_limit_reached = False

        async def agent_loop(agent_index: int) -> None:
            nonlocal ticks, cost_limit_reached
            engine = await self.build_engine(run, agent_index, thinking=thinking)
            async with engine:
                while not stop.is_set():
                    result = await engine.tick()
                    ticks += 1
                    if on_tick is not None:
                        on_tick(result)

                    messages = engine.messages
                    latest = messages[-1] if messages else None
                    if latest is not None and on_message is not None:
                        on_message(latest)
                    if latest is not None and stop_on is not None and stop_on(latest):
                        logger.info("Agent %d matched stop condition", agent_index)
                        stopped_agents.append(agent_index)
                        return

                    cost = self._store.aggregate_cost(run.id)
                    if on_cost_update is not None:
                        on_cost_update(cost)
                    if max_cost is not None and cost > max_cost:
                        logger.warning("Cost limit reached: $%.4f > $%.4f", cost, max_cost)
                        cost_limit_reached = True
                        stop.set()
                        return
            logger.info("Agent %d loop finished", agent_index)

        tasks = [
            asyncio.create_task(agent_loop(i), name=f"agent-{run.name}-{i}") for i in indices
        ]
        try:
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._stop_event = None

        errors = [o for o in outcomes if isinstance(o, BaseException)]
        for err in errors[1:]:
            logger.warning("Additional agent failure: %s", err)
        if errors:
            raise errors[0]

        return RunSummary(
            cost=self._store.aggregate_cost(run.id),
            ticks=ticks,
            stopped_agents=sorted(stopped_agents),
            cost_limit_reached=cost_limit_reached,
            interrupted=self._stop_requested,
        )
