"""TickEngine: one agent's conversation, advanced one tick at a time.

A tick:

1. synthesizes an autonomy prompt when the log is empty or ends with an
   agent turn (pending advisories are folded into it),
2. renders a slice of the log that fits the model's context window,
3. runs inference with bounded retries,
4. fans the reply's tool calls out to the tool dispatcher,
5. persists the agent turn and, if any, the tool results.

If the tool results of a tick could not be persisted, the log ends with
unanswered tool calls; the next tick first records an error result for
each of them.

The message cache and the pruning cursor belong to the engine alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from agent_harness.engine.context import ContextRenderer
from agent_harness.exceptions import InvalidAgentIndexError, PersistenceError
from agent_harness.models.content import Message, TextContent, ToolResultContent
from agent_harness.retry import with_retries
from agent_harness.toolkit.providers import error_text

if TYPE_CHECKING:
    from agent_harness.engine.context import PruningCursor
    from agent_harness.models.content import ToolUseContent
    from agent_harness.models.run import RunInfo, StoredMessage
    from agent_harness.protocols import MessageStore, ModelClient
    from agent_harness.toolkit.dispatch import ToolDispatcher

logger = logging.getLogger(__name__)

AUTONOMY_PROMPT = """\
<system>
This is an automated system message and there is no user available to respond. \
Proceed autonomously, making sure to use tools as only tools have visible effects \
on the system. Never stay idle and always pro-actively work on solving the problem.
</system>
"""


def format_advisories(contents: list[str]) -> str:
    """Render advisory notes for inclusion in a synthesized user turn."""
    return "".join(f"<advisory>\n{c}\n</advisory>\n" for c in contents)


@dataclass(frozen=True)
class TickResult:
    """Messages persisted by one tick, in position order.

    ``messages`` is empty when nothing was persisted; it may hold only the
    synthesized user turn when the model returned an empty reply.
    """

    agent_index: int
    messages: list[StoredMessage] = field(default_factory=list)
    cost: float = 0.0

    @property
    def agent_message(self) -> StoredMessage | None:
        for msg in self.messages:
            if msg.role == "agent":
                return msg
        return None


class TickEngine:
    """Drives one agent of a run.

    Usage::

        async with TickEngine(run, 0, store=store, model=client,
                              dispatcher=dispatcher, system_prompt=prompt) as engine:
            result = await engine.tick()
    """

    def __init__(
        self,
        run: RunInfo,
        agent_index: int,
        *,
        store: MessageStore,
        model: ModelClient,
        dispatcher: ToolDispatcher,
        system_prompt: str,
        inference_attempts: int = 3,
        retry_wait: Any | None = None,
        advisories: Any | None = None,
    ) -> None:
        """Create an engine for one agent. Call ``load()`` or ``tick()`` next.

        Args:
            run: The run this agent belongs to.
            agent_index: Index of the agent within the run.
            store: Message log.
            model: Inference back-end.
            dispatcher: Connected tool dispatcher.
            system_prompt: Fully rendered system prompt.
            inference_attempts: Total attempts per model call.
            retry_wait: tenacity wait strategy override.
            advisories: Object with ``pending_advisories(run_id, agent_index)``
                and ``mark_delivered(ids, agent_index)``, usually the store.
        """
        if not 0 <= agent_index < run.agent_count:
            raise InvalidAgentIndexError(agent_index, run.agent_count)
        self.run = run
        self.agent_index = agent_index
        self._store = store
        self._model = model
        self._dispatcher = dispatcher
        self._system_prompt = system_prompt
        self._attempts = inference_attempts
        self._retry_wait = retry_wait
        self._advisories = advisories
        self._renderer = ContextRenderer()
        self._messages: list[StoredMessage] = []
        self._loaded = False

    @property
    def messages(self) -> list[StoredMessage]:
        return list(self._messages)

    @property
    def cursor(self) -> PruningCursor:
        return self._renderer.cursor

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def load(self) -> None:
        """(Re)load the agent's log from the store."""
        self._messages = self._store.list_by_agent(self.run.id, self.agent_index)
        self._loaded = True
        logger.debug(
            "Loaded %d messages for run %d agent %d",
            len(self._messages), self.run.id, self.agent_index,
        )

    def is_new_user_message_needed(self) -> bool:
        """True when the log is empty or the last turn belongs to the agent."""
        if not self._loaded:
            self.load()
        return not self._messages or self._messages[-1].role == "agent"

    def unanswered_tool_uses(self) -> list[ToolUseContent]:
        """Tool calls of a final agent turn whose results never reached the log."""
        if not self._loaded:
            self.load()
        if not self._messages or self._messages[-1].role != "agent":
            return []
        return self._messages[-1].tool_uses

    def _record_lost_tool_results(self) -> StoredMessage:
        unanswered = self.unanswered_tool_uses()
        logger.warning(
            "Recording %d lost tool results for run %d agent %d",
            len(unanswered), self.run.id, self.agent_index,
        )
        results = [
            ToolResultContent(
                tool_use_id=use.id,
                tool_use_name=use.name,
                content=[{
                    "type": "text",
                    "text": error_text("tool_result_lost", f"Result of tool {use.name} was not recorded"),
                }],
                is_error=True,
            )
            for use in unanswered
        ]
        return self._append(Message(role="user", content=results))

    def _next_position(self) -> int:
        return self._messages[-1].position + 1 if self._messages else 0

    def _append(self, message: Message, *, total_tokens: int = 0, cost: float = 0.0) -> StoredMessage:
        stored = self._store.append(
            self.run.id,
            self.agent_index,
            message,
            position=self._next_position(),
            total_tokens=total_tokens,
            cost=cost,
        )
        self._messages.append(stored)
        return stored

    def new_user_message(self) -> StoredMessage:
        """Persist the synthesized autonomy prompt, with any pending advisories."""
        text = AUTONOMY_PROMPT
        delivered: list[int] = []
        if self._advisories is not None:
            pending = self._advisories.pending_advisories(self.run.id, self.agent_index)
            if pending:
                text += format_advisories([a.content for a in pending])
                delivered = [a.id for a in pending]

        stored = self._append(Message(role="user", content=[TextContent(text=text)]))
        if delivered:
            self._advisories.mark_delivered(delivered, self.agent_index)
            logger.info(
                "Delivered %d advisories to run %d agent %d",
                len(delivered), self.run.id, self.agent_index,
            )
        return stored

    async def tick(self) -> TickResult:
        """Execute exactly one tick.

        Raises:
            ContextOverflowError: If no pruning boundary makes the prompt fit.
            LLMClientError: If inference fails fatally or retries run out.
            PersistenceError: If the store fails.
        """
        if not self._loaded:
            self.load()
        persisted: list[StoredMessage] = []

        if self.unanswered_tool_uses():
            persisted.append(self._record_lost_tool_results())
        if self.is_new_user_message_needed():
            persisted.append(self.new_user_message())

        tools = self._dispatcher.tool_specs()
        rendered = self._renderer.fit(self._messages, self._system_prompt, tools, self._model)

        generation = await with_retries(
            self._model.generate,
            rendered,
            self._system_prompt,
            tools,
            attempts=self._attempts,
            wait=self._retry_wait,
        )
        reply = generation.message

        if not reply.content:
            logger.warning(
                "Skipping empty agent response for run %d agent %d",
                self.run.id, self.agent_index,
            )
            return TickResult(self.agent_index, persisted)

        tool_results = await self._dispatcher.dispatch(reply.tool_uses)

        usage = generation.usage
        total_tokens = usage.total if usage is not None else 0
        cost = self._model.price_for(usage) if usage is not None else 0.0

        persisted.append(
            self._append(
                Message(role="agent", content=reply.content),
                total_tokens=total_tokens,
                cost=cost,
            )
        )
        if tool_results:
            try:
                persisted.append(self._append(Message(role="user", content=tool_results)))
            except PersistenceError:
                logger.error(
                    "Results of tool calls %s were not persisted for run %d agent %d; "
                    "the next tick records them as lost",
                    [r.tool_use_id for r in tool_results], self.run.id, self.agent_index,
                )
                raise
            for result in tool_results:
                if result.is_error:
                    logger.warning(
                        "Tool %s returned an error: %s", result.tool_use_name, result.content
                    )

        logger.debug(
            "Tick done for run %d agent %d: %d tool calls, cost %.6f",
            self.run.id, self.agent_index, len(tool_results), cost,
        )
        return TickResult(self.agent_index, persisted, cost)

    async def close(self) -> None:
        """Close the tool dispatcher and the model client."""
        try:
            await self._dispatcher.close()
        finally:
            await self._model.aclose()

    async def __aenter__(self) -> TickEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
