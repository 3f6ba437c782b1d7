"""Shared test fixtures for the harness.

Provides an in-memory store, a scripted fake model client, and helpers
for building tick engines over in-process tool providers.
"""

from __future__ import annotations

import asyncio

import pytest
import tenacity

from agent_harness.engine.tick import TickEngine
from agent_harness.models.content import Message, TextContent, ToolUseContent
from agent_harness.protocols import Generation, TokenUsage
from agent_harness.storage.store import SqlHarnessStore
from agent_harness.toolkit.dispatch import ToolDispatcher
from agent_harness.toolkit.providers import LocalToolProvider


@pytest.fixture
def store():
    """In-memory store with all tables created."""
    s = SqlHarnessStore.open(":memory:")
    yield s
    s.close()


@pytest.fixture
def run(store):
    return store.create_run("test-run", problem_id="p1", model="fake-model")


@pytest.fixture
def math_provider() -> LocalToolProvider:
    provider = LocalToolProvider("math")
    provider.add("add", lambda a, b: a + b, "Add two numbers")
    return provider


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------


def text_reply(text: str = "Working on it.") -> Message:
    return Message(role="agent", content=[TextContent(text=text)])


def tool_reply(*calls: tuple[str, str, dict]) -> Message:
    """Agent message with one tool_use per (id, name, input) triple."""
    return Message(
        role="agent",
        content=[ToolUseContent(id=cid, name=name, input=args) for cid, name, args in calls],
    )


class FakeModelClient:
    """Scripted ModelClient.

    ``replies`` items are Messages (returned in order) or exceptions
    (raised). Once the script runs out, every call returns a text reply.
    Token estimates are ``tokens_per_message`` per rendered message.
    ``delay`` seconds pass before each reply.
    """

    def __init__(
        self,
        replies=None,
        *,
        max_tokens: int = 100_000,
        tokens_per_message: int = 10,
        cost_per_call: float = 0.0,
        usage: TokenUsage | None = None,
        delay: float = 0.0,
    ) -> None:
        self.replies = list(replies or [])
        self.delay = delay
        self.max_tokens = max_tokens
        self.tokens_per_message = tokens_per_message
        self.cost_per_call = cost_per_call
        self.usage = usage or TokenUsage(input=100, output=20, total=120)
        self.calls: list[list[Message]] = []
        self.closed = False

    def estimate_tokens(self, messages, system_prompt, tools) -> int:
        return self.tokens_per_message * len(messages)

    def max_context_tokens(self) -> int:
        return self.max_tokens

    async def generate(self, messages, system_prompt, tools) -> Generation:
        self.calls.append(list(messages))
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0) if self.replies else text_reply()
        if isinstance(reply, BaseException):
            raise reply
        return Generation(message=reply, usage=self.usage)

    def price_for(self, usage: TokenUsage) -> float:
        return self.cost_per_call

    async def aclose(self) -> None:
        self.closed = True


async def make_engine(
    store,
    run,
    model,
    providers=(),
    *,
    agent_index: int = 0,
    system_prompt: str = "You are a test agent.",
    **kwargs,
) -> TickEngine:
    """Build a TickEngine over connected providers with no retry backoff."""
    dispatcher = ToolDispatcher(providers)
    await dispatcher.connect()
    kwargs.setdefault("retry_wait", tenacity.wait_none())
    return TickEngine(
        run,
        agent_index,
        store=store,
        model=model,
        dispatcher=dispatcher,
        system_prompt=system_prompt,
        **kwargs,
    )
