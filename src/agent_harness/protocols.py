"""Protocol definitions for the harness.

Defines the pluggable capabilities the tick engine is written against
(ModelClient, MessageStore) and the frozen dataclasses that cross those
seams (TokenUsage, ToolSpec, ToolOutcome, Generation).

No SQLAlchemy or httpx imports allowed in this module -- pure domain protocols.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agent_harness.models.content import Message
    from agent_harness.models.run import StoredMessage


@dataclass(frozen=True)
class TokenUsage:
    """Token accounting for one model call.

    ``cached`` is the part of ``input`` served from the provider's prompt
    cache; ``thinking`` is the part of ``output`` spent on reasoning.
    """

    input: int = 0
    output: int = 0
    cached: int = 0
    thinking: int = 0
    total: int = 0

    @classmethod
    def from_openai(cls, usage: dict) -> TokenUsage:
        """Parse an OpenAI-style ``usage`` dict."""
        prompt = int(usage.get("prompt_tokens") or 0)
        completion = int(usage.get("completion_tokens") or 0)
        prompt_details = usage.get("prompt_tokens_details") or {}
        completion_details = usage.get("completion_tokens_details") or {}
        return cls(
            input=prompt,
            output=completion,
            cached=int(prompt_details.get("cached_tokens") or 0),
            thinking=int(completion_details.get("reasoning_tokens") or 0),
            total=int(usage.get("total_tokens") or prompt + completion),
        )


@dataclass(frozen=True)
class ToolSpec:
    """A tool advertised to the model.

    Attributes:
        name: Name the model must use, already namespaced by provider.
        description: Human-readable description of the tool.
        input_schema: JSON Schema for the tool's arguments.
    """

    name: str
    description: str = ""
    input_schema: dict = field(default_factory=lambda: {"type": "object"})

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool invocation: provider content items plus an error flag."""

    content: list[dict[str, Any]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def error(cls, text: str) -> ToolOutcome:
        """Build an error outcome carrying a single text diagnostic."""
        return cls(content=[{"type": "text", "text": text}], is_error=True)


@dataclass(frozen=True)
class Generation:
    """One assistant turn returned by a model, with its token usage (if reported)."""

    message: Message
    usage: TokenUsage | None = None


@runtime_checkable
class ModelClient(Protocol):
    """Protocol for inference back-ends.

    The tick engine only talks to this interface, so back-ends can be
    swapped per run (selected by the run's ``model`` field).
    """

    def estimate_tokens(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        tools: Sequence[ToolSpec],
    ) -> int:
        """Estimate the prompt size of a request."""
        ...

    def max_context_tokens(self) -> int:
        """Size of the model's context window, in tokens."""
        ...

    async def generate(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        tools: Sequence[ToolSpec],
    ) -> Generation:
        """Produce one assistant turn. Raises on failure."""
        ...

    def price_for(self, usage: TokenUsage) -> float:
        """Dollar cost of a call with the given token usage."""
        ...

    async def aclose(self) -> None:
        """Release underlying resources."""
        ...


@runtime_checkable
class MessageStore(Protocol):
    """Append-only per-(run, agent) message log."""

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
        """Persist a message at the given position. Raises on conflict."""
        ...

    def list_by_agent(self, run_id: int, agent_index: int) -> list[StoredMessage]:
        """All messages of one agent, ordered by position."""
        ...

    def latest(self, run_id: int) -> StoredMessage | None:
        """Most recently persisted message of a run, or None."""
        ...

    def aggregate_cost(self, run_id: int) -> float:
        """Sum of ``cost`` over every message of the run."""
        ...

    def aggregate_tokens(self, run_id: int) -> int:
        """Sum of ``total_tokens`` over every message of the run."""
        ...

    def delete_run(self, run_id: int) -> None:
        """Delete a run and everything that belongs to it."""
        ...
