"""Content block types for agent conversations.

Defines the four content block variants as Pydantic models with a
discriminated union (ContentBlock), plus the Message container that every
conversation turn is stored as.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


# ---------------------------------------------------------------------------
# Content block models
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    """Plain text, from the user or the agent."""

    type: Literal["text"] = "text"
    text: str


class ThinkingContent(BaseModel):
    """Reasoning emitted by the model alongside its answer."""

    type: Literal["thinking"] = "thinking"
    thinking: str


class ToolUseContent(BaseModel):
    """A tool invocation requested by the model."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultContent(BaseModel):
    """The outcome of a tool invocation, keyed by the originating tool_use id.

    ``content`` holds the provider's content items verbatim (typically
    ``{"type": "text", "text": ...}`` dicts).
    """

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    tool_use_name: str
    content: list[dict[str, Any]] = Field(default_factory=list)
    is_error: bool = False


ContentBlock = Annotated[
    Union[TextContent, ThinkingContent, ToolUseContent, ToolResultContent],
    Field(discriminator="type"),
]

_content_adapter: TypeAdapter[list[ContentBlock]] = TypeAdapter(list[ContentBlock])


def validate_content(data: list[dict]) -> list[ContentBlock]:
    """Validate a list of raw content dicts (e.g. loaded from storage)."""
    return _content_adapter.validate_python(data)


def dump_content(content: list[ContentBlock]) -> list[dict]:
    """Serialize content blocks to plain JSON-compatible dicts."""
    return _content_adapter.dump_python(content, mode="json")


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------

Role = Literal["user", "agent"]


class Message(BaseModel):
    """One conversation turn: a role and an ordered list of content blocks."""

    role: Role
    content: list[ContentBlock] = Field(default_factory=list)

    @property
    def is_text_only(self) -> bool:
        """True when every content block is plain text."""
        return all(isinstance(c, TextContent) for c in self.content)

    @property
    def tool_uses(self) -> list[ToolUseContent]:
        """All tool_use blocks, in order."""
        return [c for c in self.content if isinstance(c, ToolUseContent)]

    @property
    def tool_results(self) -> list[ToolResultContent]:
        """All tool_result blocks, in order."""
        return [c for c in self.content if isinstance(c, ToolResultContent)]

    def is_agent_loop_start(self) -> bool:
        """A user message made only of text opens a new agent loop."""
        return self.role == "user" and self.is_text_only

    def is_inner_loop_start(self) -> bool:
        """An agent message carrying at least one tool_use.

        Every tool_result that follows is guaranteed to have its tool_use at
        or after this point, so the conversation may be cut here safely.
        """
        return self.role == "agent" and any(
            isinstance(c, ToolUseContent) for c in self.content
        )
