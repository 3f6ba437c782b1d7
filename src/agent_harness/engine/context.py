"""Context-window pruning for one agent's conversation.

The renderer keeps a two-field cursor into the message list:

- ``loop_start``: index of the user text message that opened the current
  agent loop.
- ``inner_start``: index where the rendered slice begins. Either equal to
  ``loop_start`` or pointing at an agent message that carries tool_use.

Rendering yields ``messages[inner_start:]``, with ``messages[loop_start]``
prepended when the two differ, so the model always sees the instruction
that started the loop and never sees a tool_result without its tool_use.
The cursor only ever moves forward.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agent_harness.exceptions import ContextOverflowError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agent_harness.models.content import Message
    from agent_harness.protocols import ModelClient, ToolSpec

logger = logging.getLogger(__name__)


@dataclass
class PruningCursor:
    """Position of the rendered window. Both fields start at 0."""

    loop_start: int = 0
    inner_start: int = 0


class ContextRenderer:
    """Produces model-ready slices of a conversation that fit the window.

    One renderer belongs to exactly one TickEngine; its cursor persists
    across ticks so pruning is never undone.
    """

    def __init__(self, cursor: PruningCursor | None = None) -> None:
        self.cursor = cursor if cursor is not None else PruningCursor()

    def render(self, messages: Sequence[Message]) -> list[Message]:
        """Slice the conversation at the cursor."""
        c = self.cursor
        rendered = list(messages[c.inner_start:])
        if c.inner_start > c.loop_start:
            rendered.insert(0, messages[c.loop_start])
        return rendered

    def advance(self, messages: Sequence[Message]) -> bool:
        """Move the cursor to the next pruning boundary.

        Returns False when no boundary is left after the current one.
        """
        c = self.cursor
        start = c.inner_start + 1 if c.inner_start > c.loop_start else c.inner_start + 2
        for idx in range(start, len(messages)):
            msg = messages[idx]
            if msg.is_agent_loop_start():
                logger.debug("Pruning to agent loop start at %d", idx)
                c.loop_start = idx
                c.inner_start = idx
                return True
            if msg.is_inner_loop_start():
                logger.debug("Pruning to inner loop start at %d", idx)
                c.inner_start = idx
                return True
        return False

    def fit(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        tools: Sequence[ToolSpec],
        model: ModelClient,
    ) -> list[Message]:
        """Render, advancing the cursor until the estimate fits the window.

        Raises:
            ContextOverflowError: If the slice is still too large and no
                boundary is left to advance to.
        """
        limit = model.max_context_tokens()
        while True:
            rendered = self.render(messages)
            estimate = model.estimate_tokens(rendered, system_prompt, tools)
            logger.debug(
                "Context estimate %d/%d tokens (%d messages)", estimate, limit, len(rendered)
            )
            if estimate <= limit:
                return rendered
            if not self.advance(messages):
                raise ContextOverflowError(estimate, limit)
