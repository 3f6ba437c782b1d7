"""Domain models for the harness."""

from agent_harness.models.config import HarnessConfig
from agent_harness.models.content import (
    ContentBlock,
    Message,
    TextContent,
    ThinkingContent,
    ToolResultContent,
    ToolUseContent,
    dump_content,
    validate_content,
)
from agent_harness.models.run import AdvisoryInfo, RunInfo, StoredMessage

__all__ = [
    "HarnessConfig",
    "ContentBlock",
    "Message",
    "TextContent",
    "ThinkingContent",
    "ToolResultContent",
    "ToolUseContent",
    "dump_content",
    "validate_content",
    "AdvisoryInfo",
    "RunInfo",
    "StoredMessage",
]
