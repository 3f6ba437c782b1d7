"""agent-harness: run autonomous tool-using agents under token and cost budgets.

Each run groups one or more agents working on a problem. Agents advance in
ticks that alternate model inference with tool execution, and every turn
is persisted so runs can be resumed.
"""

from agent_harness._version import __version__

# Core entry points
from agent_harness.harness import Harness
from agent_harness.orchestrator import RunCoordinator, RunSummary, SingleTickResult
from agent_harness.engine.tick import TickEngine, TickResult
from agent_harness.engine.context import ContextRenderer, PruningCursor

# Content and run models
from agent_harness.models.content import (
    ContentBlock,
    Message,
    TextContent,
    ThinkingContent,
    ToolResultContent,
    ToolUseContent,
)
from agent_harness.models.run import AdvisoryInfo, RunInfo, StoredMessage

# Configuration
from agent_harness.models.config import HarnessConfig

# Protocols
from agent_harness.protocols import (
    Generation,
    MessageStore,
    ModelClient,
    TokenUsage,
    ToolOutcome,
    ToolSpec,
)

# Storage
from agent_harness.storage.store import SqlHarnessStore

# Tools
from agent_harness.toolkit import (
    LocalToolProvider,
    SseToolProvider,
    StdioToolProvider,
    ToolDispatcher,
    ToolProvider,
    ToolServerConfig,
)

# Exceptions
from agent_harness.exceptions import (
    ConfigurationError,
    ContextOverflowError,
    DuplicateRunError,
    HarnessError,
    InvalidAgentIndexError,
    PersistenceError,
    PositionConflictError,
    ProblemNotFoundError,
    ProfileNotFoundError,
    RunNotFoundError,
    ToolConfigError,
    ToolConnectionError,
    ToolProviderError,
    UnknownModelError,
)

__all__ = [
    "__version__",
    "Harness",
    "RunCoordinator",
    "RunSummary",
    "SingleTickResult",
    "TickEngine",
    "TickResult",
    "ContextRenderer",
    "PruningCursor",
    "ContentBlock",
    "Message",
    "TextContent",
    "ThinkingContent",
    "ToolResultContent",
    "ToolUseContent",
    "AdvisoryInfo",
    "RunInfo",
    "StoredMessage",
    "HarnessConfig",
    "Generation",
    "MessageStore",
    "ModelClient",
    "TokenUsage",
    "ToolOutcome",
    "ToolSpec",
    "SqlHarnessStore",
    "LocalToolProvider",
    "SseToolProvider",
    "StdioToolProvider",
    "ToolDispatcher",
    "ToolProvider",
    "ToolServerConfig",
    "ConfigurationError",
    "ContextOverflowError",
    "DuplicateRunError",
    "HarnessError",
    "InvalidAgentIndexError",
    "PersistenceError",
    "PositionConflictError",
    "ProblemNotFoundError",
    "ProfileNotFoundError",
    "RunNotFoundError",
    "ToolConfigError",
    "ToolConnectionError",
    "ToolProviderError",
    "UnknownModelError",
]
