"""Tool providers, their configuration, and per-agent dispatch."""

from agent_harness.toolkit.config import (
    ToolServerConfig,
    load_tool_servers,
    parse_tool_servers,
    resolve_env_vars,
)
from agent_harness.toolkit.dispatch import ToolDispatcher
from agent_harness.toolkit.providers import (
    LocalTool,
    LocalToolProvider,
    McpToolProvider,
    SseToolProvider,
    StdioToolProvider,
    ToolProvider,
    provider_from_config,
)

__all__ = [
    "ToolServerConfig",
    "load_tool_servers",
    "parse_tool_servers",
    "resolve_env_vars",
    "ToolDispatcher",
    "LocalTool",
    "LocalToolProvider",
    "McpToolProvider",
    "SseToolProvider",
    "StdioToolProvider",
    "ToolProvider",
    "provider_from_config",
]
