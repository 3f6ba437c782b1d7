"""Tool providers: named sources of tools the model can call.

Every provider exposes its tools namespaced as ``<provider>-<tool>`` and
executes them by that namespaced name. Variants:

- StdioToolProvider: spawns an MCP server subprocess.
- SseToolProvider: connects to an MCP server over HTTP/SSE.
- LocalToolProvider: in-process Python callables.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from agent_harness.exceptions import ToolConnectionError
from agent_harness.protocols import ToolOutcome, ToolSpec

if TYPE_CHECKING:
    from collections.abc import Callable

    from agent_harness.toolkit.config import ToolServerConfig

logger = logging.getLogger(__name__)


def namespaced(provider_name: str, tool_name: str) -> str:
    return f"{provider_name}-{tool_name}"


def error_text(code: str, message: str, cause: BaseException | None = None) -> str:
    """Diagnostic text for an error tool_result."""
    text = f"Error [{code}]: {message}"
    if cause is not None:
        text += f" (cause: {cause})"
    return text


def _first_attr(obj: Any, *names: str) -> Any:
    """First non-None attribute of ``obj`` among ``names`` (camelCase or snake_case fields)."""
    for attr in names:
        value = getattr(obj, attr, None)
        if value is not None:
            return value
    return None


class ToolProvider(ABC):
    """A named source of tools.

    Lifecycle: ``connect()`` once, then ``list_tools()`` and ``invoke()``
    any number of times, then ``close()``.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    async def connect(self) -> None:
        """Open the underlying transport. Raises ToolConnectionError."""

    async def close(self) -> None:
        """Release the underlying transport."""

    @abstractmethod
    async def list_tools(self) -> list[ToolSpec]:
        """Tools offered by this provider, with namespaced names."""

    @abstractmethod
    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolOutcome:
        """Execute a tool by namespaced name.

        Tool-level failures come back as ``ToolOutcome(is_error=True)``;
        exceptions signal transport failures.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# ---------------------------------------------------------------------------
# MCP-backed providers
# ---------------------------------------------------------------------------


class McpToolProvider(ToolProvider):
    """Shared MCP client session handling for the transport variants.

    The session lives in an AsyncExitStack, so ``connect()`` and
    ``close()`` must be awaited from the same task.
    """

    def __init__(
        self,
        name: str,
        *,
        connect_timeout: float = 30.0,
        tool_timeout: float = 300.0,
    ) -> None:
        super().__init__(name)
        self._connect_timeout = connect_timeout
        self._tool_timeout = tool_timeout
        self._stack: AsyncExitStack | None = None
        self._session: Any = None
        self._tools: dict[str, ToolSpec] = {}
        self._raw_names: dict[str, str] = {}

    @abstractmethod
    async def _open_streams(self, stack: AsyncExitStack) -> tuple[Any, Any]:
        """Enter the transport context and return (read_stream, write_stream)."""

    async def connect(self) -> None:
        from mcp import ClientSession

        stack = AsyncExitStack()
        try:
            read_stream, write_stream = await self._open_streams(stack)
            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            await asyncio.wait_for(session.initialize(), timeout=self._connect_timeout)
            listed = await asyncio.wait_for(session.list_tools(), timeout=self._connect_timeout)
        except Exception as exc:
            await stack.aclose()
            raise ToolConnectionError(self.name, f"{type(exc).__name__}: {exc}") from exc

        self._stack = stack
        self._session = session
        self._register(listed.tools)
        logger.info("Connected tool server %r (%d tools)", self.name, len(self._tools))

    def _register(self, tools: list[Any]) -> None:
        for tool in tools:
            full_name = namespaced(self.name, tool.name)
            schema = _first_attr(tool, "inputSchema", "input_schema")
            self._raw_names[full_name] = tool.name
            self._tools[full_name] = ToolSpec(
                name=full_name,
                description=tool.description or "",
                input_schema=dict(schema or {"type": "object"}),
            )

    async def close(self) -> None:
        if self._stack is not None:
            stack, self._stack = self._stack, None
            self._session = None
            await stack.aclose()

    async def list_tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolOutcome:
        if self._session is None:
            raise ToolConnectionError(self.name, "not connected")
        raw_name = self._raw_names.get(name)
        if raw_name is None:
            return ToolOutcome.error(
                error_text("tool_not_found", f"Tool {name} not offered by {self.name}")
            )
        result = await self._session.call_tool(
            raw_name,
            arguments,
            read_timeout_seconds=timedelta(seconds=self._tool_timeout),
        )
        return ToolOutcome(
            content=[
                item.model_dump(mode="json", exclude_none=True) for item in result.content or []
            ],
            is_error=bool(_first_attr(result, "isError", "is_error")),
        )


class StdioToolProvider(McpToolProvider):
    """MCP server spawned as a subprocess speaking over stdin/stdout."""

    def __init__(
        self,
        name: str,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(name, **kwargs)
        self.command = command
        self.args = list(args or [])
        self.env = dict(env or {})

    async def _open_streams(self, stack: AsyncExitStack) -> tuple[Any, Any]:
        from mcp.client.stdio import StdioServerParameters, stdio_client

        params = StdioServerParameters(
            command=self.command,
            args=self.args,
            env={**os.environ, **self.env},
        )
        return await stack.enter_async_context(stdio_client(params))


class SseToolProvider(McpToolProvider):
    """MCP server reached over HTTP server-sent events."""

    def __init__(self, name: str, url: str, token: str | None = None, **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self.url = url
        self.token = token

    async def _open_streams(self, stack: AsyncExitStack) -> tuple[Any, Any]:
        from mcp.client.sse import sse_client

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        return await stack.enter_async_context(
            sse_client(self.url, headers=headers, timeout=self._connect_timeout)
        )


def provider_from_config(
    config: ToolServerConfig,
    *,
    connect_timeout: float = 30.0,
    tool_timeout: float = 300.0,
) -> McpToolProvider:
    """Build the transport variant for a validated config entry.

    ``${VAR}`` references are resolved here, right before use.
    """
    config.validate_transport()
    cfg = config.resolved()
    timeouts = {"connect_timeout": connect_timeout, "tool_timeout": tool_timeout}
    if cfg.transport == "stdio":
        return StdioToolProvider(cfg.name, cfg.command or "", cfg.args, cfg.env, **timeouts)
    return SseToolProvider(cfg.name, cfg.url or "", cfg.token or None, **timeouts)


# ---------------------------------------------------------------------------
# In-process provider
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalTool:
    """A Python callable exposed as a tool.

    The handler receives the tool input as keyword arguments and may be
    sync or async. It may return a ToolOutcome, a list of content dicts,
    or anything else (sent back as text). Raising marks the result as an
    error.
    """

    name: str
    handler: Callable[..., Any]
    description: str = ""
    input_schema: dict = field(default_factory=lambda: {"type": "object"})


class LocalToolProvider(ToolProvider):
    """Tools implemented by in-process Python callables.

    Usage::

        provider = LocalToolProvider("math")
        provider.add("add", lambda a, b: a + b, "Add two numbers")
        # model sees "math-add"
    """

    def __init__(self, name: str, tools: list[LocalTool] | None = None) -> None:
        super().__init__(name)
        self._tools: dict[str, LocalTool] = {}
        for tool in tools or []:
            self._tools[namespaced(name, tool.name)] = tool

    def add(
        self,
        name: str,
        handler: Callable[..., Any],
        description: str = "",
        input_schema: dict | None = None,
    ) -> None:
        self._tools[namespaced(self.name, name)] = LocalTool(
            name=name,
            handler=handler,
            description=description,
            input_schema=input_schema or {"type": "object"},
        )

    async def list_tools(self) -> list[ToolSpec]:
        return [
            ToolSpec(name=full, description=t.description, input_schema=t.input_schema)
            for full, t in self._tools.items()
        ]

    async def invoke(self, name: str, arguments: dict[str, Any]) -> ToolOutcome:
        tool = self._tools.get(name)
        if tool is None:
            return ToolOutcome.error(
                error_text("tool_not_found", f"Tool {name} not offered by {self.name}")
            )
        try:
            result = tool.handler(**arguments)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            return ToolOutcome.error(
                error_text("tool_execution_error", f"Error executing tool {name}", exc)
            )
        if isinstance(result, ToolOutcome):
            return result
        if isinstance(result, list) and all(isinstance(i, dict) for i in result):
            return ToolOutcome(content=result)
        return ToolOutcome(content=[{"type": "text", "text": str(result)}])
