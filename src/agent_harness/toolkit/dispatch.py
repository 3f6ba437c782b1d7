"""ToolDispatcher: routes tool_use blocks to the providers of one agent.

Providers are connected in configuration order. A provider that fails to
connect is skipped with a warning. Each namespaced tool name routes to
the first provider advertising it. Every tool_use gets exactly one
tool_result back, in request order, and failures are reported as error
results rather than raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from agent_harness.exceptions import ToolConnectionError
from agent_harness.models.content import ToolResultContent
from agent_harness.protocols import ToolOutcome
from agent_harness.toolkit.providers import error_text

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agent_harness.models.content import ToolUseContent
    from agent_harness.protocols import ToolSpec
    from agent_harness.toolkit.providers import ToolProvider

logger = logging.getLogger(__name__)

DEFAULT_TOOL_CONCURRENCY = 8


class ToolDispatcher:
    """Concurrent, order-preserving tool execution across providers.

    Usage::

        async with ToolDispatcher([fs_provider, web_provider]) as dispatcher:
            specs = dispatcher.tool_specs()
            results = await dispatcher.dispatch(message.tool_uses)
    """

    def __init__(
        self,
        providers: Sequence[ToolProvider] = (),
        *,
        concurrency: int = DEFAULT_TOOL_CONCURRENCY,
    ) -> None:
        self._providers = list(providers)
        self._concurrency = concurrency
        self._connected: list[ToolProvider] = []
        self._routes: dict[str, ToolProvider] = {}
        self._specs: list[ToolSpec] = []

    @property
    def providers(self) -> list[ToolProvider]:
        """Providers that connected successfully, in configuration order."""
        return list(self._connected)

    async def connect(self) -> None:
        """Connect every provider and build the name routing table."""
        for provider in self._providers:
            try:
                await provider.connect()
                tools = await provider.list_tools()
            except ToolConnectionError as exc:
                logger.warning("Skipping tool provider %r: %s", provider.name, exc)
                continue
            self._connected.append(provider)
            for spec in tools:
                owner = self._routes.get(spec.name)
                if owner is not None:
                    logger.warning(
                        "Duplicate tool %r from provider %r (already from %r)",
                        spec.name, provider.name, owner.name,
                    )
                    continue
                self._routes[spec.name] = provider
                self._specs.append(spec)
        logger.info(
            "Tool dispatcher ready: %d tools from %d/%d providers",
            len(self._specs), len(self._connected), len(self._providers),
        )

    async def close(self) -> None:
        """Close connected providers in reverse order."""
        while self._connected:
            provider = self._connected.pop()
            try:
                await provider.close()
            except Exception:
                logger.warning("Error closing tool provider %r", provider.name, exc_info=True)
        self._routes.clear()
        self._specs.clear()

    async def __aenter__(self) -> ToolDispatcher:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def tool_specs(self) -> list[ToolSpec]:
        """Every routable tool, first provider wins on duplicate names."""
        return list(self._specs)

    def provider_for(self, name: str) -> ToolProvider | None:
        return self._routes.get(name)

    async def dispatch(self, tool_uses: Sequence[ToolUseContent]) -> list[ToolResultContent]:
        """Run all tool calls concurrently, at most ``concurrency`` at a time.

        Returns one tool_result per tool_use, in the same order.
        """
        if not tool_uses:
            return []
        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(tool_use: ToolUseContent) -> ToolResultContent:
            async with semaphore:
                return await self._invoke(tool_use)

        return list(await asyncio.gather(*(bounded(t) for t in tool_uses)))

    async def _invoke(self, tool_use: ToolUseContent) -> ToolResultContent:
        provider = self._routes.get(tool_use.name)
        if provider is None:
            logger.warning("No tool provider for %r", tool_use.name)
            outcome = ToolOutcome.error(
                error_text(
                    "tool_execution_error",
                    f"No tool provider found to execute tool {tool_use.name}",
                )
            )
        else:
            try:
                outcome = await provider.invoke(tool_use.name, tool_use.input)
            except Exception as exc:
                logger.warning("Tool %r failed: %s", tool_use.name, exc)
                outcome = ToolOutcome.error(
                    error_text("tool_execution_error", f"Error executing tool {tool_use.name}", exc)
                )
        return ToolResultContent(
            tool_use_id=tool_use.id,
            tool_use_name=tool_use.name,
            content=list(outcome.content),
            is_error=outcome.is_error,
        )
