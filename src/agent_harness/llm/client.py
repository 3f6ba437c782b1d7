"""Async OpenAI-compatible httpx client implementing the ModelClient protocol.

Renders harness conversations into chat-completions wire format, parses
replies back into content blocks, and prices token usage from the model
registry. A single call here is a single HTTP request: retries are the
caller's concern (see agent_harness.retry).
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

import httpx

from agent_harness.llm.errors import LLMConfigError, LLMResponseError, error_for_status
from agent_harness.llm.registry import ModelSpec, get_model_spec
from agent_harness.models.content import (
    Message,
    TextContent,
    ThinkingContent,
    ToolResultContent,
    ToolUseContent,
    dump_content,
)
from agent_harness.protocols import Generation, TokenUsage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agent_harness.protocols import ToolSpec

logger = logging.getLogger(__name__)


def _tool_result_text(block: ToolResultContent) -> str:
    """Flatten tool result content for a ``tool`` turn.

    Pure-text results are joined; anything else is sent as JSON.
    """
    if block.content and all(item.get("type") == "text" for item in block.content):
        return "\n".join(str(item.get("text", "")) for item in block.content)
    return json.dumps(block.content)


def render_openai_messages(
    system_prompt: str,
    messages: Sequence[Message],
) -> list[dict[str, Any]]:
    """Render a harness conversation as chat-completions messages.

    - user text blocks -> one ``user`` turn
    - user tool_result blocks -> one ``tool`` turn each
    - agent turns -> one ``assistant`` turn with text, reasoning_content
      and tool_calls
    """
    rendered: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for msg in messages:
        if msg.role == "user":
            texts = [c.text for c in msg.content if isinstance(c, TextContent)]
            if texts:
                rendered.append({"role": "user", "content": "\n\n".join(texts)})
            for c in msg.content:
                if isinstance(c, ToolResultContent):
                    rendered.append({
                        "role": "tool",
                        "tool_call_id": c.tool_use_id,
                        "name": c.tool_use_name,
                        "content": _tool_result_text(c),
                    })
            continue

        assistant: dict[str, Any] = {"role": "assistant", "content": None}
        texts = []
        for c in msg.content:
            if isinstance(c, TextContent):
                texts.append(c.text)
            elif isinstance(c, ThinkingContent):
                assistant["reasoning_content"] = c.thinking
            elif isinstance(c, ToolUseContent):
                assistant.setdefault("tool_calls", []).append({
                    "id": c.id,
                    "type": "function",
                    "function": {"name": c.name, "arguments": json.dumps(c.input)},
                })
        if texts:
            assistant["content"] = "\n\n".join(texts)
        rendered.append(assistant)
    return rendered


def parse_openai_response(data: dict) -> Generation:
    """Parse a chat-completions response into an agent Message plus usage.

    A reply with neither text, reasoning, nor tool calls yields a message
    with no content blocks.

    Raises:
        LLMResponseError: If the response has no choices.
    """
    try:
        message = data["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMResponseError(
            f"Cannot extract message from response: {exc}. Response: {data}"
        ) from exc

    content: list = []
    text = message.get("content")
    if text:
        content.append(TextContent(text=text))
    reasoning = message.get("reasoning_content") or message.get("reasoning")
    if reasoning:
        content.append(ThinkingContent(thinking=reasoning))
    for tc in message.get("tool_calls") or []:
        if tc.get("type", "function") != "function":
            continue
        raw_args = tc["function"].get("arguments") or "{}"
        try:
            arguments = json.loads(raw_args) if isinstance(raw_args, str) else raw_args
        except (json.JSONDecodeError, TypeError):
            arguments = {"_raw": raw_args}
        if not isinstance(arguments, dict):
            arguments = {"_raw": arguments}
        content.append(
            ToolUseContent(id=tc["id"], name=tc["function"]["name"], input=arguments)
        )

    usage = data.get("usage")
    return Generation(
        message=Message(role="agent", content=content),
        usage=TokenUsage.from_openai(usage) if usage else None,
    )


class OpenAICompatibleClient:
    """Async httpx client for OpenAI-compatible chat completions.

    Implements the ModelClient protocol. Fails with a classified
    LLMClientError on HTTP errors so callers can decide what to retry.

    Usage::

        client = OpenAICompatibleClient(get_model_spec("gpt-4.1"))
        generation = await client.generate(messages, system_prompt, tools)
        cost = client.price_for(generation.usage)
        await client.aclose()
    """

    def __init__(
        self,
        spec: ModelSpec,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        thinking: bool = True,
        timeout: float = 600.0,
        token_counter: Any | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            spec: Registry entry for the model.
            api_key: API key. Falls back to the provider's env var.
            base_url: API base URL. Falls back to the provider endpoint.
            thinking: Send the model's extended-thinking parameters.
            timeout: Request timeout in seconds.
            token_counter: Object with ``count_text(str) -> int``.
                Defaults to a TiktokenCounter.
            transport: Optional httpx transport (used by tests).

        Raises:
            LLMConfigError: If no API key is provided or found in environment.
        """
        endpoint = spec.endpoint
        self._spec = spec
        self._api_key = api_key or os.environ.get(endpoint.api_key_env, "")
        if not self._api_key:
            raise LLMConfigError(
                f"No API key for model {spec.name!r}. Pass api_key= or set "
                f"{endpoint.api_key_env} environment variable."
            )
        self._base_url = (base_url or endpoint.resolve_base_url()).rstrip("/")
        self._thinking = thinking
        if token_counter is None:
            from agent_harness.llm.tokens import TiktokenCounter

            token_counter = TiktokenCounter(model=spec.api_model)
        self._counter = token_counter
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
        )

    @property
    def spec(self) -> ModelSpec:
        return self._spec

    # ------------------------------------------------------------------
    # ModelClient protocol
    # ------------------------------------------------------------------

    def estimate_tokens(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        tools: Sequence[ToolSpec],
    ) -> int:
        payload = json.dumps({
            "system": system_prompt,
            "messages": [
                {"role": m.role, "content": dump_content(m.content)} for m in messages
            ],
            "tools": [t.to_openai() for t in tools],
        })
        return self._counter.count_text(payload)

    def max_context_tokens(self) -> int:
        return self._spec.context_window

    def price_for(self, usage: TokenUsage) -> float:
        uncached = max(usage.input - usage.cached, 0)
        return (
            uncached * self._spec.input_price
            + usage.cached * self._spec.cached_price
            + usage.output * self._spec.output_price
        ) / 1_000_000

    async def generate(
        self,
        messages: Sequence[Message],
        system_prompt: str,
        tools: Sequence[ToolSpec],
    ) -> Generation:
        """Execute a single chat completion request (no retry)."""
        payload: dict[str, Any] = {
            "model": self._spec.api_model,
            "messages": render_openai_messages(system_prompt, messages),
        }
        if tools:
            payload["tools"] = [t.to_openai() for t in tools]
            payload["tool_choice"] = "auto"
        payload.update(self._spec.extra)
        if self._thinking:
            payload.update(self._spec.thinking_params)

        response = await self._client.post(
            f"{self._base_url}/chat/completions",
            json=payload,
        )
        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMResponseError(f"Response is not JSON: {response.text[:200]}") from exc
        if "choices" not in data:
            raise LLMResponseError(
                f"Unexpected response format: missing 'choices' key. Response: {data}"
            )
        return parse_openai_response(data)

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        error = error_for_status(
            response.status_code,
            response.text,
            response.headers.get("Retry-After"),
        )
        if error is not None:
            raise error


def create_model_client(model: str, *, thinking: bool = True, **kwargs: Any) -> OpenAICompatibleClient:
    """Build the client for a registered model name.

    Raises:
        UnknownModelError: If the model is not registered.
        LLMConfigError: If the provider's API key is missing.
    """
    return OpenAICompatibleClient(get_model_spec(model), thinking=thinking, **kwargs)
