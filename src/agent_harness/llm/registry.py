"""Model registry: supported model names, endpoints, windows, and prices.

Every back-end is reached through its OpenAI-compatible chat completions
endpoint, so a registry entry is all it takes to support a model.
Prices are list prices in USD per million tokens.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from agent_harness.exceptions import UnknownModelError


@dataclass(frozen=True)
class ProviderEndpoint:
    """Where a provider lives and which environment variable holds its key.

    ``base_url`` may be overridden with ``<PROVIDER>_BASE_URL``.
    """

    name: str
    base_url: str
    api_key_env: str

    def resolve_base_url(self) -> str:
        return os.environ.get(f"{self.name.upper()}_BASE_URL", self.base_url).rstrip("/")


@dataclass(frozen=True)
class ModelSpec:
    """Static description of one model.

    Attributes:
        name: Harness-facing model name (what a run stores).
        provider: Key into PROVIDERS.
        api_model: Model id sent on the wire.
        context_window: Maximum prompt size, in tokens.
        input_price: USD per million uncached input tokens.
        cached_price: USD per million cached input tokens.
        output_price: USD per million output tokens.
        extra: Payload fields always sent with requests.
        thinking_params: Payload fields sent when extended thinking is on.
    """

    name: str
    provider: str
    api_model: str
    context_window: int
    input_price: float
    cached_price: float
    output_price: float
    extra: dict = field(default_factory=dict)
    thinking_params: dict = field(default_factory=dict)

    @property
    def endpoint(self) -> ProviderEndpoint:
        return PROVIDERS[self.provider]


PROVIDERS: dict[str, ProviderEndpoint] = {
    p.name: p
    for p in (
        ProviderEndpoint("anthropic", "https://api.anthropic.com/v1", "ANTHROPIC_API_KEY"),
        ProviderEndpoint("openai", "https://api.openai.com/v1", "OPENAI_API_KEY"),
        ProviderEndpoint(
            "gemini",
            "https://generativelanguage.googleapis.com/v1beta/openai",
            "GEMINI_API_KEY",
        ),
        ProviderEndpoint("mistral", "https://api.mistral.ai/v1", "MISTRAL_API_KEY"),
        ProviderEndpoint("moonshotai", "https://api.moonshot.ai/v1", "MOONSHOT_API_KEY"),
        ProviderEndpoint("deepseek", "https://api.deepseek.com/v1", "DEEPSEEK_API_KEY"),
        ProviderEndpoint("redpill", "https://api.redpill.ai/v1", "REDPILL_API_KEY"),
    )
}

_CLAUDE_EXTRA = {"max_tokens": 16384}
_CLAUDE_THINKING = {"thinking": {"type": "enabled", "budget_tokens": 8192}}
_EFFORT_HIGH = {"reasoning_effort": "high"}

MODELS: dict[str, ModelSpec] = {
    m.name: m
    for m in (
        ModelSpec("claude-opus-4-5", "anthropic", "claude-opus-4-5", 200_000,
                  5.00, 0.50, 25.00, _CLAUDE_EXTRA, _CLAUDE_THINKING),
        ModelSpec("claude-sonnet-4-5", "anthropic", "claude-sonnet-4-5", 200_000,
                  3.00, 0.30, 15.00, _CLAUDE_EXTRA, _CLAUDE_THINKING),
        ModelSpec("claude-haiku-4-5", "anthropic", "claude-haiku-4-5", 200_000,
                  1.00, 0.10, 5.00, _CLAUDE_EXTRA, _CLAUDE_THINKING),
        ModelSpec("gemini-3-pro-preview", "gemini", "gemini-3-pro-preview", 1_048_576,
                  2.00, 0.20, 12.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gemini-2.5-pro", "gemini", "gemini-2.5-pro", 1_048_576,
                  1.25, 0.125, 10.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gemini-2.5-flash", "gemini", "gemini-2.5-flash", 1_048_576,
                  0.30, 0.03, 2.50, thinking_params=_EFFORT_HIGH),
        ModelSpec("gemini-2.5-flash-lite", "gemini", "gemini-2.5-flash-lite", 1_048_576,
                  0.10, 0.01, 0.40),
        ModelSpec("gpt-5.2-pro", "openai", "gpt-5.2-pro", 400_000,
                  21.00, 21.00, 168.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-5.2", "openai", "gpt-5.2", 400_000,
                  1.75, 0.175, 14.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-5.1", "openai", "gpt-5.1", 400_000,
                  1.25, 0.125, 10.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-5.1-codex", "openai", "gpt-5.1-codex", 400_000,
                  1.25, 0.125, 10.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-5", "openai", "gpt-5", 400_000,
                  1.25, 0.125, 10.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-5-codex", "openai", "gpt-5-codex", 400_000,
                  1.25, 0.125, 10.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-5-mini", "openai", "gpt-5-mini", 400_000,
                  0.25, 0.025, 2.00, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-5-nano", "openai", "gpt-5-nano", 400_000,
                  0.05, 0.005, 0.40, thinking_params=_EFFORT_HIGH),
        ModelSpec("gpt-4.1", "openai", "gpt-4.1", 1_047_576,
                  2.00, 0.50, 8.00),
        ModelSpec("devstral-medium-latest", "mistral", "devstral-medium-latest", 128_000,
                  0.40, 0.04, 2.00),
        ModelSpec("mistral-large-latest", "mistral", "mistral-large-latest", 128_000,
                  2.00, 0.20, 6.00),
        ModelSpec("mistral-small-latest", "mistral", "mistral-small-latest", 128_000,
                  0.20, 0.02, 0.60),
        ModelSpec("codestral-latest", "mistral", "codestral-latest", 256_000,
                  0.30, 0.03, 0.90),
        ModelSpec("kimi-k2-thinking", "moonshotai", "kimi-k2-thinking", 262_144,
                  0.60, 0.15, 2.50),
        ModelSpec("deepseek-chat", "deepseek", "deepseek-chat", 64_000,
                  0.27, 0.07, 1.10),
        ModelSpec("deepseek-reasoner", "deepseek", "deepseek-reasoner", 64_000,
                  0.55, 0.14, 2.19),
        ModelSpec("kimi-k2.5", "redpill", "moonshotai/kimi-k2.5", 262_000,
                  0.60, 0.06, 3.00),
        ModelSpec("glm-4.7", "redpill", "zhipuai/glm-4", 128_000,
                  0.85, 0.085, 3.30),
        ModelSpec("llama-3.3-70b-instruct", "redpill", "meta-llama/llama-3.3-70b-instruct", 128_000,
                  2.00, 0.20, 2.00),
        ModelSpec("qwen-2.5-7b-instruct", "redpill", "phala/qwen-2.5-7b-instruct", 32_000,
                  0.04, 0.004, 0.10),
    )
}

DEFAULT_MODEL = "claude-sonnet-4-5"


def get_model_spec(model: str) -> ModelSpec:
    """Look up a model. Raises UnknownModelError if it is not registered."""
    try:
        return MODELS[model]
    except KeyError:
        raise UnknownModelError(model) from None


def is_known_model(model: str) -> bool:
    return model in MODELS
