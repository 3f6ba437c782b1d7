"""LLM client infrastructure for the harness.

Provides an async OpenAI-compatible HTTP client, the model registry,
token estimation, and the LLM error hierarchy.
"""

from agent_harness.llm.client import (
    OpenAICompatibleClient,
    create_model_client,
    parse_openai_response,
    render_openai_messages,
)
from agent_harness.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMServerError,
)
from agent_harness.llm.registry import (
    DEFAULT_MODEL,
    MODELS,
    PROVIDERS,
    ModelSpec,
    ProviderEndpoint,
    get_model_spec,
    is_known_model,
)

__all__ = [
    "OpenAICompatibleClient",
    "create_model_client",
    "parse_openai_response",
    "render_openai_messages",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMServerError",
    "LLMAuthError",
    "LLMResponseError",
    "DEFAULT_MODEL",
    "MODELS",
    "PROVIDERS",
    "ModelSpec",
    "ProviderEndpoint",
    "get_model_spec",
    "is_known_model",
]
