"""Harness exception hierarchy.

All harness-specific exceptions inherit from HarnessError.
"""


class HarnessError(Exception):
    """Base exception for all harness errors."""


class ConfigurationError(HarnessError):
    """Raised when harness, profile, or provider configuration is invalid."""


class ToolConfigError(ConfigurationError):
    """Raised when a tool server entry is malformed.

    Raised before any connection attempt is made.
    """

    def __init__(self, message: str, server_name: str | None = None) -> None:
        self.server_name = server_name
        super().__init__(message)


class ProfileNotFoundError(ConfigurationError):
    """Raised when a profile directory or its prompt.md is missing."""

    def __init__(self, profile: str) -> None:
        self.profile = profile
        super().__init__(f"Profile not found: {profile}")


class ProblemNotFoundError(ConfigurationError):
    """Raised when a problem directory or its problem.md is missing."""

    def __init__(self, problem_id: str) -> None:
        self.problem_id = problem_id
        super().__init__(f"Problem not found: {problem_id}")


class UnknownModelError(ConfigurationError):
    """Raised when a run names a model that is not in the registry."""

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"Unknown model: {model}")


class RunNotFoundError(HarnessError):
    """Raised when a run lookup by name or id fails."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Run not found: {name}")


class DuplicateRunError(HarnessError):
    """Raised when creating a run whose name is already taken."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Run already exists: {name}")


class InvalidAgentIndexError(HarnessError):
    """Raised when an agent index is outside ``0..agent_count-1``."""

    def __init__(self, agent_index: int, agent_count: int) -> None:
        self.agent_index = agent_index
        self.agent_count = agent_count
        super().__init__(
            f"Agent index {agent_index} out of range "
            f"(run has {agent_count} agent(s))"
        )


class PersistenceError(HarnessError):
    """Raised when the message store fails to persist or read data."""


class PositionConflictError(PersistenceError):
    """Raised when a message position is already taken for an agent."""

    def __init__(self, run_id: int, agent_index: int, position: int) -> None:
        self.run_id = run_id
        self.agent_index = agent_index
        self.position = position
        super().__init__(
            f"Position {position} already exists for run {run_id}, "
            f"agent {agent_index}"
        )


class ContextOverflowError(HarnessError):
    """Raised when the conversation cannot be pruned to fit the context window."""

    def __init__(self, token_count: int, max_tokens: int) -> None:
        self.token_count = token_count
        self.max_tokens = max_tokens
        super().__init__(
            f"Context overflow: {token_count} tokens (max: {max_tokens}) "
            f"and no pruning boundary left"
        )


class ToolProviderError(HarnessError):
    """Base for tool provider failures raised outside tool execution."""


class ToolConnectionError(ToolProviderError):
    """Raised when a tool provider fails to connect or list its tools."""

    def __init__(self, provider_name: str, reason: str) -> None:
        self.provider_name = provider_name
        self.reason = reason
        super().__init__(
            f"Failed to connect to tool server '{provider_name}': {reason}"
        )
