"""Declarative tool-server configuration.

A profile's ``settings.json`` lists tool servers under ``mcpServers``::

    {
      "mcpServers": [
        {"name": "fs", "transport": "stdio", "command": "fs-server",
         "args": ["--root", "${WORKDIR}"]},
        {"name": "web", "transport": "sse", "url": "${WEB_URL}/sse",
         "token": "${WEB_TOKEN}", "enabled": false}
      ]
    }

Disabled entries are dropped; every remaining entry is validated before
any connection is attempted.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from agent_harness.exceptions import ToolConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def resolve_env_vars(value: str, environ: Mapping[str, str] | None = None) -> str:
    """Replace ``${VAR}`` references. Unset variables become empty strings."""
    env = os.environ if environ is None else environ
    return _ENV_VAR_RE.sub(lambda m: env.get(m.group(1), ""), value)


class ToolServerConfig(BaseModel):
    """One tool server entry.

    Attributes:
        name: Provider identifier, used to namespace its tools.
        transport: ``stdio`` (spawn a subprocess) or ``sse`` (connect to a URL).
        command: Executable to spawn (stdio).
        args: Command arguments (stdio).
        url: Server endpoint (sse).
        env: Extra environment variables for the subprocess.
        token: Bearer token sent to sse servers.
        enabled: Disabled entries are ignored.
    """

    name: str = ""
    transport: Literal["stdio", "sse"] = "stdio"
    command: Optional[str] = None
    args: list[str] = Field(default_factory=list)
    url: Optional[str] = None
    env: dict[str, str] = Field(default_factory=dict)
    token: Optional[str] = None
    enabled: bool = True

    def validate_transport(self) -> None:
        """Check the fields the chosen transport requires.

        Raises:
            ToolConfigError: On a missing name, command, or url.
        """
        if not self.name:
            raise ToolConfigError("Tool server config missing 'name' field")
        if self.transport == "stdio" and not self.command:
            raise ToolConfigError(
                f"Tool server '{self.name}' with stdio transport missing 'command' field",
                server_name=self.name,
            )
        if self.transport == "sse" and not self.url:
            raise ToolConfigError(
                f"Tool server '{self.name}' with sse transport missing 'url' field",
                server_name=self.name,
            )

    def resolved(self, environ: Mapping[str, str] | None = None) -> ToolServerConfig:
        """Copy with ``${VAR}`` substituted in command, url, args, env and token."""

        def sub(value: str | None) -> str | None:
            return resolve_env_vars(value, environ) if value is not None else None

        return self.model_copy(
            update={
                "command": sub(self.command),
                "url": sub(self.url),
                "args": [resolve_env_vars(a, environ) for a in self.args],
                "env": {k: resolve_env_vars(v, environ) for k, v in self.env.items()},
                "token": sub(self.token),
            }
        )


def parse_tool_servers(data: Mapping) -> list[ToolServerConfig]:
    """Parse and validate the ``mcpServers`` list of a settings mapping.

    Raises:
        ToolConfigError: If an entry is malformed.
    """
    raw_servers = data.get("mcpServers") or []
    if not isinstance(raw_servers, list):
        raise ToolConfigError("'mcpServers' must be a list")

    servers: list[ToolServerConfig] = []
    for raw in raw_servers:
        try:
            server = ToolServerConfig.model_validate(raw)
        except ValidationError as exc:
            name = raw.get("name") if isinstance(raw, dict) else None
            raise ToolConfigError(f"Invalid tool server config: {exc}", server_name=name) from exc
        if not server.enabled:
            logger.debug("Skipping disabled tool server %r", server.name)
            continue
        server.validate_transport()
        servers.append(server)
    return servers


def load_tool_servers(settings_path: str | Path) -> list[ToolServerConfig]:
    """Load tool servers from a profile ``settings.json``.

    A missing file means no tool servers.

    Raises:
        ToolConfigError: If the file is unreadable or an entry is malformed.
    """
    path = Path(settings_path)
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ToolConfigError(f"Failed to load tool config from {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ToolConfigError(f"Tool config {path} must be a JSON object")
    return parse_tool_servers(data)
