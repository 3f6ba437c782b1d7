"""Tests for tool-server configuration, providers, and the dispatcher."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest
from mcp import types

from agent_harness.exceptions import ToolConfigError, ToolConnectionError
from agent_harness.models.content import ToolUseContent
from agent_harness.protocols import ToolOutcome, ToolSpec
from agent_harness.toolkit import (
    LocalTool,
    LocalToolProvider,
    McpToolProvider,
    SseToolProvider,
    StdioToolProvider,
    ToolDispatcher,
    ToolProvider,
    ToolServerConfig,
    load_tool_servers,
    parse_tool_servers,
    provider_from_config,
    resolve_env_vars,
)
from agent_harness.toolkit.providers import error_text


def _use(cid: str, name: str, **args) -> ToolUseContent:
    return ToolUseContent(id=cid, name=name, input=args)


class UnreachableProvider(ToolProvider):
    """Provider whose server is down."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.closed = False

    async def connect(self) -> None:
        raise ToolConnectionError(self.name, "connection refused")

    async def close(self) -> None:
        self.closed = True

    async def list_tools(self) -> list[ToolSpec]:
        return []

    async def invoke(self, name, arguments) -> ToolOutcome:
        raise AssertionError("never connected")


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


class TestEnvVars:
    def test_substitutes_known_and_blanks_unknown(self):
        env = {"HOME": "/home/a"}
        assert resolve_env_vars("${HOME}/x:${MISSING}", env) == "/home/a/x:"

    def test_leaves_plain_text_alone(self):
        assert resolve_env_vars("$HOME {HOME}", {"HOME": "x"}) == "$HOME {HOME}"

    def test_resolved_config(self):
        cfg = ToolServerConfig(
            name="fs",
            command="${BIN}/fs",
            args=["--root", "${ROOT}"],
            env={"TOKEN": "${SECRET}"},
        )
        out = cfg.resolved({"BIN": "/usr/bin", "ROOT": "/srv", "SECRET": "s3"})
        assert out.command == "/usr/bin/fs"
        assert out.args == ["--root", "/srv"]
        assert out.env == {"TOKEN": "s3"}
        # Original untouched
        assert cfg.command == "${BIN}/fs"


class TestParseToolServers:
    def test_valid_entries(self):
        servers = parse_tool_servers({
            "mcpServers": [
                {"name": "fs", "command": "fs-server"},
                {"name": "web", "transport": "sse", "url": "http://x/sse"},
            ]
        })
        assert [s.name for s in servers] == ["fs", "web"]
        assert servers[0].transport == "stdio"

    def test_disabled_entries_dropped_before_validation(self):
        servers = parse_tool_servers({
            "mcpServers": [{"name": "off", "transport": "sse", "enabled": False}]
        })
        assert servers == []

    @pytest.mark.parametrize(
        "entry",
        [
            {"command": "x"},
            {"name": "fs"},
            {"name": "web", "transport": "sse"},
            {"name": "bad", "transport": "carrier-pigeon", "command": "x"},
        ],
    )
    def test_invalid_entries(self, entry):
        with pytest.raises(ToolConfigError):
            parse_tool_servers({"mcpServers": [entry]})

    def test_servers_must_be_a_list(self):
        with pytest.raises(ToolConfigError):
            parse_tool_servers({"mcpServers": {"fs": {}}})

    def test_no_servers(self):
        assert parse_tool_servers({}) == []


class TestLoadToolServers:
    def test_missing_file(self, tmp_path):
        assert load_tool_servers(tmp_path / "settings.json") == []

    def test_loads_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"mcpServers": [{"name": "fs", "command": "fs-server"}]}))
        assert [s.name for s in load_tool_servers(path)] == ["fs"]

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        with pytest.raises(ToolConfigError):
            load_tool_servers(path)

    def test_non_object(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[]")
        with pytest.raises(ToolConfigError):
            load_tool_servers(path)


class TestProviderFromConfig:
    def test_stdio(self, monkeypatch):
        monkeypatch.setenv("FS_ROOT", "/data")
        cfg = ToolServerConfig(name="fs", command="fs-server", args=["${FS_ROOT}"])
        provider = provider_from_config(cfg, tool_timeout=5.0)
        assert isinstance(provider, StdioToolProvider)
        assert provider.name == "fs"
        assert provider.args == ["/data"]

    def test_sse_with_token(self, monkeypatch):
        monkeypatch.setenv("WEB_TOKEN", "tok")
        cfg = ToolServerConfig(name="web", transport="sse", url="http://h/sse", token="${WEB_TOKEN}")
        provider = provider_from_config(cfg)
        assert isinstance(provider, SseToolProvider)
        assert provider.url == "http://h/sse"
        assert provider.token == "tok"

    def test_blank_token_means_none(self, monkeypatch):
        monkeypatch.delenv("NO_SUCH_TOKEN", raising=False)
        cfg = ToolServerConfig(name="web", transport="sse", url="http://h", token="${NO_SUCH_TOKEN}")
        assert provider_from_config(cfg).token is None

    def test_invalid_config_rejected(self):
        with pytest.raises(ToolConfigError):
            provider_from_config(ToolServerConfig(name="fs"))


# ------------------------------------------------------------------
# Providers
# ------------------------------------------------------------------


class TestLocalToolProvider:
    async def test_tools_are_namespaced(self, math_provider):
        specs = await math_provider.list_tools()
        assert [s.name for s in specs] == ["math-add"]
        assert specs[0].description == "Add two numbers"

    async def test_constructor_tools(self):
        provider = LocalToolProvider("p", [LocalTool("echo", lambda text: text)])
        outcome = await provider.invoke("p-echo", {"text": "hi"})
        assert outcome == ToolOutcome(content=[{"type": "text", "text": "hi"}])

    async def test_async_handler_and_content_list(self):
        provider = LocalToolProvider("p")

        async def items():
            return [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]

        provider.add("items", items)
        outcome = await provider.invoke("p-items", {})
        assert [c["text"] for c in outcome.content] == ["a", "b"]

    async def test_outcome_passed_through(self):
        provider = LocalToolProvider("p")
        provider.add("fail", lambda: ToolOutcome.error("nope"))
        outcome = await provider.invoke("p-fail", {})
        assert outcome.is_error
        assert outcome.content == [{"type": "text", "text": "nope"}]

    async def test_handler_exception_is_error_outcome(self):
        provider = LocalToolProvider("p")
        provider.add("div", lambda a, b: a / b)
        outcome = await provider.invoke("p-div", {"a": 1, "b": 0})
        assert outcome.is_error
        assert outcome.content[0]["text"].startswith("Error [tool_execution_error]: ")
        assert "(cause: division by zero)" in outcome.content[0]["text"]

    async def test_unknown_tool(self, math_provider):
        outcome = await math_provider.invoke("math-sub", {})
        assert outcome.is_error
        assert "tool_not_found" in outcome.content[0]["text"]


class FakeSession:
    def __init__(self, result: types.CallToolResult) -> None:
        self.result = result
        self.calls: list[tuple] = []

    async def call_tool(self, name, arguments, read_timeout_seconds=None):
        self.calls.append((name, arguments, read_timeout_seconds))
        return self.result


class BrokenTransportProvider(McpToolProvider):
    async def _open_streams(self, stack):
        raise OSError("no such server")


class TestMcpToolProvider:
    async def test_connect_failure_wrapped(self):
        provider = BrokenTransportProvider("broken", connect_timeout=1.0)
        with pytest.raises(ToolConnectionError) as exc_info:
            await provider.connect()
        assert exc_info.value.provider_name == "broken"
        assert "no such server" in str(exc_info.value)
        await provider.close()

    async def test_invoke_maps_to_raw_name(self):
        provider = BrokenTransportProvider("fs", tool_timeout=7.0)
        session = FakeSession(
            types.CallToolResult(content=[types.TextContent(type="text", text="listing")], isError=False)
        )
        provider._session = session
        provider._raw_names["fs-ls"] = "ls"

        outcome = await provider.invoke("fs-ls", {"path": "/"})

        assert not outcome.is_error
        assert outcome.content[0]["type"] == "text"
        assert outcome.content[0]["text"] == "listing"
        name, arguments, timeout = session.calls[0]
        assert (name, arguments) == ("ls", {"path": "/"})
        assert timeout.total_seconds() == 7.0

    async def test_tool_error_flag_kept(self):
        provider = BrokenTransportProvider("fs")
        provider._session = FakeSession(
            types.CallToolResult(content=[types.TextContent(type="text", text="denied")], isError=True)
        )
        provider._raw_names["fs-rm"] = "rm"
        outcome = await provider.invoke("fs-rm", {})
        assert outcome.is_error

    async def test_snake_case_result_fields(self):
        provider = BrokenTransportProvider("fs")
        provider._session = FakeSession(
            SimpleNamespace(content=[types.TextContent(type="text", text="denied")], is_error=True)
        )
        provider._raw_names["fs-rm"] = "rm"
        outcome = await provider.invoke("fs-rm", {})
        assert outcome.is_error
        assert outcome.content[0]["text"] == "denied"

    async def test_registered_tools_namespaced(self):
        provider = BrokenTransportProvider("fs")
        schema = {"type": "object", "properties": {"path": {"type": "string"}}}
        provider._register([
            types.Tool(name="ls", description="List", inputSchema=schema),
            SimpleNamespace(name="rm", description=None, input_schema=schema),
            SimpleNamespace(name="pwd", description="Where", input_schema=None),
        ])

        specs = await provider.list_tools()

        assert [s.name for s in specs] == ["fs-ls", "fs-rm", "fs-pwd"]
        assert specs[0].input_schema == schema
        assert specs[1].input_schema == schema
        assert specs[1].description == ""
        assert specs[2].input_schema == {"type": "object"}
        assert provider._raw_names["fs-rm"] == "rm"

    async def test_invoke_before_connect(self):
        with pytest.raises(ToolConnectionError):
            await BrokenTransportProvider("fs").invoke("fs-ls", {})


def test_error_text_format():
    assert error_text("tool_not_found", "gone") == "Error [tool_not_found]: gone"
    assert error_text("x", "y", ValueError("z")) == "Error [x]: y (cause: z)"


# ------------------------------------------------------------------
# Dispatcher
# ------------------------------------------------------------------


class TestDispatcher:
    async def test_failed_provider_skipped(self, math_provider):
        down = UnreachableProvider("web")
        async with ToolDispatcher([down, math_provider]) as dispatcher:
            assert [s.name for s in dispatcher.tool_specs()] == ["math-add"]
            assert dispatcher.providers == [math_provider]

            results = await dispatcher.dispatch([
                _use("1", "math-add", a=1, b=2),
                _use("2", "web-fetch", url="x"),
            ])

        assert results[0].content == [{"type": "text", "text": "3"}]
        assert not results[0].is_error
        assert results[1].is_error
        assert results[1].tool_use_id == "2"
        assert "No tool provider found to execute tool web-fetch" in results[1].content[0]["text"]

    async def test_duplicate_names_first_provider_wins(self):
        first = LocalToolProvider("p")
        first.add("echo", lambda: "first")
        second = LocalToolProvider("p")
        second.add("echo", lambda: "second")

        async with ToolDispatcher([first, second]) as dispatcher:
            assert [s.name for s in dispatcher.tool_specs()] == ["p-echo"]
            assert dispatcher.provider_for("p-echo") is first
            (result,) = await dispatcher.dispatch([_use("1", "p-echo")])

        assert result.content[0]["text"] == "first"

    async def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        async def work(n: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return n

        provider = LocalToolProvider("w")
        provider.add("work", work)
        async with ToolDispatcher([provider], concurrency=2) as dispatcher:
            results = await dispatcher.dispatch([_use(str(i), "w-work", n=i) for i in range(6)])

        assert peak == 2
        assert [r.content[0]["text"] for r in results] == [str(i) for i in range(6)]

    async def test_invoke_exception_becomes_error_result(self):
        class Exploding(LocalToolProvider):
            async def invoke(self, name, arguments):
                raise RuntimeError("pipe closed")

        provider = Exploding("x")
        provider.add("t", lambda: None)
        async with ToolDispatcher([provider]) as dispatcher:
            (result,) = await dispatcher.dispatch([_use("1", "x-t")])

        assert result.is_error
        assert result.content[0]["text"] == (
            "Error [tool_execution_error]: Error executing tool x-t (cause: pipe closed)"
        )

    async def test_empty_dispatch(self):
        async with ToolDispatcher() as dispatcher:
            assert await dispatcher.dispatch([]) == []

    async def test_close_releases_connected_only(self, math_provider):
        down = UnreachableProvider("web")
        dispatcher = ToolDispatcher([down, math_provider])
        await dispatcher.connect()
        await dispatcher.close()
        assert not down.closed
        assert dispatcher.tool_specs() == []
