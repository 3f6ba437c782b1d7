"""CLI tests for the harness -- exercises every command via Click's CliRunner.

Each test works on a file-backed database in a temporary directory, since
every CLI invocation opens its own connection.
"""

from __future__ import annotations

import pytest
import tenacity
from click.testing import CliRunner

from agent_harness.cli import cli
from agent_harness.harness import Harness
from agent_harness.models.config import HarnessConfig
from tests.conftest import FakeModelClient, tool_reply


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def env(tmp_path):
    """Database, profile and problem directories for one CLI session."""
    profiles = tmp_path / "profiles"
    problems = tmp_path / "problems"
    (profiles / "example").mkdir(parents=True)
    (profiles / "example" / "prompt.md").write_text("Solve: {{PROBLEM}}")
    (problems / "sum").mkdir(parents=True)
    (problems / "sum" / "problem.md").write_text("Add numbers.")
    return [
        "--db", str(tmp_path / "harness.db"),
        "--profiles-dir", str(profiles),
        "--problems-dir", str(problems),
    ]


def _invoke(runner, env, *args, model_factory=None, **kwargs):
    obj = {}
    if model_factory is not None:
        obj["coordinator_kwargs"] = {
            "model_factory": model_factory,
            "retry_wait": tenacity.wait_none(),
        }
    return runner.invoke(cli, [*env, *args], obj=obj, **kwargs)


def _open(env) -> Harness:
    return Harness.open(config=HarnessConfig(db_path=env[1], profiles_dir=env[3], problems_dir=env[5]))


# ---------------------------------------------------------------------------
# create / list / clean / advise
# ---------------------------------------------------------------------------

class TestCreate:
    def test_create(self, runner, env):
        result = _invoke(runner, env, "create", "r1", "--problem", "sum", "--model", "gpt-4.1", "--agents", "2")
        assert result.exit_code == 0, result.output
        assert "Created run r1" in result.output
        with _open(env) as h:
            run = h.get_run("r1")
        assert run.agent_count == 2
        assert run.profile == "example"

    def test_unknown_problem(self, runner, env):
        result = _invoke(runner, env, "create", "r1", "--problem", "nope")
        assert result.exit_code == 1
        assert "Problem not found: nope" in result.output

    def test_duplicate(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum")
        result = _invoke(runner, env, "create", "r1", "--problem", "sum")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_zero_agents_rejected(self, runner, env):
        result = _invoke(runner, env, "create", "r1", "--problem", "sum", "--agents", "0")
        assert result.exit_code == 2


class TestList:
    def test_empty(self, runner, env):
        result = _invoke(runner, env, "list")
        assert result.exit_code == 0
        assert "No runs." in result.output

    def test_shows_runs(self, runner, env):
        _invoke(runner, env, "create", "alpha", "--problem", "sum", "--model", "gpt-4.1")
        result = _invoke(runner, env, "list")
        assert result.exit_code == 0
        assert "alpha" in result.output
        assert "gpt-4.1" in result.output
        assert "$0.0000" in result.output


class TestClean:
    def test_clean_with_yes(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum")
        result = _invoke(runner, env, "clean", "r1", "--yes")
        assert result.exit_code == 0
        assert "deleted" in result.output
        with _open(env) as h:
            assert h.find_run("r1") is None

    def test_clean_declined(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum")
        result = _invoke(runner, env, "clean", "r1", input="n\n")
        assert "Aborted." in result.output
        with _open(env) as h:
            assert h.find_run("r1") is not None

    def test_clean_missing(self, runner, env):
        result = _invoke(runner, env, "clean", "ghost", "--yes")
        assert result.exit_code == 1
        assert "Run not found: ghost" in result.output


class TestAdvise:
    def test_broadcast(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum", "--agents", "2")
        result = _invoke(runner, env, "advise", "r1", "look at the tests")
        assert result.exit_code == 0
        assert "all agents" in result.output

    def test_bad_agent(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum")
        result = _invoke(runner, env, "advise", "r1", "hint", "--agent", "3")
        assert result.exit_code == 1
        assert "out of range" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------

class TestRun:
    def test_single_ticks(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum", "--model", "gpt-4.1")
        scripted = [tool_reply(("c1", "fs-ls", {"path": "/"}))]

        def factory(run, thinking):
            return FakeModelClient([scripted.pop(0)] if scripted else [], cost_per_call=0.1)

        result = _invoke(runner, env, "run", "r1", "--tick", "2", model_factory=factory)

        assert result.exit_code == 0, result.output
        assert "tool_use fs-ls" in result.output
        assert "tool_result fs-ls error" in result.output
        assert "tick 2/2" in result.output
        with _open(env) as h:
            # synth, tool call, results, then the next agent reply
            assert [m.role for m in h.messages("r1", agent_index=0)] == ["user", "agent", "user", "agent"]

    def test_continuous_until_cost(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum", "--model", "gpt-4.1")

        def factory(run, thinking):
            return FakeModelClient(cost_per_call=1.0)

        result = _invoke(runner, env, "run", "r1", "--max-cost", "1.5", model_factory=factory)

        assert result.exit_code == 0, result.output
        assert "Cost limit reached" in result.output
        assert "2 tick(s)" in result.output

    def test_thinking_flag(self, runner, env):
        _invoke(runner, env, "create", "r1", "--problem", "sum", "--model", "gpt-4.1")
        seen = []

        def factory(run, thinking):
            seen.append(thinking)
            return FakeModelClient()

        _invoke(runner, env, "run", "r1", "--tick", "1", "--no-thinking", model_factory=factory)
        assert seen == [False]

    def test_missing_run(self, runner, env):
        result = _invoke(runner, env, "run", "ghost", "--tick", "1", model_factory=lambda r, t: FakeModelClient())
        assert result.exit_code == 1
        assert "Run not found: ghost" in result.output
