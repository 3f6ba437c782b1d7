"""Tests for SqlHarnessStore.

Covers:
- Run lifecycle: create, lookup, list, duplicate names, delete cascade
- Message log: ordering, position uniqueness, aggregates, latest
- Advisories: broadcast and targeted delivery tracking
"""

from __future__ import annotations

import pytest

from agent_harness.exceptions import (
    DuplicateRunError,
    PositionConflictError,
    RunNotFoundError,
)
from agent_harness.models.content import (
    Message,
    TextContent,
    ToolResultContent,
    ToolUseContent,
)


def _user(text: str = "go") -> Message:
    return Message(role="user", content=[TextContent(text=text)])


def _agent(text: str = "ok") -> Message:
    return Message(role="agent", content=[TextContent(text=text)])


class TestRuns:
    def test_create_and_get(self, store):
        run = store.create_run("alpha", problem_id="p1", model="gpt-4.1", agent_count=3, profile="dev")
        fetched = store.get_run("alpha")
        assert fetched.id == run.id
        assert fetched.agent_indices == [0, 1, 2]
        assert fetched.profile == "dev"
        assert store.get_run_by_id(run.id).name == "alpha"

    def test_duplicate_name_rejected(self, store):
        store.create_run("alpha", problem_id="p1", model="m")
        with pytest.raises(DuplicateRunError):
            store.create_run("alpha", problem_id="p2", model="m")

    def test_missing_run(self, store):
        assert store.find_run("nope") is None
        with pytest.raises(RunNotFoundError):
            store.get_run("nope")

    def test_list_runs_in_creation_order(self, store):
        for name in ("b", "a", "c"):
            store.create_run(name, problem_id="p", model="m")
        assert [r.name for r in store.list_runs()] == ["b", "a", "c"]

    def test_delete_cascades(self, store):
        run = store.create_run("alpha", problem_id="p1", model="m", agent_count=2)
        other = store.create_run("beta", problem_id="p1", model="m")
        store.append(run.id, 0, _user(), position=0)
        store.append(run.id, 1, _user(), position=0)
        store.append(other.id, 0, _user(), position=0, cost=1.0)
        store.send_advisory(run.id, "hint")

        store.delete_run(run.id)

        assert store.find_run("alpha") is None
        assert store.list_by_run(run.id) == []
        assert store.pending_advisories(run.id, 0) == []
        assert len(store.list_by_run(other.id)) == 1
        assert store.aggregate_cost(other.id) == 1.0


class TestMessages:
    def test_list_by_agent_ordered_by_position(self, run, store):
        store.append(run.id, 0, _user("first"), position=0)
        store.append(run.id, 0, _agent("second"), position=1)
        msgs = store.list_by_agent(run.id, 0)
        assert [m.position for m in msgs] == [0, 1]
        assert [m.role for m in msgs] == ["user", "agent"]
        assert msgs[0].content[0].text == "first"

    def test_position_conflict(self, run, store):
        store.append(run.id, 0, _user(), position=0)
        with pytest.raises(PositionConflictError) as exc_info:
            store.append(run.id, 0, _agent(), position=0)
        assert exc_info.value.position == 0
        # The failed insert left nothing behind
        assert len(store.list_by_agent(run.id, 0)) == 1

    def test_same_position_for_different_agents(self, store):
        run = store.create_run("multi", problem_id="p", model="m", agent_count=2)
        store.append(run.id, 0, _user(), position=0)
        store.append(run.id, 1, _user(), position=0)
        assert len(store.list_by_run(run.id)) == 2

    def test_aggregates_sum_across_agents(self, store):
        run = store.create_run("multi", problem_id="p", model="m", agent_count=2)
        store.append(run.id, 0, _agent(), position=0, total_tokens=100, cost=0.25)
        store.append(run.id, 1, _agent(), position=0, total_tokens=50, cost=0.5)
        store.append(run.id, 1, _user(), position=1)
        assert store.aggregate_cost(run.id) == pytest.approx(0.75)
        assert store.aggregate_tokens(run.id) == 150

    def test_aggregates_empty_run(self, run, store):
        assert store.aggregate_cost(run.id) == 0.0
        assert store.aggregate_tokens(run.id) == 0

    def test_latest(self, store):
        run = store.create_run("multi", problem_id="p", model="m", agent_count=2)
        assert store.latest(run.id) is None
        store.append(run.id, 0, _user(), position=0)
        store.append(run.id, 1, _agent("last"), position=0)
        latest = store.latest(run.id)
        assert latest.agent_index == 1
        assert latest.content[0].text == "last"

    def test_tool_blocks_survive_storage(self, run, store):
        store.append(
            run.id,
            0,
            Message(role="agent", content=[ToolUseContent(id="t1", name="fs-ls", input={"p": "/"})]),
            position=0,
        )
        store.append(
            run.id,
            0,
            Message(
                role="user",
                content=[
                    ToolResultContent(
                        tool_use_id="t1",
                        tool_use_name="fs-ls",
                        content=[{"type": "text", "text": "boom"}],
                        is_error=True,
                    )
                ],
            ),
            position=1,
        )
        agent_msg, result_msg = store.list_by_agent(run.id, 0)
        assert agent_msg.is_inner_loop_start()
        assert agent_msg.tool_uses[0].input == {"p": "/"}
        assert result_msg.tool_results[0].is_error is True


class TestAdvisories:
    def test_broadcast_delivered_once_per_agent(self, store):
        run = store.create_run("multi", problem_id="p", model="m", agent_count=2)
        advisory = store.send_advisory(run.id, "look at tests")
        assert advisory.agent_index is None

        assert [a.id for a in store.pending_advisories(run.id, 0)] == [advisory.id]
        store.mark_delivered([advisory.id], 0)
        assert store.pending_advisories(run.id, 0) == []
        assert [a.id for a in store.pending_advisories(run.id, 1)] == [advisory.id]

    def test_targeted_advisory(self, store):
        run = store.create_run("multi", problem_id="p", model="m", agent_count=2)
        store.send_advisory(run.id, "only for one", agent_index=1)
        assert store.pending_advisories(run.id, 0) == []
        assert [a.content for a in store.pending_advisories(run.id, 1)] == ["only for one"]

    def test_mark_delivered_is_idempotent(self, run, store):
        advisory = store.send_advisory(run.id, "hint")
        store.mark_delivered([advisory.id], 0)
        store.mark_delivered([advisory.id], 0)
        store.mark_delivered([], 0)
        assert store.pending_advisories(run.id, 0) == []
