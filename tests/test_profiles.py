"""Tests for profile and problem directory loading."""

from __future__ import annotations

import pytest

from agent_harness.exceptions import (
    ConfigurationError,
    ProblemNotFoundError,
    ProfileNotFoundError,
)
from agent_harness.profiles import (
    default_profile,
    list_problems,
    list_profiles,
    load_problem,
    load_system_prompt,
    problem_exists,
    profile_exists,
    profile_settings_path,
)


@pytest.fixture
def dirs(tmp_path):
    profiles = tmp_path / "profiles"
    problems = tmp_path / "problems"
    for name, prompt in (("zeta", "Z {{PROBLEM}}"), ("alpha", "A:\n{{PROBLEM}}\nAgain: {{PROBLEM}}")):
        (profiles / name).mkdir(parents=True)
        (profiles / name / "prompt.md").write_text(prompt)
    (profiles / "incomplete").mkdir()
    for pid, text in (("sum", "Add numbers."), ("sort", "Sort a list.")):
        (problems / pid).mkdir(parents=True)
        (problems / pid / "problem.md").write_text(text)
    return profiles, problems


class TestListing:
    def test_profiles_sorted_and_filtered(self, dirs):
        profiles, _ = dirs
        assert list_profiles(profiles) == ["alpha", "zeta"]

    def test_problems_sorted(self, dirs):
        _, problems = dirs
        assert list_problems(problems) == ["sort", "sum"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            list_profiles(tmp_path / "nowhere")

    def test_directory_without_valid_entries(self, tmp_path):
        (tmp_path / "empty" / "junk").mkdir(parents=True)
        with pytest.raises(ConfigurationError, match="problem.md"):
            list_problems(tmp_path / "empty")

    def test_exists(self, dirs):
        profiles, problems = dirs
        assert profile_exists(profiles, "alpha")
        assert not profile_exists(profiles, "incomplete")
        assert problem_exists(problems, "sum")
        assert not problem_exists(problems, "missing")


class TestDefaultProfile:
    def test_first_alphabetically(self, dirs):
        profiles, _ = dirs
        assert default_profile(profiles) == "alpha"

    def test_prefers_example(self, dirs):
        profiles, _ = dirs
        (profiles / "example").mkdir()
        (profiles / "example" / "prompt.md").write_text("x")
        assert default_profile(profiles) == "example"


class TestLoading:
    def test_system_prompt_replaces_every_placeholder(self, dirs):
        profiles, problems = dirs
        prompt = load_system_prompt(profiles, problems, "alpha", "sum")
        assert prompt == "A:\nAdd numbers.\nAgain: Add numbers."

    def test_missing_problem(self, dirs):
        profiles, problems = dirs
        with pytest.raises(ProblemNotFoundError):
            load_system_prompt(profiles, problems, "alpha", "missing")
        with pytest.raises(ProblemNotFoundError):
            load_problem(problems, "missing")

    def test_missing_profile(self, dirs):
        profiles, problems = dirs
        with pytest.raises(ProfileNotFoundError):
            load_system_prompt(profiles, problems, "incomplete", "sum")

    def test_settings_path(self, dirs):
        profiles, _ = dirs
        assert profile_settings_path(profiles, "alpha") == profiles / "alpha" / "settings.json"
