"""Profile and problem directories.

A profile is a directory holding ``prompt.md`` (the system prompt, with a
``{{PROBLEM}}`` placeholder) and optionally ``settings.json`` (tool
servers). A problem is a directory holding ``problem.md``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from agent_harness.exceptions import (
    ConfigurationError,
    ProblemNotFoundError,
    ProfileNotFoundError,
)

logger = logging.getLogger(__name__)

PROMPT_FILE = "prompt.md"
SETTINGS_FILE = "settings.json"
PROBLEM_FILE = "problem.md"
PROBLEM_PLACEHOLDER = "{{PROBLEM}}"
DEFAULT_PROFILE = "example"


def _list_entries(root: str | Path, marker: str, kind: str) -> list[str]:
    base = Path(root)
    if not base.is_dir():
        raise ConfigurationError(f"{kind.capitalize()} directory not found: {base}")
    names = sorted(p.name for p in base.iterdir() if (p / marker).is_file())
    if not names:
        raise ConfigurationError(
            f"No valid {kind} found in {base}. Each {kind[:-1]} directory "
            f"must contain a {marker} file."
        )
    return names


def list_profiles(profiles_dir: str | Path) -> list[str]:
    """Sorted names of valid profiles. Raises ConfigurationError if none."""
    return _list_entries(profiles_dir, PROMPT_FILE, "profiles")


def profile_exists(profiles_dir: str | Path, profile: str) -> bool:
    return (Path(profiles_dir) / profile / PROMPT_FILE).is_file()


def default_profile(profiles_dir: str | Path) -> str:
    """``example`` if present, otherwise the first profile alphabetically."""
    profiles = list_profiles(profiles_dir)
    return DEFAULT_PROFILE if DEFAULT_PROFILE in profiles else profiles[0]


def profile_settings_path(profiles_dir: str | Path, profile: str) -> Path:
    return Path(profiles_dir) / profile / SETTINGS_FILE


def list_problems(problems_dir: str | Path) -> list[str]:
    """Sorted ids of valid problems. Raises ConfigurationError if none."""
    return _list_entries(problems_dir, PROBLEM_FILE, "problems")


def problem_exists(problems_dir: str | Path, problem_id: str) -> bool:
    return (Path(problems_dir) / problem_id / PROBLEM_FILE).is_file()


def load_problem(problems_dir: str | Path, problem_id: str) -> str:
    """Text of a problem's ``problem.md``. Raises ProblemNotFoundError."""
    if not problem_exists(problems_dir, problem_id):
        raise ProblemNotFoundError(problem_id)
    return (Path(problems_dir) / problem_id / PROBLEM_FILE).read_text(encoding="utf-8")


def load_prompt(profiles_dir: str | Path, profile: str) -> str:
    """Text of a profile's ``prompt.md``. Raises ProfileNotFoundError."""
    if not profile_exists(profiles_dir, profile):
        raise ProfileNotFoundError(profile)
    return (Path(profiles_dir) / profile / PROMPT_FILE).read_text(encoding="utf-8")


def load_system_prompt(
    profiles_dir: str | Path,
    problems_dir: str | Path,
    profile: str,
    problem_id: str,
) -> str:
    """The profile prompt with ``{{PROBLEM}}`` replaced by the problem text."""
    prompt = load_prompt(profiles_dir, profile)
    problem = load_problem(problems_dir, problem_id)
    return prompt.replace(PROBLEM_PLACEHOLDER, problem)
