"""Shared fixtures for codeloop tests.

File handling in tests:
- Use tmp_path for any directory or file creation so tests are isolated and cleaned up.
- Use codeloop.io_utils read_text/write_text for consistent UTF-8 I/O.
- Every HTTP boundary is either faked here or served by httpx.MockTransport.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Callable

import pytest

from codeloop.commands.model import McpCommand
from codeloop.io_utils import write_text
from codeloop.llm.base import LLMResult
from codeloop.tasks.model import Architecture, Task


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a minimal git repo for testing."""
    subprocess.run(["git", "init"], cwd=tmp_path, capture_output=True, check=True)
    subprocess.run(
        ["git", "config", "user.name", "Test"], cwd=tmp_path, capture_output=True
    )
    subprocess.run(
        ["git", "config", "user.email", "test@test"], cwd=tmp_path, capture_output=True
    )
    write_text(tmp_path / "README.md", "# Test")
    subprocess.run(["git", "add", "README.md"], cwd=tmp_path, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial"], cwd=tmp_path, capture_output=True
    )
    return tmp_path


# ── Factories ────────────────────────────────────────────────────────


def _make_task(
    number: int = 1,
    name: str = "",
    description: str = "Do the thing",
    story_points: int = 3,
    priority: int = 1,
    layers: tuple[str, ...] = (),
) -> Task:
    return Task(
        number=number,
        name=name or f"Task {number}",
        description=description,
        architecture=Architecture(layers=layers),
        priority=priority,
        story_points=story_points,
    )


@pytest.fixture
def make_task():
    """Factory fixture that creates Task instances."""
    return _make_task


@pytest.fixture
def player_source() -> str:
    return (
        "using UnityEngine;\n"
        "\n"
        "public class Player : MonoBehaviour\n"
        "{\n"
        "    public int Score() { return 1 + 1; }\n"
        "\n"
        "    void Update()\n"
        "    {\n"
        "        Move();\n"
        "    }\n"
        "}\n"
    )


@pytest.fixture
def project_dir(tmp_path: Path, player_source: str) -> Path:
    """A tiny brace-language project with one class."""
    root = tmp_path / "project"
    (root / "Assets" / "Scripts").mkdir(parents=True)
    write_text(root / "Assets" / "Scripts" / "Player.cs", player_source)
    return root


# ── Fakes ────────────────────────────────────────────────────────────


class FakeProtocol:
    """Scripted stand-in for ProtocolClient.

    ``logs`` are returned by successive ``get-log`` calls; once exhausted,
    ``default_log`` is returned forever.
    """

    def __init__(self, logs: list[str] | None = None, default_log: str = "") -> None:
        self.logs = list(logs or [])
        self.default_log = default_log
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def send(self, action: str, parameters: dict[str, Any] | None = None, *, check_errors: bool = True) -> str:
        self.calls.append((action, dict(parameters or {})))
        if action == "get-log":
            return self.logs.pop(0) if self.logs else self.default_log
        return f"{action}: ok"

    def send_batch(self, commands: list[McpCommand]) -> str:
        return "\n".join(self.send(c.action, c.parameters) for c in commands)

    def actions(self) -> list[str]:
        return [action for action, _ in self.calls]


class FakeVCS:
    def __init__(self) -> None:
        self.commits: list[str] = []
        self.resets = 0

    def commit_and_push(self, message: str) -> bool:
        self.commits.append(message)
        return True

    def reset_hard(self) -> bool:
        self.resets += 1
        return True


Reply = str | Callable[[str, str], str]


class FakeLLM:
    """Returns queued replies (strings or callables of ``(system, user)``)."""

    name = "fake"

    def __init__(self, replies: list[Reply] | None = None, default: Reply = "") -> None:
        self.replies = list(replies or [])
        self.default = default
        self.prompts: list[tuple[str, str]] = []

    def complete(self, system_prompt: str, user_prompt: str) -> LLMResult:
        self.prompts.append((system_prompt, user_prompt))
        reply = self.replies.pop(0) if self.replies else self.default
        text = reply(system_prompt, user_prompt) if callable(reply) else reply
        return LLMResult(text=text, input_tokens=10, output_tokens=5)

    def close(self) -> None:
        pass


@pytest.fixture
def fake_protocol():
    return FakeProtocol


@pytest.fixture
def fake_vcs() -> FakeVCS:
    return FakeVCS()


@pytest.fixture
def fake_llm():
    return FakeLLM
