"""Role prompt templates with ``{~Placeholder~}`` substitution."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from codeloop import log
from codeloop.io_utils import read_text

ROLES = ("architect", "analyst", "developer")

_PLACEHOLDER = re.compile(r"\{~\s*([A-Za-z0-9_]+)\s*~\}")


@dataclass(frozen=True)
class PromptTemplate:
    system: str
    user: str


_TASK_SCHEMA = (
    '{"tasks": [{"number": 1, "name": "...", "dependency": "", "description": "...", '
    '"architecture": {"layers": ["..."], "recommended_pattern": "..."}, '
    '"priority": 0, "storyPoints": 3}]}'
)

_COMMANDS_SCHEMA = (
    '{"fileCommands": [{"action": "create|update", "path": "relative/path", "content": "..."}], '
    '"methodCommands": [{"action": "add|update|delete", "className": "...", '
    '"methodSignature": "...", "methodBody": "{ ... }"}], '
    '"mcpCommands": [{"action": "...", "parameters": {}}]}'
)

DEFAULT_TEMPLATES: dict[str, PromptTemplate] = {
    "architect": PromptTemplate(
        system=(
            "You are a senior software architect. Describe how the request should be "
            "implemented in the existing project: layers, patterns, files to touch. "
            "Answer in plain text."
        ),
        user=(
            "Project information:\n{~ProjectInfo~}\n"
            "Files and their methods:\n{~FilesWithMethods~}\n"
            "Request:\n{~UserRequest~}"
        ),
    ),
    "analyst": PromptTemplate(
        system=(
            "You are a business analyst. Break the request into small, ordered "
            "implementation tasks. Priority is 0 (high), 1 (normal) or 2 (low); "
            "storyPoints follow the Fibonacci scale. Reply with JSON only, shaped as: "
            + _TASK_SCHEMA
        ),
        user=(
            "Project information:\n{~ProjectInfo~}\n"
            "Files and their methods:\n{~FilesWithMethods~}\n"
            "Architect notes:\n{~ArchitectPrompt~}\n"
            "Request:\n{~UserRequest~}"
        ),
    ),
    "developer": PromptTemplate(
        system=(
            "You are a developer. Implement the task by emitting mutation commands. "
            "Use fileCommands for whole files, methodCommands for single methods and "
            "mcpCommands for actions against the running application. "
            "Reply with JSON only, shaped as: " + _COMMANDS_SCHEMA
        ),
        user=(
            "Project information:\n{~ProjectInfo~}\n"
            "Task: {~TaskName~}\n"
            "Description: {~TaskDescription~}\n"
            "Priority: {~TaskPriority~}\n"
            "Story points: {~TaskStoryPoints~}\n"
            "Layers: {~Layers~}\n"
            "Recommended pattern: {~RecommendedPattern~}\n"
            "Files and their methods:\n{~FilesWithMethods~}\n"
            "Available MCP commands:\n{~AvailableMCPcommands~}"
        ),
    ),
}


def _as_text(value: str | Iterable[str]) -> str:
    if isinstance(value, str):
        return value
    return "\n".join(str(v) for v in value)


def render(template: str, values: dict[str, str | Iterable[str]]) -> str:
    """Fill ``{~Key~}`` placeholders (keys matched case-insensitively).

    Lines that still hold a placeholder afterwards are dropped.
    """
    lookup = {key.lower(): _as_text(value) for key, value in values.items()}

    def _sub(match: re.Match[str]) -> str:
        value = lookup.get(match.group(1).lower())
        return match.group(0) if value is None else value

    filled = _PLACEHOLDER.sub(_sub, template)
    kept = [line for line in filled.split("\n") if not _PLACEHOLDER.search(line)]
    return "\n".join(kept).strip()


def _load_override(path: Path, language: str, fallback: PromptTemplate) -> PromptTemplate:
    try:
        data = json.loads(read_text(path))
    except (OSError, json.JSONDecodeError) as e:
        log.warn(f"Ignoring prompt file {path}: {e}")
        return fallback
    if not isinstance(data, dict):
        log.warn(f"Ignoring prompt file {path}: expected a JSON object")
        return fallback

    suffix = language[:1].upper() + language[1:].lower()
    system = data.get(f"systemMessage{suffix}") or data.get("systemMessage") or fallback.system
    user = data.get(f"userMessage{suffix}") or data.get("userMessage") or fallback.user
    return PromptTemplate(system=str(system), user=str(user))


def load_templates(prompts_dir: Path | str | None = None, language: str = "en") -> dict[str, PromptTemplate]:
    """Built-in templates, overridden by ``<prompts_dir>/<role>.json`` when present."""
    templates = dict(DEFAULT_TEMPLATES)
    if not prompts_dir:
        return templates
    base = Path(prompts_dir)
    for role in ROLES:
        path = base / f"{role}.json"
        if path.is_file():
            templates[role] = _load_override(path, language, templates[role])
            log.debug(f"Loaded {role} prompt from {path}")
    return templates


class PromptBook:
    """Renders ``(system, user)`` prompt pairs per role."""

    def __init__(self, prompts_dir: Path | str | None = None, language: str = "en") -> None:
        self.templates = load_templates(prompts_dir, language)

    def build(self, role: str, values: dict[str, str | Iterable[str]]) -> tuple[str, str]:
        if role not in self.templates:
            raise KeyError(f"Unknown prompt role: {role}")
        template = self.templates[role]
        return render(template.system, values), render(template.user, values)
