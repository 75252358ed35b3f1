"""Architect, analyst and developer roles on top of one LLM adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from codeloop import log
from codeloop.commands.model import CommandsData
from codeloop.llm.base import LLMBase, LLMResult
from codeloop.llm.parsing import parse_json_response
from codeloop.prompts import PromptBook
from codeloop.scanner import ProjectSnapshot
from codeloop.tasks.model import Task, parse_tasks

ANALYST_TASKS_PREFIX = (
    "I need an Json array of tasks with storypoints, and code and modify file to do for this project. "
)


@dataclass
class StageResult:
    """One role call: the prompts sent, the raw reply and what was parsed from it."""

    stage: str
    system_prompt: str
    user_prompt: str
    result: LLMResult
    data: Any = None
    task_number: int | None = None

    @property
    def text(self) -> str:
        return self.result.text


StageRecorder = Callable[[StageResult], None]


def _project_values(snapshot: ProjectSnapshot) -> dict[str, Any]:
    return {
        "ProjectInfo": snapshot.info_text(),
        "FilesWithMethods": snapshot.files_with_methods,
    }


class Agents:
    """Builds role prompts, calls the model and parses its answers.

    Every call is reported to *recorder* (if given) so the caller can
    persist it; token usage is accumulated on the instance.
    """

    def __init__(self, llm: LLMBase, prompts: PromptBook, recorder: StageRecorder | None = None) -> None:
        self.llm = llm
        self.prompts = prompts
        self.recorder = recorder
        self.input_tokens = 0
        self.output_tokens = 0

    def _call(self, stage: str, role: str, values: dict[str, Any], task_number: int | None = None) -> StageResult:
        system_prompt, user_prompt = self.prompts.build(role, values)
        log.debug(f"[{stage}] prompt: {user_prompt}")
        result = self.llm.complete(system_prompt, user_prompt)
        self.input_tokens += result.input_tokens
        self.output_tokens += result.output_tokens
        if result.error:
            log.error(f"[{stage}] LLM call failed: {result.error}")
        stage_result = StageResult(
            stage=stage,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            result=result,
            task_number=task_number,
        )
        if not result.error:
            stage_result.data = parse_json_response(result.text)
        return stage_result

    def _record(self, stage_result: StageResult) -> None:
        if self.recorder is not None:
            self.recorder(stage_result)

    # ── Roles ────────────────────────────────────────────────────────

    def architect(self, snapshot: ProjectSnapshot, user_request: str) -> str:
        """Free-text design notes for *user_request*; ``""`` on failure."""
        values = {**_project_values(snapshot), "UserRequest": user_request}
        stage = self._call("architect", "architect", values)
        self._record(stage)
        return "" if stage.result.error else stage.text.strip()

    def analyst(self, snapshot: ProjectSnapshot, user_request: str, architect_notes: str = "") -> list[Task]:
        values = {
            **_project_values(snapshot),
            "UserRequest": ANALYST_TASKS_PREFIX + user_request,
            "ArchitectPrompt": architect_notes,
        }
        return self._tasks("analyst", values)

    def split(self, snapshot: ProjectSnapshot, task: Task) -> list[Task]:
        """Ask for subtasks of an oversized *task*."""
        request = f"Break it down into subtasks: {task.name} {task.description}"
        values = {**_project_values(snapshot), "UserRequest": request}
        children = self._tasks("split", values, task.number)
        log.info(f"Task '{task.name}' ({task.story_points} points) split into {len(children)} subtask(s)")
        return children

    def correct(self, snapshot: ProjectSnapshot, task: Task, error_lines: list[str]) -> list[Task]:
        """Ask for replacement tasks that fix *error_lines* raised while verifying *task*."""
        errors = "\n".join(error_lines)
        request = f"Correct the error: {errors}, by task: {task.name} {task.description}"
        values = {**_project_values(snapshot), "UserRequest": request}
        return self._tasks("correct", values, task.number)

    def developer(self, snapshot: ProjectSnapshot, task: Task, mcp_actions: str = "") -> CommandsData | None:
        """Mutation commands implementing *task*; ``None`` when the reply is unusable."""
        values = {
            "ProjectInfo": snapshot.info_text(),
            "TaskName": task.name,
            "TaskDescription": task.description,
            "TaskPriority": str(task.priority),
            "Layers": ", ".join(task.architecture.layers),
            "RecommendedPattern": task.architecture.recommended_pattern,
            "TaskStoryPoints": str(task.story_points),
            "FilesWithMethods": snapshot.files_with_methods,
            "AvailableMCPcommands": mcp_actions,
        }
        stage = self._call("developer", "developer", values, task.number)
        commands = CommandsData.from_dict(stage.data) if stage.data is not None else None
        if commands is None and not stage.result.error:
            log.warn(f"[developer] No usable commands for task: {task.name}")
        stage.data = commands.to_dict() if commands is not None else None
        self._record(stage)
        return commands

    def _tasks(self, stage_name: str, values: dict[str, Any], task_number: int | None = None) -> list[Task]:
        stage = self._call(stage_name, "analyst", values, task_number)
        tasks = parse_tasks(stage.data)
        if not tasks and not stage.result.error:
            log.warn(f"[{stage_name}] Reply held no tasks")
        stage.data = {"tasks": [t.to_dict() for t in tasks]}
        self._record(stage)
        return tasks
