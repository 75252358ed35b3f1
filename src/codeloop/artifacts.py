"""Per-project working files under ``.aiproject/`` and the run summary."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from codeloop import log
from codeloop.commands.model import CommandsData
from codeloop.io_utils import write_text
from codeloop.tasks.model import Task

AIPROJECT_DIR = ".aiproject"


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


@dataclass(frozen=True)
class ProjectPaths:
    """Where a run keeps its files for one project root."""

    root: Path

    @property
    def aiproject_dir(self) -> Path:
        return self.root / AIPROJECT_DIR

    def tasks_dir(self, date: str | None = None) -> Path:
        return self.aiproject_dir / "tasks" / (date or _today())

    def commands_dir(self, date: str | None = None) -> Path:
        return self.aiproject_dir / "commands" / (date or _today())

    def ensure(self) -> None:
        """Create ``.aiproject/`` with a ``.gitignore`` so commits and resets leave it alone."""
        self.aiproject_dir.mkdir(parents=True, exist_ok=True)
        gitignore = self.aiproject_dir / ".gitignore"
        if not gitignore.exists():
            write_text(gitignore, "*\n")


def _dump(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    return path


def _free_path(path: Path) -> Path:
    """*path*, or ``<stem>-2<suffix>``, ``-3``… when taken. Records are never overwritten."""
    candidate = path
    n = 2
    while candidate.exists():
        candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
        n += 1
    return candidate


def save_task_record(
    paths: ProjectPaths,
    task: Task,
    *,
    commands: CommandsData | None = None,
    state: str = "",
    error_lines: list[str] | None = None,
) -> Path:
    """Write ``tasks/<date>/task-<n>.json`` with the task, its commands and its outcome.

    Task numbers repeat across split children, corrections and later runs;
    a repeated number gets the next free ``task-<n>-<k>.json``.
    """
    record: dict[str, Any] = {"task": task.to_dict(), "state": state}
    if commands is not None:
        record["commands"] = commands.to_dict()
    if error_lines:
        record["errorLines"] = list(error_lines)
    path = _dump(_free_path(paths.tasks_dir() / f"task-{task.number}.json"), record)
    log.debug(f"Task record saved: {path}")
    return path


def save_commands(paths: ProjectPaths, task: Task, commands: CommandsData, index: int = 0) -> Path:
    """Keep every developer command set, corrective ones included."""
    suffix = f"-{index}" if index else ""
    return _dump(_free_path(paths.commands_dir() / f"task-{task.number}{suffix}.json"), commands.to_dict())


def _coerce_non_negative_int(value: object) -> int:
    """Best-effort conversion for token counters coming from external objects/mocks."""
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


# ── Summary ──────────────────────────────────────────────────────────

def show_summary(
    counts: dict[str, int],
    total_input_tokens: int = 0,
    total_output_tokens: int = 0,
    commits: int = 0,
) -> None:
    """Print the final run summary."""
    total_input_tokens = _coerce_non_negative_int(total_input_tokens)
    total_output_tokens = _coerce_non_negative_int(total_output_tokens)
    total = sum(counts.values())

    log.console.print("")
    log.console.print("[bold]============================================[/bold]")
    log.console.print(f"[green]Run complete![/green] Processed {total} task(s).")
    log.console.print("[bold]============================================[/bold]")
    for state in ("satisfied", "exhausted", "skipped", "failed"):
        log.console.print(f"  {state.capitalize():<10} {counts.get(state, 0)}")
    if commits:
        log.console.print(f"  Commits    {commits}")
    log.console.print("")
    log.console.print("[bold]>>> Token usage[/bold]")
    log.console.print(f"Input tokens:  {total_input_tokens}")
    log.console.print(f"Output tokens: {total_output_tokens}")
    log.console.print(f"Total tokens:  {total_input_tokens + total_output_tokens}")
    log.console.print("[bold]============================================[/bold]")
