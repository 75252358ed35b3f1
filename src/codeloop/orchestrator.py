"""Pipeline: request -> architect -> analyst -> per task: developer, dispatch, verify."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from codeloop import log
from codeloop.agents import Agents, StageResult
from codeloop.artifacts import ProjectPaths, save_commands, save_task_record, show_summary
from codeloop.commands.model import CommandsData
from codeloop.config import Config
from codeloop.dispatcher import MutationDispatcher
from codeloop.git_ops import GitRepo
from codeloop.llm.base import LLMBase
from codeloop.mcp_servers import describe_actions, load_active_servers
from codeloop.prompts import PromptBook
from codeloop.protocol import ProtocolClient
from codeloop.scanner import ProjectSnapshot, scan_project
from codeloop.store import AuditStore
from codeloop.tasks.model import Task, TaskSet
from codeloop.verify import VerificationLoop, VerifyOutcome, VersionControl


class TaskStatus(str, Enum):
    SATISFIED = "satisfied"
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TaskOutcome:
    task: Task
    status: TaskStatus
    checks: int = 0
    corrections: int = 0
    committed: bool = False
    error: str = ""


@dataclass
class RunReport:
    user_request: str
    tasks: TaskSet = field(default_factory=TaskSet)
    outcomes: list[TaskOutcome] = field(default_factory=list)
    split_added: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in TaskStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    @property
    def commits(self) -> int:
        return sum(1 for o in self.outcomes if o.committed)

    @property
    def ok(self) -> bool:
        return bool(self.outcomes) and all(o.status == TaskStatus.SATISFIED for o in self.outcomes)


class Pipeline:
    """Runs one user request end to end against the project at ``cfg.project_dir``.

    Collaborators can be injected; by default the version control helper is
    built from ``cfg.git_repo_path`` (no commits or resets when it is empty).
    """

    def __init__(
        self,
        cfg: Config,
        llm: LLMBase,
        protocol: ProtocolClient,
        *,
        store: AuditStore | None = None,
        vcs: VersionControl | None = None,
        dispatcher: MutationDispatcher | None = None,
        prompts: PromptBook | None = None,
    ) -> None:
        self.cfg = cfg
        self.root = cfg.project_dir
        self.paths = ProjectPaths(self.root)
        self.protocol = protocol
        self.store = store
        if vcs is None and cfg.git_repo_path:
            vcs = GitRepo(Path(cfg.git_repo_path), cfg.git_remote, cfg.git_branch)
        self.vcs = vcs
        self.dispatcher = dispatcher or MutationDispatcher(protocol)
        self.agents = Agents(
            llm,
            prompts or PromptBook(cfg.prompts_dir or None, cfg.language),
            recorder=self._record_stage,
        )
        self.snapshot: ProjectSnapshot = ProjectSnapshot(root=self.root)
        self.mcp_actions = ""
        self._project_id: int | None = None
        self._prompt_id: int | None = None
        self._command_sets = 0

    # ── Run ──────────────────────────────────────────────────────────

    def run(self, user_request: str) -> RunReport:
        report = RunReport(user_request=user_request)
        self.paths.ensure()
        self.snapshot = scan_project(self.root)

        if self.store is not None:
            self._prompt_id = self.store.add_user_prompt(user_request)
            self._project_id = self.store.add_project(self.root, self.snapshot.info())

        self.mcp_actions = describe_actions(load_active_servers(self.cfg.mcp_servers_dir))

        log.info("Architect: designing the change…")
        notes = self.agents.architect(self.snapshot, user_request)

        log.info("Analyst: breaking the request into tasks…")
        tasks = TaskSet(self.agents.analyst(self.snapshot, user_request, notes))
        report.tasks = tasks
        if not len(tasks):
            log.error("Analyst returned no tasks; nothing to do")
            self._finish(report)
            return report

        report.split_added = tasks.expand(
            lambda t: self.agents.split(self.snapshot, t),
            threshold=self.cfg.split_threshold,
            max_depth=self.cfg.max_split_depth,
        )
        runnable = tasks.runnable()
        log.info(f"Tasks: {len(runnable)} to run ({report.split_added} added by splitting)")

        for i, task in enumerate(runnable, 1):
            log.info(f"[{i}/{len(runnable)}] {task.name}")
            try:
                outcome = self._run_task(task)
            except Exception as e:
                log.error(f"Task '{task.name}' failed: {e}")
                outcome = TaskOutcome(task=task, status=TaskStatus.FAILED, error=str(e))
                save_task_record(self.paths, task, state=outcome.status.value)
            report.outcomes.append(outcome)
            self.snapshot = scan_project(self.root)

        self._finish(report)
        return report

    def _finish(self, report: RunReport) -> None:
        report.input_tokens = self.agents.input_tokens
        report.output_tokens = self.agents.output_tokens
        show_summary(report.counts(), report.input_tokens, report.output_tokens, report.commits)

    def _run_task(self, task: Task) -> TaskOutcome:
        commands = self.agents.developer(self.snapshot, task, self.mcp_actions)
        if commands is None or commands.is_empty():
            log.warn(f"No commands for task '{task.name}'; skipping")
            save_task_record(self.paths, task, commands=commands, state=TaskStatus.SKIPPED.value)
            return TaskOutcome(task=task, status=TaskStatus.SKIPPED)

        self._dispatch(task, commands)

        loop = VerificationLoop(
            self.protocol,
            corrector=self._correct,
            vcs=self.vcs,
            max_attempts=self.cfg.max_attempts,
        )
        result = loop.run(task)
        self._record_verification(task, result)

        status = TaskStatus.SATISFIED if result.satisfied else TaskStatus.EXHAUSTED
        save_task_record(
            self.paths,
            task,
            commands=commands,
            state=status.value,
            error_lines=result.error_lines,
        )
        return TaskOutcome(
            task=task,
            status=status,
            checks=result.checks,
            corrections=result.corrections,
            committed=result.committed,
        )

    def _correct(self, task: Task, error_lines: list[str]) -> int:
        """One correction round: new snapshot, replacement tasks, their commands."""
        self.snapshot = scan_project(self.root)
        corrective = self.agents.correct(self.snapshot, task, error_lines)
        context = "Error: " + " ".join(error_lines)
        dispatched = 0
        for fix in corrective:
            commands = self.agents.developer(self.snapshot, fix.with_context(context), self.mcp_actions)
            if commands is None or commands.is_empty():
                continue
            self._dispatch(fix, commands)
            dispatched += 1
        return dispatched

    def _dispatch(self, task: Task, commands: CommandsData) -> None:
        self._command_sets += 1
        save_commands(self.paths, task, commands, self._command_sets)
        report = self.dispatcher.dispatch(commands, self.root)
        if not report.ok:
            failed = "; ".join(f"{kind}: {msg}" for kind, msg in report.errors.items())
            log.warn(f"Some commands failed for '{task.name}': {failed}")

    # ── Audit ────────────────────────────────────────────────────────

    def _record_stage(self, stage: StageResult) -> None:
        if self.store is None:
            return
        self.store.add_stage(
            project_id=self._project_id,
            user_prompt_id=self._prompt_id,
            stage=stage.stage,
            system_prompt=stage.system_prompt,
            user_prompt=stage.user_prompt,
            response=stage.text,
            payload=stage.data,
            task_number=stage.task_number,
        )

    def _record_verification(self, task: Task, result: VerifyOutcome) -> None:
        if self.store is None:
            return
        self.store.add_verification(
            project_id=self._project_id,
            user_prompt_id=self._prompt_id,
            task_number=task.number,
            task_name=task.name,
            state=result.state.value,
            checks=result.checks,
            corrections=result.corrections,
            error_lines=result.error_lines,
        )
