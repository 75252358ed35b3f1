"""End-to-end pipeline runs with a scripted LLM, protocol and version control."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from codeloop.commands.model import CommandsData, FileCommand, McpCommand
from codeloop.config import Config
from codeloop.io_utils import read_text
from codeloop.orchestrator import Pipeline, TaskStatus
from codeloop.store import AuditStore

ARCHITECT_NOTES = "Add a component next to Player."


def tasks_reply(*tasks: dict) -> str:
    return "```json\n" + json.dumps({"tasks": list(tasks)}) + "\n```"


def commands_reply(commands: CommandsData) -> str:
    return json.dumps(commands.to_dict())


def _task(number: int, name: str, points: int = 3) -> dict:
    return {"number": number, "name": name, "description": f"{name} please", "storyPoints": points}


def _create(path: str, content: str) -> str:
    return commands_reply(CommandsData(file_commands=[FileCommand("create", path, content)]))


@pytest.fixture
def cfg(project_dir: Path) -> Config:
    return Config(project_path=str(project_dir), max_attempts=10)


# ── Happy path ───────────────────────────────────────────────────────


class TestSatisfied:
    def test_task_is_applied_verified_and_committed(self, cfg, project_dir, fake_llm, fake_vcs, fake_protocol):
        llm = fake_llm([
            ARCHITECT_NOTES,
            tasks_reply(_task(1, "Add jump")),
            _create("Assets/Scripts/Jump.cs", "public class Jump {}"),
        ])
        protocol = fake_protocol()

        report = Pipeline(cfg, llm, protocol, vcs=fake_vcs).run("Let the player jump")

        assert report.ok
        assert [o.status for o in report.outcomes] == [TaskStatus.SATISFIED]
        assert read_text(project_dir / "Assets" / "Scripts" / "Jump.cs") == "public class Jump {}"
        assert protocol.actions() == ["start", "get-log"]
        assert fake_vcs.commits == ["Add jump"]
        assert report.commits == 1
        assert (report.input_tokens, report.output_tokens) == (30, 15)

    def test_architect_notes_reach_the_analyst(self, cfg, fake_llm, fake_vcs, fake_protocol):
        llm = fake_llm([ARCHITECT_NOTES, tasks_reply()])
        Pipeline(cfg, llm, fake_protocol(), vcs=fake_vcs).run("Let the player jump")
        _, analyst_user = llm.prompts[1]
        assert ARCHITECT_NOTES in analyst_user
        assert "Let the player jump" in analyst_user

    def test_task_record_and_gitignore(self, cfg, project_dir, fake_llm, fake_vcs, fake_protocol):
        llm = fake_llm([
            ARCHITECT_NOTES,
            tasks_reply(_task(7, "Add jump")),
            _create("Jump.cs", "class Jump {}"),
        ])
        Pipeline(cfg, llm, fake_protocol(), vcs=fake_vcs).run("jump")

        aiproject = project_dir / ".aiproject"
        assert read_text(aiproject / ".gitignore") == "*\n"
        records = list((aiproject / "tasks").glob("*/task-7.json"))
        assert len(records) == 1
        data = json.loads(read_text(records[0]))
        assert data["state"] == "satisfied"
        assert data["commands"]["fileCommands"][0]["path"] == "Jump.cs"
        assert list((aiproject / "commands").glob("*/task-7-1.json"))

    def test_second_run_keeps_earlier_records(self, cfg, project_dir, fake_llm, fake_vcs, fake_protocol):
        for name in ("Add jump", "Add dash"):
            llm = fake_llm([
                ARCHITECT_NOTES,
                tasks_reply(_task(1, name)),
                _create(f"{name.split()[1]}.cs", "class X {}"),
            ])
            Pipeline(cfg, llm, fake_protocol(), vcs=fake_vcs).run(name)

        records = sorted((project_dir / ".aiproject" / "tasks").glob("*/task-1*.json"))
        names = {json.loads(read_text(r))["task"]["name"] for r in records}
        assert names == {"Add jump", "Add dash"}


# ── Failure paths ────────────────────────────────────────────────────


class TestExhausted:
    def test_reverts_after_budget(self, project_dir, fake_llm, fake_vcs, fake_protocol):
        cfg = Config(project_path=str(project_dir), max_attempts=1)
        llm = fake_llm([
            ARCHITECT_NOTES,
            tasks_reply(_task(1, "Add jump")),
            commands_reply(CommandsData(mcp_commands=[McpCommand("refresh")])),
            tasks_reply(_task(2, "Fix jump")),
            commands_reply(CommandsData(mcp_commands=[McpCommand("refresh")])),
        ])
        protocol = fake_protocol(default_log="Assets/Jump.cs(1,1): Error CS0103: Move does not exist")

        report = Pipeline(cfg, llm, protocol, vcs=fake_vcs).run("jump")

        outcome = report.outcomes[0]
        assert outcome.status == TaskStatus.EXHAUSTED
        assert (outcome.checks, outcome.corrections) == (2, 1)
        assert fake_vcs.commits == []
        assert fake_vcs.resets == 1
        assert protocol.actions().count("start") == 1
        assert protocol.actions().count("get-log") == 2
        assert protocol.actions().count("refresh") == 2
        assert not report.ok

    def test_correction_prompt_carries_error_lines(self, project_dir, fake_llm, fake_vcs, fake_protocol):
        cfg = Config(project_path=str(project_dir), max_attempts=1)
        llm = fake_llm([
            ARCHITECT_NOTES,
            tasks_reply(_task(1, "Add jump")),
            commands_reply(CommandsData(mcp_commands=[McpCommand("refresh")])),
            tasks_reply(_task(2, "Fix jump")),
            commands_reply(CommandsData(mcp_commands=[McpCommand("refresh")])),
        ])
        protocol = fake_protocol(logs=["NullReferenceException: player"], default_log="")

        report = Pipeline(cfg, llm, protocol, vcs=fake_vcs).run("jump")

        assert report.ok
        _, correct_user = llm.prompts[3]
        assert "Correct the error: NullReferenceException: player, by task: Add jump" in correct_user
        _, fix_user = llm.prompts[4]
        assert "Error: NullReferenceException: player" in fix_user


class TestSkippedAndFailed:
    def test_unusable_developer_reply_skips(self, cfg, fake_llm, fake_vcs, fake_protocol):
        llm = fake_llm([ARCHITECT_NOTES, tasks_reply(_task(1, "Add jump")), "I cannot help with that."])
        protocol = fake_protocol()

        report = Pipeline(cfg, llm, protocol, vcs=fake_vcs).run("jump")

        assert [o.status for o in report.outcomes] == [TaskStatus.SKIPPED]
        assert protocol.calls == []
        assert report.counts()["skipped"] == 1

    def test_no_tasks(self, cfg, fake_llm, fake_vcs, fake_protocol):
        report = Pipeline(cfg, fake_llm([ARCHITECT_NOTES, "{}"]), fake_protocol(), vcs=fake_vcs).run("jump")
        assert report.outcomes == []
        assert not report.ok

    def test_unexpected_exception_marks_task_failed(self, cfg, fake_llm, fake_vcs, fake_protocol):
        class BrokenProtocol(fake_protocol):
            def send(self, action, parameters=None, *, check_errors=True):
                if action == "start":
                    raise RuntimeError("target crashed")
                return super().send(action, parameters, check_errors=check_errors)

        llm = fake_llm([
            ARCHITECT_NOTES,
            tasks_reply(_task(1, "Add jump"), _task(2, "Add dash")),
            _create("Jump.cs", "class Jump {}"),
            _create("Dash.cs", "class Dash {}"),
        ])
        report = Pipeline(cfg, llm, BrokenProtocol(), vcs=fake_vcs).run("jump")

        assert [o.status for o in report.outcomes] == [TaskStatus.FAILED, TaskStatus.FAILED]
        assert report.outcomes[0].error == "target crashed"


# ── Splitting ────────────────────────────────────────────────────────


class TestSplitting:
    def test_oversized_task_is_replaced_by_children(self, cfg, fake_llm, fake_vcs, fake_protocol):
        llm = fake_llm([
            ARCHITECT_NOTES,
            tasks_reply(_task(1, "Build movement", points=34)),
            tasks_reply(_task(2, "Add jump"), _task(3, "Add dash")),
            _create("Jump.cs", "class Jump {}"),
            _create("Dash.cs", "class Dash {}"),
        ])

        report = Pipeline(cfg, llm, fake_protocol(), vcs=fake_vcs).run("movement")

        assert report.split_added == 2
        assert [t.name for t in report.tasks] == ["Build movement", "Add jump", "Add dash"]
        assert [o.task.name for o in report.outcomes] == ["Add jump", "Add dash"]
        assert fake_vcs.commits == ["Add jump", "Add dash"]
        _, split_user = llm.prompts[2]
        assert "Break it down into subtasks: Build movement" in split_user


# ── Audit store ──────────────────────────────────────────────────────


class TestAudit:
    def test_stages_and_verification_are_recorded(self, cfg, tmp_path, fake_llm, fake_vcs, fake_protocol):
        llm = fake_llm([
            ARCHITECT_NOTES,
            tasks_reply(_task(1, "Add jump")),
            _create("Jump.cs", "class Jump {}"),
        ])
        with AuditStore(tmp_path / "audit.db") as store:
            Pipeline(cfg, llm, fake_protocol(), store=store, vcs=fake_vcs).run("jump")
            prompt_id = store.list_user_prompts()[0]["id"]
            stages = [row["stage"] for row in store.stages_for(prompt_id)]
            verifications = store.verifications_for(prompt_id)

        assert stages == ["architect", "analyst", "developer"]
        assert len(verifications) == 1
        assert verifications[0]["state"] == "satisfied"
        assert verifications[0]["task_name"] == "Add jump"
