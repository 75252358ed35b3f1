"""Append-only audit store (SQLite): user prompts, projects, stage records, verifications."""

from __future__ import annotations

import hashlib
import json
import sqlite3
from pathlib import Path
from typing import Any

from codeloop import log

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS user_prompts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        prompt TEXT NOT NULL,
        prompt_hash TEXT NOT NULL UNIQUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        path TEXT NOT NULL UNIQUE,
        info TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER REFERENCES projects(id),
        user_prompt_id INTEGER REFERENCES user_prompts(id),
        stage TEXT NOT NULL,
        task_number INTEGER,
        system_prompt TEXT,
        user_prompt TEXT,
        response TEXT,
        payload TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS verifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER REFERENCES projects(id),
        user_prompt_id INTEGER REFERENCES user_prompts(id),
        task_number INTEGER,
        task_name TEXT,
        state TEXT NOT NULL,
        checks INTEGER DEFAULT 0,
        corrections INTEGER DEFAULT 0,
        error_lines TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
)


def prompt_hash(prompt: str) -> str:
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()


def get_db(db_path: Path | str) -> sqlite3.Connection:
    """Open (and create if needed) the audit database."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    for statement in SCHEMA:
        conn.execute(statement)
    conn.commit()
    return conn


class AuditStore:
    """Thin write-mostly wrapper around the audit database."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = db_path
        self.conn = get_db(db_path)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> AuditStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── Writes ──────────────────────────────────────────────────────

    def add_user_prompt(self, prompt: str) -> int:
        """Store *prompt* once; repeated prompts return the existing id."""
        digest = prompt_hash(prompt)
        row = self.conn.execute(
            "SELECT id FROM user_prompts WHERE prompt_hash = ?", (digest,)
        ).fetchone()
        if row is not None:
            log.debug(f"User prompt already stored (id={row['id']})")
            return int(row["id"])
        cur = self.conn.execute(
            "INSERT INTO user_prompts (prompt, prompt_hash) VALUES (?, ?)", (prompt, digest)
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def add_project(self, path: Path | str, info: dict[str, Any] | None = None) -> int:
        key = str(Path(path).resolve())
        row = self.conn.execute("SELECT id FROM projects WHERE path = ?", (key,)).fetchone()
        if row is not None:
            return int(row["id"])
        cur = self.conn.execute(
            "INSERT INTO projects (path, info) VALUES (?, ?)",
            (key, json.dumps(info or {}, ensure_ascii=False)),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def add_stage(
        self,
        *,
        project_id: int | None,
        user_prompt_id: int | None,
        stage: str,
        system_prompt: str = "",
        user_prompt: str = "",
        response: str = "",
        payload: Any = None,
        task_number: int | None = None,
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO stages
                (project_id, user_prompt_id, stage, task_number, system_prompt, user_prompt, response, payload)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project_id,
                user_prompt_id,
                stage,
                task_number,
                system_prompt,
                user_prompt,
                response,
                json.dumps(payload, ensure_ascii=False) if payload is not None else None,
            ),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def add_verification(
        self,
        *,
        project_id: int | None,
        user_prompt_id: int | None,
        task_number: int,
        task_name: str,
        state: str,
        checks: int,
        corrections: int,
        error_lines: list[str],
    ) -> int:
        cur = self.conn.execute(
            """
            INSERT INTO verifications
                (project_id, user_prompt_id, task_number, task_name, state, checks, corrections, error_lines)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project_id,
                user_prompt_id,
                task_number,
                task_name,
                state,
                checks,
                corrections,
                json.dumps(error_lines, ensure_ascii=False),
            ),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    # ── Reads ───────────────────────────────────────────────────────

    def list_user_prompts(self, limit: int = 20) -> list[sqlite3.Row]:
        return self.conn.execute(
            "SELECT id, prompt, prompt_hash, created_at FROM user_prompts ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()

    def stages_for(self, user_prompt_id: int) -> list[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM stages WHERE user_prompt_id = ? ORDER BY id", (user_prompt_id,)
        ).fetchall()

    def verifications_for(self, user_prompt_id: int) -> list[sqlite3.Row]:
        return self.conn.execute(
            "SELECT * FROM verifications WHERE user_prompt_id = ? ORDER BY id", (user_prompt_id,)
        ).fetchall()
